"""Refund negotiation — commands and handler.

A buyer requests a refund over some of an order's product lines; the seller
then approves or rejects it. Only one refund request may be pending at a
time.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import Order

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class RequestRefund:
    order_id = Identifier(required=True)
    item_ids = Text(required=True)  # JSON: list of catalog item ids
    reason = String(max_length=500)
    bank_details = Text()  # JSON: {country, bank_name, account_name, account_number, ifsc_code}
    requested_by = Identifier()


@marketplace.command(part_of="Order")
class DecideRefund:
    order_id = Identifier(required=True)
    decision = String(required=True, max_length=20)  # accept | reject


@marketplace.command_handler(part_of=Order)
class RefundHandler:
    @handle(RequestRefund)
    def request_refund(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        item_ids = json.loads(command.item_ids) if isinstance(command.item_ids, str) else command.item_ids
        bank_details = (
            json.loads(command.bank_details) if isinstance(command.bank_details, str) else command.bank_details
        )

        amount = order.request_refund(
            item_ids=item_ids,
            reason=command.reason,
            bank_details=bank_details,
            requested_by=command.requested_by,
        )
        repo.add(order)

        logger.info("Refund requested", order_id=str(order.id), amount=amount)
        return amount

    @handle(DecideRefund)
    def decide_refund(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.decide_refund(command.decision)
        repo.add(order)

        logger.info("Refund decided", order_id=str(order.id), refund_status=order.refund_status)
