"""Return/exchange negotiation — commands and handler."""

import json

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import Order

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class InitiateReturn:
    order_id = Identifier(required=True)
    item_ids = Text(required=True)  # JSON: list of catalog item ids
    reason = String(max_length=500)
    action = String(required=True, max_length=20)  # return | exchange
    requested_by = Identifier()


@marketplace.command(part_of="Order")
class DecideReturn:
    order_id = Identifier(required=True)
    decision = String(required=True, max_length=20)  # accept | reject


@marketplace.command_handler(part_of=Order)
class ReturnHandler:
    @handle(InitiateReturn)
    def initiate_return(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        item_ids = json.loads(command.item_ids) if isinstance(command.item_ids, str) else command.item_ids
        order.initiate_return(
            item_ids=item_ids,
            reason=command.reason,
            action=command.action,
            requested_by=command.requested_by,
        )
        repo.add(order)

        logger.info("Return requested", order_id=str(order.id), action=command.action)

    @handle(DecideReturn)
    def decide_return(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.decide_return(command.decision)
        repo.add(order)

        logger.info("Return decided", order_id=str(order.id), return_status=order.return_status)
