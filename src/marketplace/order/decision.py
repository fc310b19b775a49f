"""Partner decision — command and handler.

The seller accepts or rejects an order while it still awaits a decision.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import Order

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class RecordPartnerDecision:
    order_id = Identifier(required=True)
    decision = String(required=True, max_length=20)  # accepted | rejected


@marketplace.command_handler(part_of=Order)
class PartnerDecisionHandler:
    @handle(RecordPartnerDecision)
    def record_decision(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_partner_decision(command.decision)
        repo.add(order)

        logger.info(
            "Partner decision recorded",
            order_id=str(order.id),
            decision=command.decision,
            status=order.status,
        )
