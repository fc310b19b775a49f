"""Order fulfillment — commands and handler.

Covers status updates driven by the seller or delivery side, and handing an
accepted order to a delivery partner.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import Order

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=50)


@marketplace.command(part_of="Order")
class AssignDeliveryPartner:
    order_id = Identifier(required=True)
    delivery_partner_id = Identifier(required=True)


@marketplace.command_handler(part_of=Order)
class FulfillmentHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous_status = order.status
        order.update_status(command.status)
        repo.add(order)

        logger.info(
            "Order status updated",
            order_id=str(order.id),
            previous_status=previous_status,
            status=order.status,
        )

    @handle(AssignDeliveryPartner)
    def assign_delivery_partner(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.assign_delivery_partner(command.delivery_partner_id)
        repo.add(order)

        logger.info(
            "Delivery partner assigned",
            order_id=str(order.id),
            delivery_partner_id=str(command.delivery_partner_id),
        )
