"""Domain events for the Order aggregate.

Events mirror the ledger entries appended by each transition and are raised
alongside them in the same mutation.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A new order was placed from a priced cart."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    buyer_id = String(required=True)
    seller_id = Identifier()
    payment_method = String(required=True)
    line_count = Integer(required=True)
    total_price = Float(required=True)
    placed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class PaymentCompleted:
    """The gateway captured payment for an online order."""

    __version__ = 1

    order_id = Identifier(required=True)
    reference = String()
    amount = Float(required=True)


@marketplace.event(part_of="Order")
class PaymentFailed:
    """The gateway declined or timed out; the order is kept as payment_failed."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(required=True)
    amount = Float(required=True)


@marketplace.event(part_of="Order")
class OrderStatusUpdated:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)


@marketplace.event(part_of="Order")
class PartnerDecisionRecorded:
    """The seller accepted or rejected the order request."""

    __version__ = 1

    order_id = Identifier(required=True)
    decision = String(required=True)
    new_status = String(required=True)


@marketplace.event(part_of="Order")
class DeliveryPartnerAssigned:
    __version__ = 1

    order_id = Identifier(required=True)
    delivery_partner_id = Identifier(required=True)


@marketplace.event(part_of="Order")
class OrderCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    reason = String()
    cancelled_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class RefundRequested:
    """A refund over product lines was requested and awaits a decision."""

    __version__ = 1

    order_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String()
    requested_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class RefundDecided:
    __version__ = 1

    order_id = Identifier(required=True)
    decision = String(required=True)
    amount = Float(required=True)
    decided_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class ReturnInitiated:
    """A return or exchange was requested and awaits a decision."""

    __version__ = 1

    order_id = Identifier(required=True)
    action = String(required=True)
    reason = String()
    requested_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class ReturnDecided:
    __version__ = 1

    order_id = Identifier(required=True)
    action = String(required=True)
    decision = String(required=True)
    decided_at = DateTime(required=True)
