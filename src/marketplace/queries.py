"""Read-side helpers for carts and orders.

Reads go straight to the aggregate repositories; there are no projections.
Listings are newest first.
"""

from protean.utils.globals import current_domain

from marketplace.cart.cart import Cart
from marketplace.catalog.item import ItemKind
from marketplace.order.order import AWAITING_DECISION_STATES, NegotiationStatus, Order, OrderStatus, parse_choice


def get_cart(cart_id) -> Cart:
    return current_domain.repository_for(Cart).get(cart_id)


def get_order(order_id) -> Order:
    return current_domain.repository_for(Order).get(order_id)


def get_ledger(order_id):
    """Ledger entries of an order in the order they were appended."""
    return get_order(order_id).ledger()


def transaction_history(order_id) -> dict:
    """An order's ledger together with its refund and return/exchange records.

    Negotiations that were never opened come back as ``None``.
    """
    order = get_order(order_id)
    opened = order.refund_status != NegotiationStatus.NONE.value
    return {
        "order": order,
        "ledger": order.ledger(),
        "refund": order.refund_details if opened else None,
        "refund_status": order.refund_status,
        "refund_bank_details": order.refund_bank_details if opened else None,
        "return": order.return_details if order.return_status != NegotiationStatus.NONE.value else None,
        "return_status": order.return_status,
    }


def _orders_where(**criteria) -> list[Order]:
    repo = current_domain.repository_for(Order)
    records = repo._dao.query.filter(**criteria).order_by("-created_at").all().items
    return [repo.get(record.id) for record in records]


def _with_kind(orders, kind):
    if kind is None:
        return orders
    kind = parse_choice(ItemKind, kind, "kind").value
    return [order for order in orders if any(line.kind == kind for line in order.lines)]


def orders_for_buyer(buyer_id, kind=None, status=None) -> list[Order]:
    """A buyer's orders, optionally narrowed to those holding ``kind`` lines and in ``status``."""
    criteria = {"buyer_id": str(buyer_id)}
    if status is not None:
        criteria["status"] = parse_choice(OrderStatus, status, "status").value
    return _with_kind(_orders_where(**criteria), kind)


def orders_for_seller(seller_id) -> list[Order]:
    return _orders_where(seller_id=str(seller_id))


def pending_requests_for_seller(seller_id, kind=None) -> list[Order]:
    """Orders still waiting for the seller to accept or reject them."""
    awaiting = {state.value for state in AWAITING_DECISION_STATES}
    orders = [order for order in orders_for_seller(seller_id) if order.status in awaiting]
    return _with_kind(orders, kind)
