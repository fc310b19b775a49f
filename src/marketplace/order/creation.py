"""Order placement — command, handler and service entry point.

Placing an order snapshots the cart into a new Order, charges online orders
through the payment gateway (bounded by the configured timeout), and clears
the cart. Order and cleared cart are persisted in the same unit of work.

When the charge fails the order is still persisted, as ``payment_failed``,
for audit; the cart keeps its lines so the buyer can try again.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.cart.cart import Cart
from marketplace.catalog.item import ItemKind
from marketplace.catalog.lookup import CatalogLookup
from marketplace.domain import marketplace
from marketplace.exceptions import PaymentFailedError
from marketplace.gateway import charge_with_timeout, idempotency_key_for
from marketplace.locks import process_exclusively
from marketplace.order.order import LedgerFamily, Order, OrderStatus, PaymentMethod
from marketplace.settings import get_settings

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class PlaceOrder:
    """Turn a priced cart into an order."""

    cart_id = Identifier(required=True)
    payment_method = String(required=True, choices=PaymentMethod)
    note = String(max_length=1000)


def _attach_variant_options(snapshot):
    """Freeze each product line's variant table alongside the line."""
    product_ids = [line["item_id"] for line in snapshot["lines"] if line["kind"] == ItemKind.PRODUCT.value]
    if not product_ids:
        return snapshot

    items = CatalogLookup().snapshots(product_ids)
    for line in snapshot["lines"]:
        if line["kind"] == ItemKind.PRODUCT.value:
            line["variant_options"] = [
                {"size": v.size, "color": v.color, "price": v.price} for v in items[line["item_id"]].variants
            ]
    return snapshot


@marketplace.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        cart_repo = current_domain.repository_for(Cart)
        order_repo = current_domain.repository_for(Order)
        settings = get_settings()

        cart = cart_repo.get(command.cart_id)
        snapshot = _attach_variant_options(cart.checkout_snapshot())

        order = Order.place(
            snapshot,
            payment_method=command.payment_method,
            note=command.note,
            currency=settings.currency,
            cart_id=str(cart.id),
        )

        if order.payment_method == PaymentMethod.ONLINE.value:
            result = charge_with_timeout(
                amount=order.total_price,
                currency=order.currency,
                order_id=str(order.id),
                timeout=settings.payment_timeout,
            )
            if not result.success:
                order.record_payment_failure(
                    result.failure_reason or "Payment failed",
                    gateway_status=result.gateway_status,
                    idempotency_key=idempotency_key_for(str(order.id)),
                )
                order_repo.add(order)
                logger.warning(
                    "Payment failed for order",
                    order_id=str(order.id),
                    cart_id=str(cart.id),
                    reason=result.failure_reason,
                    gateway_status=result.gateway_status,
                )
                return str(order.id)

            order.record_payment_success(result.gateway_transaction_id)

        cart.clear(reason="checked_out")
        order_repo.add(order)
        cart_repo.add(cart)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            buyer_id=order.buyer_id,
            payment_method=order.payment_method,
            total_price=order.total_price,
        )
        return str(order.id)


def place_order(cart_id, payment_method, note=None):
    """Place an order from a cart and return the new order's id.

    Raises:
        PaymentFailedError: The online charge failed; the failed order has
            been persisted and its id is carried on the exception.
    """
    order_id = process_exclusively(
        PlaceOrder(cart_id=cart_id, payment_method=payment_method, note=note),
        "cart",
        cart_id,
    )

    order = current_domain.repository_for(Order).get(order_id)
    if order.status == OrderStatus.PAYMENT_FAILED.value:
        entry = order.latest_entry(LedgerFamily.PAYMENT)
        reason = json.loads(entry.details).get("reason") if entry and entry.details else "Payment failed"
        raise PaymentFailedError({"payment": [reason]}, order_id=order_id)

    return order_id
