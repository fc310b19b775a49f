import json

import pytest
from protean import current_domain


@pytest.fixture()
def checkout(address):
    """Build a cart from ``lines``, set the delivery address and place the order."""
    from marketplace.cart.items import AddLine
    from marketplace.cart.management import CreateCart, SetDeliveryAddress
    from marketplace.order.creation import place_order

    def _checkout(lines, buyer_id="buyer-001", payment_method="cash_on_delivery", commission_rate=10.0):
        cart_id = current_domain.process(CreateCart(customer_id=buyer_id), asynchronous=False)
        for line in lines:
            current_domain.process(
                AddLine(cart_id=cart_id, commission_rate=commission_rate, **line),
                asynchronous=False,
            )
        current_domain.process(
            SetDeliveryAddress(cart_id=cart_id, address=json.dumps(address)),
            asynchronous=False,
        )
        return place_order(cart_id, payment_method)

    return _checkout


@pytest.fixture()
def food_order(catalog, checkout):
    """A cash-on-delivery order for two food portions, still pending."""
    food = catalog.food()
    return checkout([{"item_id": str(food.id), "quantity": 2}])


@pytest.fixture()
def product_order(catalog, variant_of, checkout):
    """An order for one Small Red (15) and one Medium Blue (25) kurta."""
    product = catalog.product()
    order_id = checkout(
        [
            {"item_id": str(product.id), "quantity": 1, "variant_id": variant_of(product, "S")},
            {"item_id": str(product.id), "quantity": 1, "variant_id": variant_of(product, "M")},
        ]
    )
    return order_id, str(product.id)
