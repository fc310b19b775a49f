"""Application tests for cart commands processed through the domain."""

import json
from datetime import UTC, datetime

import pytest
from marketplace.cart.cart import Cart
from marketplace.cart.items import AddLine, RemoveLine, UpdateLineQuantity
from marketplace.cart.management import ClearCart, CreateCart, SetDeliveryAddress
from marketplace.catalog.item import CatalogItem
from marketplace.exceptions import InvalidQuantityError, InvalidVariantError
from protean import current_domain
from protean.exceptions import ObjectNotFoundError

CHECK_IN = datetime(2026, 3, 1, 14, 0, tzinfo=UTC)
CHECK_OUT = datetime(2026, 3, 3, 11, 0, tzinfo=UTC)


def _create_cart(customer_id="buyer-001"):
    return current_domain.process(CreateCart(customer_id=customer_id), asynchronous=False)


def _add(cart_id, item_id, quantity=1, commission_rate=0.0, **kwargs):
    return current_domain.process(
        AddLine(cart_id=cart_id, item_id=item_id, quantity=quantity, commission_rate=commission_rate, **kwargs),
        asynchronous=False,
    )


def _load(cart_id):
    return current_domain.repository_for(Cart).get(cart_id)


class TestCreateCart:
    def test_create_persists(self):
        cart_id = _create_cart()
        assert _load(cart_id).customer_id == "buyer-001"

    def test_create_guest_cart(self):
        cart_id = current_domain.process(CreateCart(guest_id="sess-9"), asynchronous=False)
        assert _load(cart_id).guest_id == "sess-9"


class TestAddLineCommand:
    def test_food_example_through_the_domain(self, catalog):
        food = catalog.food(dish_price=10.0, tax=5.0, delivery=1.0)
        cart_id = _create_cart()

        _add(cart_id, str(food.id), quantity=2, commission_rate=10.0)

        cart = _load(cart_id)
        assert (cart.subtotal, cart.tax, cart.delivery_charge, cart.commission, cart.total_price) == (
            20.0,
            1.0,
            1.0,
            2.0,
            24.0,
        )

    def test_room_booking(self, catalog):
        room = catalog.room(room_price=100.0, tax=12.0)
        cart_id = _create_cart()

        _add(cart_id, str(room.id), check_in=CHECK_IN, check_out=CHECK_OUT, guest_count=2)

        cart = _load(cart_id)
        assert cart.subtotal == 200.0
        assert cart.tax == 24.0
        assert cart.requires_delivery_address is False

    def test_product_variant(self, catalog, variant_of):
        product = catalog.product()
        cart_id = _create_cart()

        _add(cart_id, str(product.id), variant_id=variant_of(product, "M"))

        cart = _load(cart_id)
        assert cart.subtotal == 25.0
        assert cart.lines[0].selected_color == "Blue"

    def test_over_stock_leaves_persisted_cart_unchanged(self, catalog):
        food = catalog.food(quantity=3)
        cart_id = _create_cart()
        _add(cart_id, str(food.id), quantity=2)

        with pytest.raises(InvalidQuantityError):
            _add(cart_id, str(food.id), quantity=2)

        cart = _load(cart_id)
        assert cart.lines[0].quantity == 2
        assert cart.subtotal == 20.0

    def test_invalid_variant(self, catalog):
        product = catalog.product()
        cart_id = _create_cart()
        with pytest.raises(InvalidVariantError):
            _add(cart_id, str(product.id), variant_id="not-a-variant")

    def test_unknown_item(self):
        cart_id = _create_cart()
        with pytest.raises(ObjectNotFoundError):
            _add(cart_id, "missing-item")

    def test_unknown_cart(self, catalog):
        food = catalog.food()
        with pytest.raises(ObjectNotFoundError):
            _add("missing-cart", str(food.id))

    def test_commission_rate_is_taken_per_call(self, catalog):
        food = catalog.food(tax=0.0, delivery=0.0)
        cart_id = _create_cart()
        _add(cart_id, str(food.id), commission_rate=10.0)
        _add(cart_id, str(food.id), commission_rate=20.0)

        cart = _load(cart_id)
        assert cart.commission_rate == 20.0
        assert cart.commission == 4.0


class TestLineUpdates:
    def test_update_quantity(self, catalog):
        food = catalog.food()
        cart_id = _create_cart()
        line_id = _add(cart_id, str(food.id))

        current_domain.process(
            UpdateLineQuantity(cart_id=cart_id, line_id=line_id, new_quantity=3, commission_rate=0.0),
            asynchronous=False,
        )

        assert _load(cart_id).subtotal == 30.0

    def test_remove_line(self, catalog):
        food = catalog.food()
        product = catalog.product()
        cart_id = _create_cart()
        line_id = _add(cart_id, str(food.id))
        _add(cart_id, str(product.id), variant_id=str(product.variants[0].id))

        current_domain.process(RemoveLine(cart_id=cart_id, line_id=line_id, commission_rate=0.0), asynchronous=False)

        cart = _load(cart_id)
        assert len(cart.lines) == 1
        assert cart.lines[0].item_id == str(product.id)

    def test_remove_line_whose_item_left_the_catalog(self, catalog):
        kept = catalog.food(dish_price=10.0, tax=0.0, delivery=0.0)
        withdrawn = catalog.food(dish_price=8.0, tax=0.0, delivery=0.0)
        cart_id = _create_cart()
        _add(cart_id, str(kept.id))
        line_id = _add(cart_id, str(withdrawn.id))
        current_domain.repository_for(CatalogItem)._dao.delete(withdrawn)

        current_domain.process(RemoveLine(cart_id=cart_id, line_id=line_id, commission_rate=0.0), asynchronous=False)

        cart = _load(cart_id)
        assert [li.item_id for li in cart.lines] == [str(kept.id)]
        assert cart.total_price == 10.0

    def test_clear(self, catalog):
        food = catalog.food()
        cart_id = _create_cart()
        _add(cart_id, str(food.id))

        current_domain.process(ClearCart(cart_id=cart_id), asynchronous=False)

        cart = _load(cart_id)
        assert len(cart.lines) == 0
        assert cart.total_price == 0.0


class TestDeliveryAddress:
    def test_set_address(self):
        cart_id = _create_cart()
        current_domain.process(
            SetDeliveryAddress(
                cart_id=cart_id,
                address=json.dumps(
                    {
                        "name": "Asha Rao",
                        "street": "12 Lake Road",
                        "city": "Pune",
                        "country": "IN",
                        "postal_code": "411001",
                        "phone": "+91-9800000000",
                    }
                ),
            ),
            asynchronous=False,
        )
        assert _load(cart_id).delivery_address.city == "Pune"
