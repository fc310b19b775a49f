"""Domain events for the Cart aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Cart")
class CartLineAdded:
    """A line was added to the cart, or merged into a matching line."""

    __version__ = 1

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    item_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True)
    total_price = Float(required=True)


@marketplace.event(part_of="Cart")
class CartLineQuantityUpdated:
    __version__ = 1

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    total_price = Float(required=True)


@marketplace.event(part_of="Cart")
class CartLineRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    total_price = Float(required=True)


@marketplace.event(part_of="Cart")
class CartCleared:
    """Every line was removed, either by the buyer or after checkout."""

    __version__ = 1

    cart_id = Identifier(required=True)
    reason = String(max_length=50)
    cleared_at = DateTime(required=True)


@marketplace.event(part_of="Cart")
class DeliveryAddressSet:
    __version__ = 1

    cart_id = Identifier(required=True)
    city = String(required=True)
    country = String(required=True)
