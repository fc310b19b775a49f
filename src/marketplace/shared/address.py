"""Delivery address value object shared by carts and orders."""

from protean.fields import String

from marketplace.domain import marketplace


@marketplace.value_object
class DeliveryAddress:
    """Where food and product lines are delivered.

    Once copied onto an Order the address is frozen with it; later edits to
    the buyer's cart do not change where an existing order goes.
    """

    name = String(required=True, max_length=255)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(max_length=100)
    country = String(required=True, max_length=100)
    postal_code = String(required=True, max_length=20)
    phone = String(required=True, max_length=30)
