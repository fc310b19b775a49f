"""Cart management — commands and handler.

Handles cart creation, clearing, and the delivery address.
"""

import json

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.cart.cart import Cart
from marketplace.domain import marketplace


@marketplace.command(part_of="Cart")
class CreateCart:
    """Create a new cart for a registered customer or guest session."""

    customer_id = Identifier()  # Optional for guest carts
    guest_id = String(max_length=255)


@marketplace.command(part_of="Cart")
class ClearCart:
    cart_id = Identifier(required=True)


@marketplace.command(part_of="Cart")
class SetDeliveryAddress:
    cart_id = Identifier(required=True)
    address = Text(required=True)  # JSON: {name, street, city, state, country, postal_code, phone}


@marketplace.command_handler(part_of=Cart)
class ManageCartHandler:
    @handle(CreateCart)
    def create_cart(self, command):
        cart = Cart.create(
            customer_id=command.customer_id,
            guest_id=command.guest_id,
        )
        current_domain.repository_for(Cart).add(cart)
        return str(cart.id)

    @handle(ClearCart)
    def clear_cart(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)
        cart.clear()
        repo.add(cart)

    @handle(SetDeliveryAddress)
    def set_delivery_address(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)

        address = json.loads(command.address) if isinstance(command.address, str) else command.address
        cart.set_delivery_address(address)
        repo.add(cart)
