"""Cart line management — commands and handler.

Every command carries the commission rate the caller read from settings for
this request; the handler snapshots the referenced catalog items and lets the
cart reprice itself.
"""

from protean import handle
from protean.fields import DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.cart.cart import Cart
from marketplace.catalog.lookup import CatalogLookup
from marketplace.domain import marketplace


@marketplace.command(part_of="Cart")
class AddLine:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True)
    variant_id = Identifier()
    selected_size = String(max_length=50)
    selected_color = String(max_length=50)
    check_in = DateTime()
    check_out = DateTime()
    guest_count = Integer(min_value=1)
    commission_rate = Float(required=True, min_value=0.0, max_value=100.0)


@marketplace.command(part_of="Cart")
class UpdateLineQuantity:
    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    new_quantity = Integer(required=True)
    commission_rate = Float(required=True, min_value=0.0, max_value=100.0)


@marketplace.command(part_of="Cart")
class RemoveLine:
    cart_id = Identifier(required=True)
    line_id = Identifier(required=True)
    commission_rate = Float(required=True, min_value=0.0, max_value=100.0)


@marketplace.command_handler(part_of=Cart)
class ManageCartLinesHandler:
    @handle(AddLine)
    def add_line(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)

        catalog = CatalogLookup().snapshots([*cart.item_ids(), command.item_id])
        line_id = cart.add_line(
            item_id=command.item_id,
            quantity=command.quantity,
            catalog=catalog,
            commission_rate=command.commission_rate,
            variant_id=command.variant_id,
            selected_size=command.selected_size,
            selected_color=command.selected_color,
            check_in=command.check_in,
            check_out=command.check_out,
            guest_count=command.guest_count,
        )
        repo.add(cart)
        return line_id

    @handle(UpdateLineQuantity)
    def update_line_quantity(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)

        catalog = CatalogLookup().snapshots(cart.item_ids())
        cart.update_line_quantity(
            line_id=command.line_id,
            new_quantity=command.new_quantity,
            catalog=catalog,
            commission_rate=command.commission_rate,
        )
        repo.add(cart)

    @handle(RemoveLine)
    def remove_line(self, command):
        repo = current_domain.repository_for(Cart)
        cart = repo.get(command.cart_id)

        catalog = CatalogLookup().snapshots(cart.item_ids(except_line_id=command.line_id))
        cart.remove_line(
            line_id=command.line_id,
            catalog=catalog,
            commission_rate=command.commission_rate,
        )
        repo.add(cart)
