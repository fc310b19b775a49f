"""Item category — the tax-bearing classification of catalog items."""

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Identifier, String

from marketplace.catalog.item import ItemKind
from marketplace.domain import marketplace


@marketplace.aggregate
class ItemCategory:
    """A category carrying the tax percentage applied to the items filed under it.

    A category may defer to its parent's tax by setting ``inherit_parent_tax``.
    Room categories are flat and never have a parent.
    """

    name = String(required=True, max_length=100)
    kind = String(required=True, choices=ItemKind)
    parent_category_id = Identifier()
    tax = Float(default=0.0, min_value=0.0, max_value=100.0)
    inherit_parent_tax = Boolean(default=False)

    @invariant.post
    def room_categories_have_no_parent(self):
        if self.kind == ItemKind.ROOM.value and self.parent_category_id:
            raise ValidationError({"parent_category_id": ["Parent category is not allowed for room types"]})
