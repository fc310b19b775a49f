"""Catalog lookup — resolves catalog items into frozen snapshots for pricing.

The pricing engine never touches repositories. Handlers build an
``ItemSnapshot`` per referenced item (with the tax rate already resolved
through the category chain) and hand the mapping to the cart.
"""

from dataclasses import dataclass, field

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from marketplace.catalog.category import ItemCategory
from marketplace.catalog.item import CatalogItem, ItemKind


@dataclass(frozen=True)
class VariantSnapshot:
    variant_id: str
    size: str | None = None
    color: str | None = None
    price: float | None = None
    quantity: int = 0


@dataclass(frozen=True)
class ItemSnapshot:
    """Read-only view of a catalog item at pricing time."""

    item_id: str
    kind: ItemKind
    name: str
    seller_id: str
    quantity: int = 0
    room_price: float | None = None
    dish_price: float | None = None
    food_delivery_charge: float = 0.0
    product_delivery_charge: float = 0.0
    tax_rate: float = 0.0
    variants: tuple[VariantSnapshot, ...] = field(default_factory=tuple)

    def find_variant(self, variant_id) -> VariantSnapshot | None:
        if variant_id is None:
            return None
        return next((v for v in self.variants if v.variant_id == str(variant_id)), None)


class CatalogLookup:
    """Loads catalog items and categories for the duration of one command."""

    def __init__(self):
        self._items = current_domain.repository_for(CatalogItem)
        self._categories = current_domain.repository_for(ItemCategory)
        self._tax_cache: dict[str, float] = {}

    def snapshot(self, item_id) -> ItemSnapshot:
        item = self._items.get(item_id)
        kind = ItemKind(item.kind)
        category_id = item.room_category_id if kind == ItemKind.ROOM else item.parent_category_id

        return ItemSnapshot(
            item_id=str(item.id),
            kind=kind,
            name=item.name,
            seller_id=str(item.seller_id),
            quantity=item.quantity or 0,
            room_price=item.room_price,
            dish_price=item.dish_price,
            food_delivery_charge=item.food_delivery_charge or 0.0,
            product_delivery_charge=item.product_delivery_charge or 0.0,
            tax_rate=self.tax_rate(category_id),
            variants=tuple(
                VariantSnapshot(
                    variant_id=str(v.id),
                    size=v.size,
                    color=v.color,
                    price=v.price,
                    quantity=v.quantity or 0,
                )
                for v in item.variants
            ),
        )

    def snapshots(self, item_ids) -> dict[str, ItemSnapshot]:
        """Snapshot every distinct item referenced by ``item_ids``."""
        return {str(item_id): self.snapshot(item_id) for item_id in dict.fromkeys(str(i) for i in item_ids)}

    def tax_rate(self, category_id) -> float:
        """Resolve the tax percentage for a category, following inherited parents.

        Items filed under no category are untaxed. A reference to a category
        that does not exist is an error rather than a zero rate.
        """
        if not category_id:
            return 0.0

        key = str(category_id)
        if key in self._tax_cache:
            return self._tax_cache[key]

        visited = set()
        category = self._categories.get(category_id)
        while category.inherit_parent_tax and category.parent_category_id:
            visited.add(str(category.id))
            if str(category.parent_category_id) in visited:
                raise ValidationError(
                    {"category": [f"Category {category.id} inherits tax from a cyclic parent chain"]}
                )
            category = self._categories.get(category.parent_category_id)

        self._tax_cache[key] = category.tax or 0.0
        return self._tax_cache[key]
