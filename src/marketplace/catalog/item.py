"""Catalog item reference — the read-only view of sellable items.

Items are owned and edited outside the ordering core; the engine only reads
them to price cart lines. The three kinds share one record shape but use
different subsets of fields:

- room: ``room_price`` per night, ``quantity`` rooms available, taxed by ``room_category_id``
- food: ``dish_price``, ``quantity`` portions available, ``food_delivery_charge``,
  taxed by ``parent_category_id``
- product: priced and stocked per ``ItemVariant``, ``product_delivery_charge``,
  taxed by ``parent_category_id``
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String

from marketplace.domain import marketplace


class ItemKind(Enum):
    ROOM = "room"
    FOOD = "food"
    PRODUCT = "product"


# Kinds whose lines must be delivered to an address
DELIVERABLE_KINDS = frozenset({ItemKind.FOOD, ItemKind.PRODUCT})


@marketplace.entity(part_of="CatalogItem")
class ItemVariant:
    """A purchasable size/color option of a product, with its own price and stock."""

    name = String(max_length=100)
    size = String(max_length=50)
    color = String(max_length=50)
    price = Float(min_value=0.0)
    quantity = Integer(default=0, min_value=0)


@marketplace.aggregate
class CatalogItem:
    kind = String(required=True, choices=ItemKind)
    name = String(required=True, max_length=255)
    seller_id = Identifier(required=True)
    quantity = Integer(default=0, min_value=0)
    room_price = Float(min_value=0.0)
    dish_price = Float(min_value=0.0)
    food_delivery_charge = Float(default=0.0, min_value=0.0)
    product_delivery_charge = Float(default=0.0, min_value=0.0)
    room_category_id = Identifier()
    parent_category_id = Identifier()
    variants = HasMany(ItemVariant)
    created_at = DateTime()

    @invariant.post
    def only_products_have_variants(self):
        if self.variants and self.kind != ItemKind.PRODUCT.value:
            raise ValidationError({"variants": ["Only product items can have variants"]})

    @classmethod
    def create(cls, kind, name, seller_id, variants=None, **details):
        """Register a catalog item.

        Args:
            kind: One of ``room``, ``food`` or ``product``.
            variants: For products, a list of dicts with ``size``, ``color``,
                ``price``, ``quantity`` and optionally ``id`` and ``name``.
            **details: Kind-specific fields (prices, stock, category refs).
        """
        item = cls(
            kind=kind.value if isinstance(kind, ItemKind) else kind,
            name=name,
            seller_id=seller_id,
            created_at=datetime.now(UTC),
            **details,
        )
        for variant_data in variants or []:
            item.add_variants(ItemVariant(**variant_data))
        return item
