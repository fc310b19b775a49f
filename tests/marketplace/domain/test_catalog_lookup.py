"""Tests for catalog snapshots and category tax resolution."""

import pytest
from marketplace.catalog.category import ItemCategory
from marketplace.catalog.item import CatalogItem, ItemKind
from marketplace.catalog.lookup import CatalogLookup
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


class TestCategoryTax:
    def test_no_category_is_untaxed(self):
        assert CatalogLookup().tax_rate(None) == 0.0

    def test_own_tax(self, catalog):
        category_id = catalog.category(tax=18.0)
        assert CatalogLookup().tax_rate(category_id) == 18.0

    def test_inherits_parent_tax(self, catalog):
        parent_id = catalog.category(tax=12.0, name="Apparel")
        child_id = catalog.category(tax=3.0, parent_category_id=parent_id, inherit_parent_tax=True, name="Kurtas")
        assert CatalogLookup().tax_rate(child_id) == 12.0

    def test_parent_is_ignored_without_inherit_flag(self, catalog):
        parent_id = catalog.category(tax=12.0)
        child_id = catalog.category(tax=3.0, parent_category_id=parent_id)
        assert CatalogLookup().tax_rate(child_id) == 3.0

    def test_dangling_category_reference(self):
        with pytest.raises(ObjectNotFoundError):
            CatalogLookup().tax_rate("missing-category")

    def test_cyclic_inheritance(self):
        repo = current_domain.repository_for(ItemCategory)
        first = ItemCategory(name="A", kind="product", tax=1.0, inherit_parent_tax=True)
        second = ItemCategory(
            name="B", kind="product", tax=2.0, inherit_parent_tax=True, parent_category_id=str(first.id)
        )
        first.parent_category_id = str(second.id)
        repo.add(first)
        repo.add(second)

        with pytest.raises(ValidationError):
            CatalogLookup().tax_rate(str(first.id))

    def test_room_category_cannot_have_parent(self, catalog):
        parent_id = catalog.category(kind="room", tax=5.0)
        with pytest.raises(ValidationError):
            ItemCategory(name="Suites", kind="room", parent_category_id=parent_id)


class TestSnapshots:
    def test_room_is_taxed_by_room_category(self, catalog):
        room = catalog.room(tax=12.0)
        snapshot = CatalogLookup().snapshot(str(room.id))

        assert snapshot.kind == ItemKind.ROOM
        assert snapshot.tax_rate == 12.0
        assert snapshot.room_price == 100.0

    def test_product_snapshot_carries_variants(self, catalog):
        product = catalog.product(tax=5.0)
        snapshot = CatalogLookup().snapshot(str(product.id))

        assert snapshot.tax_rate == 5.0
        assert {v.size for v in snapshot.variants} == {"S", "M"}
        variant = snapshot.variants[0]
        assert snapshot.find_variant(variant.variant_id) == variant
        assert snapshot.find_variant(None) is None

    def test_snapshots_deduplicate_ids(self, catalog):
        food = catalog.food()
        snapshots = CatalogLookup().snapshots([str(food.id), str(food.id)])
        assert list(snapshots) == [str(food.id)]

    def test_unknown_item(self):
        with pytest.raises(ObjectNotFoundError):
            CatalogLookup().snapshot("missing-item")

    def test_only_products_have_variants(self):
        with pytest.raises(ValidationError):
            CatalogItem.create(
                kind="food",
                name="Thali",
                seller_id="seller-x",
                variants=[{"size": "L", "color": "n/a", "price": 9.0, "quantity": 1}],
            )
