from datetime import UTC, datetime

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def marketplace_bed():
    from marketplace.domain import marketplace

    bed = DomainFixture(marketplace)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(marketplace_bed):
    from marketplace.gateway import reset_gateway
    from marketplace.settings import reset_settings

    with marketplace_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()

    reset_gateway()
    reset_settings()


# ---------------------------------------------------------------------------
# Catalog data
# ---------------------------------------------------------------------------
CHECK_IN = datetime(2026, 3, 1, 14, 0, tzinfo=UTC)
CHECK_OUT = datetime(2026, 3, 3, 11, 0, tzinfo=UTC)  # 45 hours, billed as 2 nights

ADDRESS = {
    "name": "Asha Rao",
    "street": "12 Lake Road",
    "city": "Pune",
    "state": "MH",
    "country": "IN",
    "postal_code": "411001",
    "phone": "+91-9800000000",
}


class CatalogBuilder:
    """Persists catalog items and categories for a test."""

    def category(self, kind="food", tax=0.0, parent_category_id=None, inherit_parent_tax=False, name="Category"):
        from marketplace.catalog.category import ItemCategory

        category = ItemCategory(
            name=name,
            kind=kind,
            tax=tax,
            parent_category_id=parent_category_id,
            inherit_parent_tax=inherit_parent_tax,
        )
        current_domain.repository_for(ItemCategory).add(category)
        return str(category.id)

    def _add(self, item):
        from marketplace.catalog.item import CatalogItem

        current_domain.repository_for(CatalogItem).add(item)
        return item

    def food(self, dish_price=10.0, quantity=10, delivery=1.0, tax=5.0, seller_id="seller-food"):
        from marketplace.catalog.item import CatalogItem

        item = CatalogItem.create(
            kind="food",
            name="Paneer Tikka",
            seller_id=seller_id,
            dish_price=dish_price,
            quantity=quantity,
            food_delivery_charge=delivery,
            parent_category_id=self.category(kind="food", tax=tax) if tax else None,
        )
        return self._add(item)

    def product(self, delivery=2.0, tax=0.0, seller_id="seller-shop", variants=None):
        from marketplace.catalog.item import CatalogItem

        item = CatalogItem.create(
            kind="product",
            name="Cotton Kurta",
            seller_id=seller_id,
            product_delivery_charge=delivery,
            parent_category_id=self.category(kind="product", tax=tax) if tax else None,
            variants=variants
            if variants is not None
            else [
                {"name": "Small Red", "size": "S", "color": "Red", "price": 15.0, "quantity": 5},
                {"name": "Medium Blue", "size": "M", "color": "Blue", "price": 25.0, "quantity": 5},
            ],
        )
        return self._add(item)

    def room(self, room_price=100.0, quantity=3, tax=12.0, seller_id="seller-hotel"):
        from marketplace.catalog.item import CatalogItem

        item = CatalogItem.create(
            kind="room",
            name="Deluxe Room",
            seller_id=seller_id,
            room_price=room_price,
            quantity=quantity,
            room_category_id=self.category(kind="room", tax=tax) if tax else None,
        )
        return self._add(item)


@pytest.fixture()
def catalog():
    return CatalogBuilder()


def variant_id(item, size):
    return str(next(v.id for v in item.variants if v.size == size))


@pytest.fixture()
def variant_of():
    return variant_id


@pytest.fixture()
def address():
    return dict(ADDRESS)
