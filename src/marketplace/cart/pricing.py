"""Cart pricing — per-kind pricing strategies and aggregate totals.

Pricing is a pure computation over the prospective set of cart lines and the
catalog snapshots they reference. The cart calls it *before* mutating
itself, so a failure on any line leaves the cart exactly as it was.

Per line:
    price             = unit_price × quantity
    tax_amount        = price × tax_rate / 100
    commission_amount = price × commission_rate / 100

Cart totals:
    subtotal, tax, delivery_charge, commission are plain sums over lines
    total_price = subtotal + tax + delivery_charge + commission

Delivery charges are summed per line and not deduplicated per seller.
"""

import math
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime

from protean.exceptions import ObjectNotFoundError, ValidationError

from marketplace.catalog.item import DELIVERABLE_KINDS, ItemKind
from marketplace.catalog.lookup import ItemSnapshot
from marketplace.exceptions import InvalidPriceError, InvalidQuantityError, InvalidVariantError

SECONDS_PER_NIGHT = 24 * 60 * 60


@dataclass(frozen=True)
class LineRequest:
    """A cart line as the buyer asked for it, before pricing."""

    line_id: str
    item_id: str
    quantity: int
    variant_id: str | None = None
    selected_size: str | None = None
    selected_color: str | None = None
    check_in: datetime | date | None = None
    check_out: datetime | date | None = None


@dataclass(frozen=True)
class PricedLine:
    line_id: str
    kind: ItemKind
    seller_id: str
    unit_price: float
    price: float
    tax_rate: float
    tax_amount: float
    delivery_charge: float
    commission_amount: float


@dataclass(frozen=True)
class CartTotals:
    subtotal: float = 0.0
    tax: float = 0.0
    delivery_charge: float = 0.0
    commission: float = 0.0
    total_price: float = 0.0
    requires_delivery_address: bool = False


@dataclass(frozen=True)
class UnitQuote:
    """What a kind strategy resolves for a single unit of a line."""

    unit_price: float | None
    delivery_charge: float
    available: int


# ---------------------------------------------------------------------------
# Per-kind strategies
# ---------------------------------------------------------------------------
class KindPricing(ABC):
    """Resolves unit price, delivery charge and available stock for one item kind."""

    stock_label = "item"

    @abstractmethod
    def quote(self, line: LineRequest, item: ItemSnapshot) -> UnitQuote: ...


class RoomPricing(KindPricing):
    stock_label = "room"

    def quote(self, line, item):
        if line.check_in is None or line.check_out is None:
            raise ValidationError({"check_in": ["Check-in and check-out dates are required for room bookings"]})

        nights = math.ceil((line.check_out - line.check_in).total_seconds() / SECONDS_PER_NIGHT)
        unit_price = item.room_price * nights if item.room_price is not None else None
        return UnitQuote(unit_price=unit_price, delivery_charge=0.0, available=item.quantity)


class FoodPricing(KindPricing):
    stock_label = "food item"

    def quote(self, line, item):
        return UnitQuote(
            unit_price=item.dish_price,
            delivery_charge=item.food_delivery_charge,
            available=item.quantity,
        )


class ProductPricing(KindPricing):
    stock_label = "variant"

    def quote(self, line, item):
        if not item.variants:
            raise InvalidVariantError({"variant_id": [f"Item {item.item_id} has no variants"]})

        variant = item.find_variant(line.variant_id)
        if variant is None:
            raise InvalidVariantError({"variant_id": ["Invalid variant selected"]})

        return UnitQuote(
            unit_price=variant.price,
            delivery_charge=item.product_delivery_charge,
            available=variant.quantity,
        )


KIND_PRICING: dict[ItemKind, KindPricing] = {
    ItemKind.ROOM: RoomPricing(),
    ItemKind.FOOD: FoodPricing(),
    ItemKind.PRODUCT: ProductPricing(),
}


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
def _validate_commission_rate(commission_rate):
    if commission_rate is None or not 0.0 <= commission_rate <= 100.0:
        raise ValidationError({"commission_rate": ["Commission rate must be between 0 and 100"]})


def price_line(line: LineRequest, item: ItemSnapshot, commission_rate: float) -> PricedLine:
    if line.quantity is None or line.quantity < 1:
        raise InvalidQuantityError({"quantity": ["Quantity must be at least 1"]})

    strategy = KIND_PRICING[item.kind]
    quote = strategy.quote(line, item)

    if line.quantity > quote.available:
        raise InvalidQuantityError(
            {"quantity": [f"Quantity exceeds available stock for the selected {strategy.stock_label}"]}
        )
    if quote.unit_price is None or quote.unit_price <= 0:
        raise InvalidPriceError({"price": [f"Invalid price for item {item.item_id}"]})

    price = quote.unit_price * line.quantity
    return PricedLine(
        line_id=line.line_id,
        kind=item.kind,
        seller_id=item.seller_id,
        unit_price=quote.unit_price,
        price=price,
        tax_rate=item.tax_rate,
        tax_amount=price * item.tax_rate / 100,
        delivery_charge=quote.delivery_charge,
        commission_amount=price * commission_rate / 100,
    )


def price_lines(
    lines: Sequence[LineRequest],
    catalog: Mapping[str, ItemSnapshot],
    commission_rate: float,
) -> tuple[list[PricedLine], CartTotals]:
    """Price every line and aggregate the cart totals.

    Raises on the first line that cannot be priced; nothing is returned
    partially.
    """
    _validate_commission_rate(commission_rate)

    priced = []
    for line in lines:
        item = catalog.get(str(line.item_id))
        if item is None:
            raise ObjectNotFoundError({"item_id": [f"Item {line.item_id} not found"]})
        priced.append(price_line(line, item, commission_rate))

    subtotal = sum(p.price for p in priced)
    tax = sum(p.tax_amount for p in priced)
    delivery_charge = sum(p.delivery_charge for p in priced)
    commission = sum(p.commission_amount for p in priced)

    totals = CartTotals(
        subtotal=subtotal,
        tax=tax,
        delivery_charge=delivery_charge,
        commission=commission,
        total_price=subtotal + tax + delivery_charge + commission,
        requires_delivery_address=any(p.kind in DELIVERABLE_KINDS for p in priced),
    )
    return priced, totals
