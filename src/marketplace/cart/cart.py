"""Cart aggregate (CQRS) — the buyer's mutable, always-priced shopping cart.

Every mutation prices the prospective line set first and only then touches
the aggregate, so a line that cannot be priced (unknown item, bad variant,
insufficient stock, missing price) rejects the whole mutation and the cart
keeps its previous lines and totals.

The commission rate is not stored configuration: callers pass the current
rate into every mutation that reprices, and the cart records which rate its
totals were computed with.
"""

from dataclasses import replace
from datetime import UTC, datetime

from protean import atomic_change, invariant
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from marketplace.cart.events import (
    CartCleared,
    CartLineAdded,
    CartLineQuantityUpdated,
    CartLineRemoved,
    DeliveryAddressSet,
)
from marketplace.cart.pricing import CartTotals, LineRequest, price_lines
from marketplace.catalog.item import ItemKind
from marketplace.domain import marketplace
from marketplace.exceptions import InvalidQuantityError
from marketplace.shared.address import DeliveryAddress

_NEW_LINE = "__new__"


@marketplace.entity(part_of="Cart")
class CartLine:
    item_id = Identifier(required=True)
    kind = String(choices=ItemKind)
    seller_id = Identifier()
    variant_id = Identifier()
    quantity = Integer(required=True, min_value=1)
    selected_size = String(max_length=50)
    selected_color = String(max_length=50)
    check_in = DateTime()
    check_out = DateTime()
    guest_count = Integer(min_value=1)
    unit_price = Float(default=0.0)
    price = Float(default=0.0)
    tax_rate = Float(default=0.0)
    tax_amount = Float(default=0.0)
    delivery_charge = Float(default=0.0)
    commission_amount = Float(default=0.0)
    added_at = DateTime()

    def to_request(self, quantity=None):
        return LineRequest(
            line_id=str(self.id),
            item_id=str(self.item_id),
            quantity=self.quantity if quantity is None else quantity,
            variant_id=str(self.variant_id) if self.variant_id else None,
            selected_size=self.selected_size,
            selected_color=self.selected_color,
            check_in=self.check_in,
            check_out=self.check_out,
        )

    def matches(self, item_id, variant_id, selected_size, selected_color, check_in, check_out):
        return (
            str(self.item_id) == str(item_id)
            and (str(self.variant_id) if self.variant_id else None) == (str(variant_id) if variant_id else None)
            and self.selected_size == selected_size
            and self.selected_color == selected_color
            and self.check_in == check_in
            and self.check_out == check_out
        )


@marketplace.aggregate
class Cart:
    customer_id = Identifier()  # Nullable for guest carts
    guest_id = String(max_length=255)
    lines = HasMany(CartLine)
    delivery_address = ValueObject(DeliveryAddress)
    requires_delivery_address = Boolean(default=False)
    subtotal = Float(default=0.0)
    tax = Float(default=0.0)
    delivery_charge = Float(default=0.0)
    commission = Float(default=0.0)
    total_price = Float(default=0.0)
    commission_rate = Float(default=0.0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_price_must_reconcile(self):
        expected = self.subtotal + self.tax + self.delivery_charge + self.commission
        if self.total_price != expected:
            raise ValidationError(
                {"total_price": [f"Total {self.total_price} does not match the sum of its parts ({expected})"]}
            )

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, customer_id=None, guest_id=None):
        if not customer_id and not guest_id:
            raise ValidationError({"owner": ["A cart belongs to either a customer or a guest session"]})

        now = datetime.now(UTC)
        return cls(
            customer_id=customer_id,
            guest_id=guest_id,
            created_at=now,
            updated_at=now,
        )

    @property
    def owner_id(self):
        return str(self.customer_id) if self.customer_id else self.guest_id

    def item_ids(self, except_line_id=None):
        """Catalog items referenced by the lines, optionally leaving one line out."""
        return [
            str(line.item_id)
            for line in self.lines
            if except_line_id is None or str(line.id) != str(except_line_id)
        ]

    def find_line(self, line_id):
        line = next((li for li in self.lines if str(li.id) == str(line_id)), None)
        if line is None:
            raise ObjectNotFoundError({"line_id": [f"Line {line_id} not found in cart"]})
        return line

    # -------------------------------------------------------------------
    # Pricing
    # -------------------------------------------------------------------
    def _apply_pricing(self, priced_lines, totals: CartTotals, commission_rate):
        """Copy freshly computed figures onto lines and totals. Call inside atomic_change."""
        by_line = {p.line_id: p for p in priced_lines}
        for line in self.lines:
            priced = by_line[str(line.id)]
            line.kind = priced.kind.value
            line.seller_id = priced.seller_id
            line.unit_price = priced.unit_price
            line.price = priced.price
            line.tax_rate = priced.tax_rate
            line.tax_amount = priced.tax_amount
            line.delivery_charge = priced.delivery_charge
            line.commission_amount = priced.commission_amount

        self.subtotal = totals.subtotal
        self.tax = totals.tax
        self.delivery_charge = totals.delivery_charge
        self.commission = totals.commission
        self.total_price = totals.total_price
        self.requires_delivery_address = totals.requires_delivery_address
        self.commission_rate = commission_rate
        self.updated_at = datetime.now(UTC)

    def recompute(self, catalog, commission_rate):
        """Reprice the current lines against fresh catalog data."""
        priced, totals = price_lines([line.to_request() for line in self.lines], catalog, commission_rate)
        with atomic_change(self):
            self._apply_pricing(priced, totals, commission_rate)

    # -------------------------------------------------------------------
    # Line management
    # -------------------------------------------------------------------
    def add_line(
        self,
        item_id,
        quantity,
        catalog,
        commission_rate,
        variant_id=None,
        selected_size=None,
        selected_color=None,
        check_in=None,
        check_out=None,
        guest_count=None,
    ):
        """Add a line (or merge into a matching one) and reprice the cart.

        Args:
            catalog: Mapping of item id to ``ItemSnapshot`` covering every line.
            commission_rate: Marketplace commission percentage for this call.

        Returns:
            The id of the added or merged line.
        """
        if quantity is None or quantity < 1:
            raise InvalidQuantityError({"quantity": ["Quantity must be at least 1"]})

        # A product line's size and color default to those of its variant
        item = catalog.get(str(item_id))
        if item is not None and item.kind == ItemKind.PRODUCT:
            variant = item.find_variant(variant_id)
            if variant is not None:
                selected_size = selected_size or variant.size
                selected_color = selected_color or variant.color

        existing = next(
            (
                li
                for li in self.lines
                if li.matches(item_id, variant_id, selected_size, selected_color, check_in, check_out)
            ),
            None,
        )

        requests = [li.to_request() for li in self.lines]
        if existing is not None:
            requests = [
                replace(r, quantity=r.quantity + quantity) if r.line_id == str(existing.id) else r for r in requests
            ]
        else:
            requests.append(
                LineRequest(
                    line_id=_NEW_LINE,
                    item_id=str(item_id),
                    quantity=quantity,
                    variant_id=str(variant_id) if variant_id else None,
                    selected_size=selected_size,
                    selected_color=selected_color,
                    check_in=check_in,
                    check_out=check_out,
                )
            )

        priced, totals = price_lines(requests, catalog, commission_rate)

        with atomic_change(self):
            if existing is not None:
                existing.quantity += quantity
                line = existing
            else:
                line = CartLine(
                    item_id=item_id,
                    variant_id=variant_id,
                    quantity=quantity,
                    selected_size=selected_size,
                    selected_color=selected_color,
                    check_in=check_in,
                    check_out=check_out,
                    guest_count=guest_count,
                    added_at=datetime.now(UTC),
                )
                self.add_lines(line)
                priced = [replace(p, line_id=str(line.id)) if p.line_id == _NEW_LINE else p for p in priced]

            self._apply_pricing(priced, totals, commission_rate)

        self.raise_(
            CartLineAdded(
                cart_id=str(self.id),
                line_id=str(line.id),
                item_id=str(item_id),
                variant_id=str(variant_id) if variant_id else None,
                quantity=line.quantity,
                total_price=self.total_price,
            )
        )
        return str(line.id)

    def update_line_quantity(self, line_id, new_quantity, catalog, commission_rate):
        """Change a line's quantity and reprice the cart."""
        line = self.find_line(line_id)
        if new_quantity is None or new_quantity < 1:
            raise InvalidQuantityError({"quantity": ["Quantity must be at least 1"]})

        requests = [li.to_request(quantity=new_quantity) if li is line else li.to_request() for li in self.lines]
        priced, totals = price_lines(requests, catalog, commission_rate)

        previous_quantity = line.quantity
        with atomic_change(self):
            line.quantity = new_quantity
            self._apply_pricing(priced, totals, commission_rate)

        self.raise_(
            CartLineQuantityUpdated(
                cart_id=str(self.id),
                line_id=str(line.id),
                previous_quantity=previous_quantity,
                new_quantity=new_quantity,
                total_price=self.total_price,
            )
        )

    def remove_line(self, line_id, catalog, commission_rate):
        """Remove a line and reprice what remains."""
        line = self.find_line(line_id)

        requests = [li.to_request() for li in self.lines if li is not line]
        priced, totals = price_lines(requests, catalog, commission_rate)

        with atomic_change(self):
            self.remove_lines(line)
            self._apply_pricing(priced, totals, commission_rate)

        self.raise_(
            CartLineRemoved(
                cart_id=str(self.id),
                line_id=str(line_id),
                total_price=self.total_price,
            )
        )

    def clear(self, reason="cleared"):
        """Drop every line and zero the totals. The delivery address is kept."""
        with atomic_change(self):
            for line in list(self.lines):
                self.remove_lines(line)
            self._apply_pricing([], CartTotals(), self.commission_rate)

        self.raise_(
            CartCleared(
                cart_id=str(self.id),
                reason=reason,
                cleared_at=self.updated_at,
            )
        )

    # -------------------------------------------------------------------
    # Delivery address
    # -------------------------------------------------------------------
    def set_delivery_address(self, address):
        """Attach the address food and product lines are delivered to."""
        if not isinstance(address, DeliveryAddress):
            address = DeliveryAddress(**address)

        self.delivery_address = address
        self.updated_at = datetime.now(UTC)

        self.raise_(
            DeliveryAddressSet(
                cart_id=str(self.id),
                city=address.city,
                country=address.country,
            )
        )

    # -------------------------------------------------------------------
    # Checkout
    # -------------------------------------------------------------------
    def checkout_snapshot(self):
        """Freeze lines, totals and (when needed) the address for order placement."""
        if not self.lines:
            raise ValidationError({"cart": ["Cannot place an order from an empty cart"]})
        if self.requires_delivery_address and self.delivery_address is None:
            raise ValidationError({"delivery_address": ["A delivery address is required for food and product items"]})

        lines = sorted(self.lines, key=lambda li: li.added_at or self.created_at)
        return {
            "buyer_id": self.owner_id,
            "lines": [
                {
                    "item_id": str(li.item_id),
                    "kind": li.kind,
                    "seller_id": str(li.seller_id),
                    "variant_id": str(li.variant_id) if li.variant_id else None,
                    "quantity": li.quantity,
                    "selected_size": li.selected_size,
                    "selected_color": li.selected_color,
                    "check_in": li.check_in,
                    "check_out": li.check_out,
                    "guest_count": li.guest_count,
                    "unit_price": li.unit_price,
                    "price": li.price,
                    "tax_rate": li.tax_rate,
                    "tax_amount": li.tax_amount,
                    "delivery_charge": li.delivery_charge,
                    "commission_amount": li.commission_amount,
                }
                for li in lines
            ],
            "pricing": {
                "subtotal": self.subtotal,
                "tax": self.tax,
                "delivery_charge": self.delivery_charge,
                "commission": self.commission,
                "total_price": self.total_price,
            },
            "delivery_address": self.delivery_address.to_dict()
            if self.requires_delivery_address and self.delivery_address
            else None,
        }
