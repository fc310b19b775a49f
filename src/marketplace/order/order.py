"""Order aggregate (CQRS) — a frozen snapshot of a priced cart and its lifecycle.

The order owns its line snapshot and an append-only transaction ledger. Every
state change appends a ledger entry in the same mutation, so the ledger is a
complete, ordered audit trail of the order.

State Machine:
    PENDING → ACCEPTED/REJECTED (partner decision)
    PENDING → PAID / PAYMENT_FAILED (online payment at placement)
    PAID → ACCEPTED/REJECTED
    ACCEPTED → OUT_FOR_DELIVERY → DELIVERED
    PENDING, PAID, ACCEPTED → CANCELLED
    DELIVERED, CANCELLED, REJECTED, PAYMENT_FAILED are terminal

Two negotiations ride on top of the lifecycle, each with at most one pending
request at a time: refunds (product lines only) and returns/exchanges.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from marketplace.catalog.item import DELIVERABLE_KINDS, ItemKind
from marketplace.domain import marketplace
from marketplace.exceptions import InvalidPriceError, InvalidStateError, InvalidVariantError
from marketplace.order.events import (
    DeliveryPartnerAssigned,
    OrderCancelled,
    OrderPlaced,
    OrderStatusUpdated,
    PartnerDecisionRecorded,
    PaymentCompleted,
    PaymentFailed,
    RefundDecided,
    RefundRequested,
    ReturnDecided,
    ReturnInitiated,
)
from marketplace.shared.address import DeliveryAddress


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    PAYMENT_FAILED = "payment_failed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    OUT_FOR_DELIVERY = "out_for_delivery"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    ONLINE = "online"
    CASH_ON_DELIVERY = "cash_on_delivery"


class PaymentStatus(Enum):
    NOT_REQUIRED = "not_required"
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class PartnerResponse(Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class Decision(Enum):
    ACCEPT = "accept"
    REJECT = "reject"


class NegotiationStatus(Enum):
    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ReturnAction(Enum):
    RETURN = "return"
    EXCHANGE = "exchange"


class LedgerFamily(Enum):
    ORDER = "order"
    PAYMENT = "payment"
    REFUND = "refund"
    RETURN = "return"


class EntryStatus(Enum):
    COMPLETED = "Completed"
    PENDING = "Pending"
    REJECTED = "Rejected"
    FAILED = "Failed"


_TERMINAL_STATES = {
    OrderStatus.DELIVERED,
    OrderStatus.CANCELLED,
    OrderStatus.REJECTED,
    OrderStatus.PAYMENT_FAILED,
}

# States in which the seller may still accept or reject the request
AWAITING_DECISION_STATES = {OrderStatus.PENDING, OrderStatus.PAID}

# States from which cancellation is allowed
_CANCELLABLE_STATES = {OrderStatus.PENDING, OrderStatus.PAID, OrderStatus.ACCEPTED}


def _ledger_label(member: Enum) -> str:
    return member.value[:1].upper() + member.value[1:]


def parse_choice(enum_cls, value, field):
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise ValidationError({field: [f"Unknown {field} '{value}'"]}) from exc


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Order")
class BankDetails:
    """Where an approved refund is paid out. Frozen with the refund request."""

    country = String(max_length=100)
    bank_name = String(max_length=255)
    account_name = String(max_length=255)
    account_number = String(max_length=50)
    ifsc_code = String(max_length=20)


@marketplace.value_object(part_of="Order")
class RefundDetails:
    reason = String(max_length=500)
    amount = Float(required=True, min_value=0.0)
    item_ids = Text()  # JSON array of catalog item ids
    requested_by = Identifier()
    requested_at = DateTime()
    decided_at = DateTime()


@marketplace.value_object(part_of="Order")
class ReturnDetails:
    action = String(required=True, choices=ReturnAction)
    reason = String(max_length=500)
    item_ids = Text()  # JSON array of catalog item ids
    requested_by = Identifier()
    requested_at = DateTime()
    decided_at = DateTime()


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderLine:
    """A cart line frozen at placement time.

    Product lines also carry the item's variant table as it was when the
    order was placed, so refunds are priced against order-time data.
    """

    item_id = Identifier(required=True)
    kind = String(required=True, choices=ItemKind)
    seller_id = Identifier()
    variant_id = Identifier()
    quantity = Integer(required=True, min_value=1)
    selected_size = String(max_length=50)
    selected_color = String(max_length=50)
    check_in = DateTime()
    check_out = DateTime()
    guest_count = Integer()
    unit_price = Float(required=True, min_value=0.0)
    price = Float(required=True, min_value=0.0)
    tax_rate = Float(default=0.0)
    tax_amount = Float(default=0.0)
    delivery_charge = Float(default=0.0)
    commission_amount = Float(default=0.0)
    variant_options = Text()  # JSON: list of {size, color, price}

    def matching_variant_price(self):
        """Price of the variant matching this line's size and color."""
        options = json.loads(self.variant_options) if self.variant_options else []
        variant = next(
            (v for v in options if v.get("size") == self.selected_size and v.get("color") == self.selected_color),
            None,
        )
        if variant is None:
            raise InvalidVariantError(
                {"variant": [f"No variant of item {self.item_id} matches the selected size and color"]}
            )
        if not variant.get("price"):
            raise InvalidPriceError({"price": [f"Price not found for item {self.item_id}"]})
        return variant["price"]


@marketplace.entity(part_of="Order")
class LedgerEntry:
    """One append-only record in the order's transaction history."""

    sequence = Integer(required=True, min_value=1)
    entry_type = String(required=True, max_length=100)
    family = String(required=True, choices=LedgerFamily)
    amount = Float(default=0.0)
    status = String(required=True, choices=EntryStatus)
    recorded_at = DateTime(required=True)
    details = Text()  # JSON payload, e.g. frozen bank details


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Order:
    order_number = String(required=True, max_length=50)
    buyer_id = String(required=True, max_length=255)
    seller_id = Identifier()
    source_cart_id = Identifier()
    lines = HasMany(OrderLine)
    ledger_entries = HasMany(LedgerEntry)
    subtotal = Float(default=0.0)
    tax = Float(default=0.0)
    delivery_charge = Float(default=0.0)
    commission = Float(default=0.0)
    total_price = Float(default=0.0)
    currency = String(max_length=3, default="USD")
    payment_method = String(required=True, choices=PaymentMethod)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.NOT_REQUIRED.value)
    payment_reference = String(max_length=255)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    note = String(max_length=1000)
    delivery_address = ValueObject(DeliveryAddress)
    delivery_partner_id = Identifier()
    partner_response = String(choices=PartnerResponse)
    cancellation_reason = String(max_length=500)
    refund_status = String(choices=NegotiationStatus, default=NegotiationStatus.NONE.value)
    refund_details = ValueObject(RefundDetails)
    refund_bank_details = ValueObject(BankDetails)
    return_status = String(choices=NegotiationStatus, default=NegotiationStatus.NONE.value)
    return_details = ValueObject(ReturnDetails)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_price_must_reconcile(self):
        expected = self.subtotal + self.tax + self.delivery_charge + self.commission
        if self.total_price != expected:
            raise ValidationError(
                {"total_price": [f"Total {self.total_price} does not match the sum of its parts ({expected})"]}
            )

    @invariant.post
    def pending_refund_must_have_details(self):
        if self.refund_status == NegotiationStatus.PENDING.value and self.refund_details is None:
            raise ValidationError({"refund_details": ["A pending refund must carry its details"]})

    @invariant.post
    def pending_return_must_have_details(self):
        if self.return_status == NegotiationStatus.PENDING.value and self.return_details is None:
            raise ValidationError({"return_details": ["A pending return or exchange must carry its details"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, snapshot, payment_method, note=None, currency="USD", cart_id=None):
        """Create a pending order from a cart's checkout snapshot.

        Args:
            snapshot: Dict from ``Cart.checkout_snapshot()``; product lines may
                carry ``variant_options`` (list of {size, color, price}).
            payment_method: ``online`` or ``cash_on_delivery``.
        """
        method = parse_choice(PaymentMethod, payment_method, "payment_method")
        lines_data = snapshot["lines"]
        pricing = snapshot["pricing"]
        needs_address = any(ItemKind(line["kind"]) in DELIVERABLE_KINDS for line in lines_data)
        now = datetime.now(UTC)

        order = cls(
            order_number=f"#{int(now.timestamp())}",
            buyer_id=snapshot["buyer_id"],
            seller_id=lines_data[0]["seller_id"],
            source_cart_id=cart_id,
            subtotal=pricing["subtotal"],
            tax=pricing["tax"],
            delivery_charge=pricing["delivery_charge"],
            commission=pricing["commission"],
            total_price=pricing["total_price"],
            currency=currency,
            payment_method=method.value,
            payment_status=(
                PaymentStatus.PENDING.value if method == PaymentMethod.ONLINE else PaymentStatus.NOT_REQUIRED.value
            ),
            note=note,
            delivery_address=(
                DeliveryAddress(**snapshot["delivery_address"])
                if needs_address and snapshot.get("delivery_address")
                else None
            ),
            created_at=now,
            updated_at=now,
        )

        for line_data in lines_data:
            options = line_data.get("variant_options")
            order.add_lines(
                OrderLine(
                    **{k: v for k, v in line_data.items() if k != "variant_options"},
                    variant_options=json.dumps(options) if options is not None else None,
                )
            )

        order._append_entry(
            "Order Placed",
            LedgerFamily.ORDER,
            EntryStatus.COMPLETED,
            order.total_price,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                buyer_id=order.buyer_id,
                seller_id=str(order.seller_id) if order.seller_id else None,
                payment_method=order.payment_method,
                line_count=len(lines_data),
                total_price=order.total_price,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------
    def _append_entry(self, entry_type, family: LedgerFamily, status: EntryStatus, amount, details=None):
        entry = LedgerEntry(
            sequence=len(self.ledger_entries) + 1,
            entry_type=entry_type,
            family=family.value,
            amount=amount,
            status=status.value,
            recorded_at=datetime.now(UTC),
            details=json.dumps(details) if details else None,
        )
        self.add_ledger_entries(entry)
        self.updated_at = entry.recorded_at
        return entry

    def ledger(self):
        """Ledger entries in append order."""
        return sorted(self.ledger_entries, key=lambda e: e.sequence)

    def latest_entry(self, family: LedgerFamily):
        entries = [e for e in self.ledger() if e.family == family.value]
        return entries[-1] if entries else None

    # -------------------------------------------------------------------
    # State helpers
    # -------------------------------------------------------------------
    @property
    def current_status(self) -> OrderStatus:
        return OrderStatus(self.status)

    def is_terminal(self):
        return self.current_status in _TERMINAL_STATES

    def _assert_not_terminal(self):
        if self.is_terminal():
            raise InvalidStateError({"status": [f"Order is already {self.status} and can no longer change"]})

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def record_payment_success(self, reference=None):
        """Mark an online order as paid."""
        if self.current_status != OrderStatus.PENDING:
            raise InvalidStateError({"status": [f"Cannot record a payment on a {self.status} order"]})

        self.status = OrderStatus.PAID.value
        self.payment_status = PaymentStatus.PAID.value
        self.payment_reference = reference
        self._append_entry("Payment Completed", LedgerFamily.PAYMENT, EntryStatus.COMPLETED, self.total_price)

        self.raise_(
            PaymentCompleted(
                order_id=str(self.id),
                reference=reference,
                amount=self.total_price,
            )
        )

    def record_payment_failure(self, reason, gateway_status=None, idempotency_key=None):
        """Mark an online order as failed. The order stays for audit and is terminal."""
        if self.current_status != OrderStatus.PENDING:
            raise InvalidStateError({"status": [f"Cannot record a payment on a {self.status} order"]})

        self.status = OrderStatus.PAYMENT_FAILED.value
        self.payment_status = PaymentStatus.FAILED.value
        self._append_entry(
            "Payment Failed",
            LedgerFamily.PAYMENT,
            EntryStatus.FAILED,
            self.total_price,
            details={"reason": reason, "gateway_status": gateway_status, "idempotency_key": idempotency_key},
        )

        self.raise_(
            PaymentFailed(
                order_id=str(self.id),
                reason=reason,
                amount=self.total_price,
            )
        )

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def update_status(self, new_status):
        """Move the order to any known status unless it is already terminal."""
        target = parse_choice(OrderStatus, new_status, "status")
        self._assert_not_terminal()

        previous = self.status
        self.status = target.value
        self._append_entry(f"Order {_ledger_label(target)}", LedgerFamily.ORDER, EntryStatus.COMPLETED, self.total_price)

        self.raise_(
            OrderStatusUpdated(
                order_id=str(self.id),
                previous_status=previous,
                new_status=target.value,
            )
        )

    def record_partner_decision(self, response):
        """Seller accepts or rejects the order request."""
        response = parse_choice(PartnerResponse, response, "decision")
        if self.current_status not in AWAITING_DECISION_STATES:
            raise InvalidStateError({"status": ["Order is no longer awaiting a decision"]})

        accepted = response == PartnerResponse.ACCEPTED
        self.status = OrderStatus.ACCEPTED.value if accepted else OrderStatus.REJECTED.value
        self.partner_response = response.value
        self._append_entry(
            f"Request {_ledger_label(response)}",
            LedgerFamily.ORDER,
            EntryStatus.COMPLETED if accepted else EntryStatus.REJECTED,
            self.total_price,
        )

        self.raise_(
            PartnerDecisionRecorded(
                order_id=str(self.id),
                decision=response.value,
                new_status=self.status,
            )
        )

    def assign_delivery_partner(self, delivery_partner_id):
        """Hand an accepted order to a delivery partner."""
        if self.current_status != OrderStatus.ACCEPTED:
            raise InvalidStateError({"status": ["Only accepted orders can be sent out for delivery"]})

        self.delivery_partner_id = delivery_partner_id
        self.status = OrderStatus.OUT_FOR_DELIVERY.value
        self._append_entry(
            f"Order {_ledger_label(OrderStatus.OUT_FOR_DELIVERY)}",
            LedgerFamily.ORDER,
            EntryStatus.COMPLETED,
            self.total_price,
            details={"delivery_partner_id": str(delivery_partner_id)},
        )

        self.raise_(
            DeliveryPartnerAssigned(
                order_id=str(self.id),
                delivery_partner_id=str(delivery_partner_id),
            )
        )

    def cancel(self, reason):
        if self.current_status not in _CANCELLABLE_STATES:
            raise InvalidStateError({"status": [f"Cannot cancel an order that is {self.status}"]})

        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = reason
        self._append_entry("Order Cancelled", LedgerFamily.ORDER, EntryStatus.COMPLETED, self.total_price)

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                reason=reason,
                cancelled_at=self.updated_at,
            )
        )

    # -------------------------------------------------------------------
    # Refund negotiation
    # -------------------------------------------------------------------
    def refund_amount_for(self, item_ids):
        """Order-time value of the product lines among ``item_ids``."""
        wanted = {str(i) for i in item_ids}
        return sum(
            line.matching_variant_price() * line.quantity
            for line in self.lines
            if str(line.item_id) in wanted and line.kind == ItemKind.PRODUCT.value
        )

    def request_refund(self, item_ids, reason, bank_details=None, requested_by=None):
        if self.refund_status == NegotiationStatus.PENDING.value:
            raise InvalidStateError({"refund": ["A refund request is already pending for this order"]})

        amount = self.refund_amount_for(item_ids)
        if amount <= 0:
            raise ValidationError({"item_ids": ["Invalid refund amount calculated"]})

        now = datetime.now(UTC)
        with atomic_change(self):
            self.refund_status = NegotiationStatus.PENDING.value
            self.refund_details = RefundDetails(
                reason=reason,
                amount=amount,
                item_ids=json.dumps([str(i) for i in item_ids]),
                requested_by=requested_by,
                requested_at=now,
            )
            self.refund_bank_details = BankDetails(**bank_details) if bank_details else None
            self._append_entry("Refund Requested", LedgerFamily.REFUND, EntryStatus.PENDING, amount)

        self.raise_(
            RefundRequested(
                order_id=str(self.id),
                amount=amount,
                reason=reason,
                requested_at=now,
            )
        )
        return amount

    def decide_refund(self, decision):
        decision = parse_choice(Decision, decision, "decision")
        if self.refund_status != NegotiationStatus.PENDING.value:
            raise InvalidStateError({"refund": ["Refund request is either not pending or already processed"]})

        approved = decision == Decision.ACCEPT
        details = self.refund_details
        payout = None
        if approved:
            payout = {
                "bank_details": self.refund_bank_details.to_dict() if self.refund_bank_details else {},
                "reason": details.reason or "",
            }

        now = datetime.now(UTC)
        with atomic_change(self):
            self.refund_status = NegotiationStatus.APPROVED.value if approved else NegotiationStatus.REJECTED.value
            self.refund_details = RefundDetails(
                reason=details.reason,
                amount=details.amount,
                item_ids=details.item_ids,
                requested_by=details.requested_by,
                requested_at=details.requested_at,
                decided_at=now,
            )
            self._append_entry(
                f"Refund {'Approved' if approved else 'Rejected'}",
                LedgerFamily.REFUND,
                EntryStatus.COMPLETED if approved else EntryStatus.REJECTED,
                details.amount,
                details=payout,
            )

        self.raise_(
            RefundDecided(
                order_id=str(self.id),
                decision=decision.value,
                amount=details.amount,
                decided_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Return / exchange negotiation
    # -------------------------------------------------------------------
    def initiate_return(self, item_ids, reason, action, requested_by=None):
        action = parse_choice(ReturnAction, action, "action")
        if self.return_status == NegotiationStatus.PENDING.value:
            raise InvalidStateError({"return": ["A return or exchange request is already pending for this order"]})

        ordered = {str(line.item_id) for line in self.lines}
        unknown = [str(i) for i in item_ids if str(i) not in ordered]
        if not item_ids or unknown:
            raise ValidationError({"item_ids": [f"Items not part of this order: {', '.join(unknown) or 'none given'}"]})

        label = _ledger_label(action)
        now = datetime.now(UTC)
        with atomic_change(self):
            self.return_status = NegotiationStatus.PENDING.value
            self.return_details = ReturnDetails(
                action=action.value,
                reason=reason,
                item_ids=json.dumps([str(i) for i in item_ids]),
                requested_by=requested_by,
                requested_at=now,
            )
            self._append_entry(
                f"{label} Requested",
                LedgerFamily.RETURN,
                EntryStatus.PENDING,
                self.total_price,
                details={"action": action.value, "reason": reason, "item_ids": [str(i) for i in item_ids]},
            )

        self.raise_(
            ReturnInitiated(
                order_id=str(self.id),
                action=action.value,
                reason=reason,
                requested_at=now,
            )
        )

    def decide_return(self, decision):
        decision = parse_choice(Decision, decision, "decision")
        if self.return_status != NegotiationStatus.PENDING.value:
            raise InvalidStateError(
                {"return": ["Return/Exchange request is either not pending or already processed"]}
            )

        approved = decision == Decision.ACCEPT
        details = self.return_details
        label = _ledger_label(ReturnAction(details.action))
        requested = self.latest_entry(LedgerFamily.RETURN)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.return_status = NegotiationStatus.APPROVED.value if approved else NegotiationStatus.REJECTED.value
            self.return_details = ReturnDetails(
                action=details.action,
                reason=details.reason,
                item_ids=details.item_ids,
                requested_by=details.requested_by,
                requested_at=details.requested_at,
                decided_at=now,
            )
            self._append_entry(
                f"{label} {'Approved' if approved else 'Rejected'}",
                LedgerFamily.RETURN,
                EntryStatus.COMPLETED if approved else EntryStatus.REJECTED,
                requested.amount if requested else self.total_price,
            )

        self.raise_(
            ReturnDecided(
                order_id=str(self.id),
                action=details.action,
                decision=decision.value,
                decided_at=now,
            )
        )
