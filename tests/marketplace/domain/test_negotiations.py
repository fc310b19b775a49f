"""Tests for the refund and return/exchange negotiations on an order."""

import json

import pytest
from marketplace.exceptions import InvalidStateError, InvalidVariantError
from marketplace.order.events import RefundDecided, RefundRequested, ReturnDecided, ReturnInitiated
from marketplace.order.order import EntryStatus, LedgerFamily, NegotiationStatus, Order
from protean.exceptions import ValidationError

VARIANTS = [
    {"size": "S", "color": "Red", "price": 15.0},
    {"size": "M", "color": "Blue", "price": 25.0},
]

BANK = {
    "country": "IN",
    "bank_name": "State Bank",
    "account_name": "Asha Rao",
    "account_number": "00112233",
    "ifsc_code": "SBIN0000001",
}


def _product_line(size, color, price, item_id="prod-1"):
    return {
        "item_id": item_id,
        "kind": "product",
        "seller_id": "seller-3",
        "variant_id": f"v-{size.lower()}",
        "quantity": 1,
        "selected_size": size,
        "selected_color": color,
        "unit_price": price,
        "price": price,
        "tax_rate": 0.0,
        "tax_amount": 0.0,
        "delivery_charge": 2.0,
        "commission_amount": 0.0,
        "variant_options": VARIANTS,
    }


def _make_order(lines=None):
    lines = lines or [_product_line("S", "Red", 15.0), _product_line("M", "Blue", 25.0)]
    subtotal = sum(line["price"] for line in lines)
    delivery = sum(line["delivery_charge"] for line in lines)
    snapshot = {
        "buyer_id": "buyer-001",
        "lines": lines,
        "pricing": {
            "subtotal": subtotal,
            "tax": 0.0,
            "delivery_charge": delivery,
            "commission": 0.0,
            "total_price": subtotal + delivery,
        },
        "delivery_address": {
            "name": "Asha Rao",
            "street": "12 Lake Road",
            "city": "Pune",
            "country": "IN",
            "postal_code": "411001",
            "phone": "+91-9800000000",
        },
    }
    return Order.place(snapshot, payment_method="cash_on_delivery")


class TestRequestRefund:
    def test_refund_amount_over_two_product_lines(self):
        order = _make_order()
        amount = order.request_refund(["prod-1"], "Wrong fit", BANK, requested_by="buyer-001")

        assert amount == 40.0
        assert order.refund_status == NegotiationStatus.PENDING.value
        assert order.refund_details.amount == 40.0
        assert order.refund_bank_details.ifsc_code == "SBIN0000001"

        entry = order.latest_entry(LedgerFamily.REFUND)
        assert entry.entry_type == "Refund Requested"
        assert entry.status == EntryStatus.PENDING.value
        assert entry.amount == 40.0
        assert any(isinstance(e, RefundRequested) for e in order._events)

    def test_second_request_while_pending(self):
        order = _make_order()
        order.request_refund(["prod-1"], "Wrong fit", BANK)
        with pytest.raises(InvalidStateError):
            order.request_refund(["prod-1"], "Again", BANK)

    def test_refund_uses_order_time_variant_prices(self):
        line = _product_line("S", "Red", 15.0)
        line["variant_options"] = [{"size": "S", "color": "Red", "price": 12.0}]
        order = _make_order([line])

        assert order.request_refund(["prod-1"], "Damaged") == 12.0

    def test_non_product_lines_are_ignored(self):
        food = {
            **_product_line("S", "Red", 10.0, item_id="food-1"),
            "kind": "food",
            "variant_options": None,
            "selected_size": None,
            "selected_color": None,
        }
        order = _make_order([food])
        with pytest.raises(ValidationError):
            order.request_refund(["food-1"], "Cold")

    def test_unmatched_variant(self):
        line = _product_line("L", "Green", 30.0)
        order = _make_order([line])
        with pytest.raises(InvalidVariantError):
            order.request_refund(["prod-1"], "Wrong colour")

    def test_items_outside_order_give_zero_amount(self):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.request_refund(["other-item"], "Nope")
        assert order.refund_status == NegotiationStatus.NONE.value


class TestDecideRefund:
    def test_approve_carries_bank_details(self):
        order = _make_order()
        order.request_refund(["prod-1"], "Wrong fit", BANK)
        order.decide_refund("accept")

        assert order.refund_status == NegotiationStatus.APPROVED.value
        assert order.refund_details.decided_at is not None
        entry = order.latest_entry(LedgerFamily.REFUND)
        assert entry.entry_type == "Refund Approved"
        assert entry.status == EntryStatus.COMPLETED.value
        assert entry.amount == 40.0
        details = json.loads(entry.details)
        assert details["reason"] == "Wrong fit"
        assert details["bank_details"]["bank_name"] == "State Bank"
        assert any(isinstance(e, RefundDecided) for e in order._events)

    def test_reject(self):
        order = _make_order()
        order.request_refund(["prod-1"], "Wrong fit", BANK)
        order.decide_refund("reject")

        assert order.refund_status == NegotiationStatus.REJECTED.value
        entry = order.latest_entry(LedgerFamily.REFUND)
        assert entry.entry_type == "Refund Rejected"
        assert entry.status == EntryStatus.REJECTED.value
        assert entry.details is None

    def test_decide_without_pending_request(self):
        with pytest.raises(InvalidStateError):
            _make_order().decide_refund("accept")

    def test_decide_twice(self):
        order = _make_order()
        order.request_refund(["prod-1"], "Wrong fit", BANK)
        order.decide_refund("accept")
        with pytest.raises(InvalidStateError):
            order.decide_refund("reject")

    def test_new_request_after_decision(self):
        order = _make_order()
        order.request_refund(["prod-1"], "Wrong fit", BANK)
        order.decide_refund("reject")

        order.request_refund(["prod-1"], "Still wrong", BANK)
        assert order.refund_status == NegotiationStatus.PENDING.value

    def test_unknown_decision(self):
        order = _make_order()
        order.request_refund(["prod-1"], "Wrong fit", BANK)
        with pytest.raises(ValidationError):
            order.decide_refund("perhaps")


class TestReturns:
    def test_initiate_exchange(self):
        order = _make_order()
        order.initiate_return(["prod-1"], "Need a bigger size", "exchange", requested_by="buyer-001")

        assert order.return_status == NegotiationStatus.PENDING.value
        assert order.return_details.action == "exchange"
        entry = order.latest_entry(LedgerFamily.RETURN)
        assert entry.entry_type == "Exchange Requested"
        assert entry.status == EntryStatus.PENDING.value
        assert entry.amount == order.total_price
        assert any(isinstance(e, ReturnInitiated) for e in order._events)

    def test_second_return_while_pending(self):
        order = _make_order()
        order.initiate_return(["prod-1"], "Faulty", "return")
        with pytest.raises(InvalidStateError):
            order.initiate_return(["prod-1"], "Faulty", "exchange")

    def test_items_must_belong_to_order(self):
        with pytest.raises(ValidationError):
            _make_order().initiate_return(["other-item"], "Faulty", "return")

    def test_unknown_action(self):
        with pytest.raises(ValidationError):
            _make_order().initiate_return(["prod-1"], "Faulty", "donate")

    def test_approve_return(self):
        order = _make_order()
        order.initiate_return(["prod-1"], "Faulty", "return")
        order.decide_return("accept")

        assert order.return_status == NegotiationStatus.APPROVED.value
        entry = order.latest_entry(LedgerFamily.RETURN)
        assert entry.entry_type == "Return Approved"
        assert entry.status == EntryStatus.COMPLETED.value
        assert any(isinstance(e, ReturnDecided) for e in order._events)

    def test_reject_exchange(self):
        order = _make_order()
        order.initiate_return(["prod-1"], "Faulty", "exchange")
        order.decide_return("reject")

        assert order.latest_entry(LedgerFamily.RETURN).entry_type == "Exchange Rejected"

    def test_decide_without_pending_return(self):
        with pytest.raises(InvalidStateError):
            _make_order().decide_return("accept")

    def test_refund_and_return_tracks_are_independent(self):
        order = _make_order()
        order.request_refund(["prod-1"], "Wrong fit", BANK)
        order.initiate_return(["prod-1"], "Faulty", "return")

        order.decide_return("accept")

        assert order.refund_status == NegotiationStatus.PENDING.value
        assert order.return_status == NegotiationStatus.APPROVED.value


class TestLedger:
    def test_entries_are_appended_in_sequence(self):
        order = _make_order()
        order.record_partner_decision("accepted")
        order.request_refund(["prod-1"], "Wrong fit", BANK)
        order.decide_refund("accept")

        entries = order.ledger()
        assert [e.sequence for e in entries] == [1, 2, 3, 4]
        assert [e.entry_type for e in entries] == [
            "Order Placed",
            "Request Accepted",
            "Refund Requested",
            "Refund Approved",
        ]

    def test_latest_entry_for_missing_family(self):
        assert _make_order().latest_entry(LedgerFamily.RETURN) is None
