"""Pydantic request/response schemas for the Marketplace API.

These are external contracts (anti-corruption layer) — separate from
internal Protean commands. Business rules such as quantity bounds are left
to the domain so every rule violation surfaces with the same error shape.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class AddressSchema(BaseModel):
    name: str
    street: str
    city: str
    state: str | None = None
    country: str
    postal_code: str
    phone: str


class BankDetailsSchema(BaseModel):
    country: str | None = None
    bank_name: str | None = None
    account_name: str | None = None
    account_number: str | None = None
    ifsc_code: str | None = None


# ---------------------------------------------------------------------------
# Cart Request Schemas
# ---------------------------------------------------------------------------
class CreateCartRequest(BaseModel):
    customer_id: str | None = None
    guest_id: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "customer_id": "buyer-001",
                    "guest_id": None,
                }
            ]
        }
    }


class AddLineRequest(BaseModel):
    item_id: str
    quantity: int = 1
    variant_id: str | None = None
    selected_size: str | None = None
    selected_color: str | None = None
    check_in: datetime | None = None
    check_out: datetime | None = None
    guest_count: int | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "item_id": "item-room-001",
                    "quantity": 1,
                    "check_in": "2026-03-01T14:00:00Z",
                    "check_out": "2026-03-03T11:00:00Z",
                    "guest_count": 2,
                }
            ]
        }
    }


class UpdateLineQuantityRequest(BaseModel):
    new_quantity: int


class PlaceOrderRequest(BaseModel):
    payment_method: Literal["online", "cash_on_delivery"]
    note: str | None = None


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class UpdateOrderStatusRequest(BaseModel):
    status: str


class PartnerDecisionRequest(BaseModel):
    decision: Literal["accepted", "rejected"]


class AssignDeliveryPartnerRequest(BaseModel):
    delivery_partner_id: str


class CancelOrderRequest(BaseModel):
    reason: str | None = None


class RequestRefundRequest(BaseModel):
    item_ids: list[str]
    reason: str | None = None
    bank_details: BankDetailsSchema | None = None
    requested_by: str | None = None


class InitiateReturnRequest(BaseModel):
    item_ids: list[str]
    reason: str | None = None
    action: Literal["return", "exchange"]
    requested_by: str | None = None


class NegotiationDecisionRequest(BaseModel):
    decision: Literal["accept", "reject"]


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CartIdResponse(BaseModel):
    cart_id: str


class LineIdResponse(BaseModel):
    line_id: str


class OrderIdResponse(BaseModel):
    order_id: str


class RefundAmountResponse(BaseModel):
    amount: float


class StatusResponse(BaseModel):
    status: str = "ok"


class CartLineResponse(BaseModel):
    line_id: str
    item_id: str
    kind: str
    variant_id: str | None = None
    quantity: int
    selected_size: str | None = None
    selected_color: str | None = None
    check_in: datetime | None = None
    check_out: datetime | None = None
    unit_price: float
    price: float
    tax_rate: float
    tax_amount: float
    delivery_charge: float
    commission_amount: float


class CartResponse(BaseModel):
    cart_id: str
    customer_id: str | None = None
    guest_id: str | None = None
    lines: list[CartLineResponse]
    delivery_address: AddressSchema | None = None
    requires_delivery_address: bool
    subtotal: float
    tax: float
    delivery_charge: float
    commission: float
    total_price: float


class LedgerEntryResponse(BaseModel):
    sequence: int
    entry_type: str
    family: str
    amount: float
    status: str
    recorded_at: datetime
    details: dict | None = None


class RefundDetailsResponse(BaseModel):
    reason: str | None = None
    amount: float
    item_ids: list[str]
    requested_by: str | None = None
    requested_at: datetime | None = None
    decided_at: datetime | None = None
    bank_details: BankDetailsSchema | None = None


class ReturnDetailsResponse(BaseModel):
    action: str
    reason: str | None = None
    item_ids: list[str]
    requested_by: str | None = None
    requested_at: datetime | None = None
    decided_at: datetime | None = None


class OrderLineResponse(BaseModel):
    item_id: str
    kind: str
    variant_id: str | None = None
    quantity: int
    selected_size: str | None = None
    selected_color: str | None = None
    unit_price: float
    price: float
    tax_amount: float
    delivery_charge: float


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    buyer_id: str
    seller_id: str | None = None
    status: str
    payment_method: str
    payment_status: str
    lines: list[OrderLineResponse]
    subtotal: float
    tax: float
    delivery_charge: float
    commission: float
    total_price: float
    currency: str
    note: str | None = None
    delivery_address: AddressSchema | None = None
    cancellation_reason: str | None = None
    refund_status: str
    refund: RefundDetailsResponse | None = None
    return_status: str
    return_request: ReturnDetailsResponse | None = None
    created_at: datetime


class TransactionHistoryResponse(BaseModel):
    order_id: str
    order_number: str
    status: str
    payment_method: str
    total_price: float
    entries: list[LedgerEntryResponse]
    refund_status: str
    refund: RefundDetailsResponse | None = None
    return_status: str
    return_request: ReturnDetailsResponse | None = None
