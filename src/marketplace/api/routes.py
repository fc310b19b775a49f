"""FastAPI routes for the Marketplace domain — carts and orders.

Mutations go through the per-entity lock so requests against the same cart
or order are applied one at a time. The commission rate is read from
settings once per request and carried on the cart commands.
"""

import json

from fastapi import APIRouter
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from marketplace.api.schemas import (
    AddLineRequest,
    AddressSchema,
    AssignDeliveryPartnerRequest,
    BankDetailsSchema,
    CancelOrderRequest,
    CartIdResponse,
    CartLineResponse,
    CartResponse,
    CreateCartRequest,
    InitiateReturnRequest,
    LedgerEntryResponse,
    LineIdResponse,
    NegotiationDecisionRequest,
    OrderIdResponse,
    OrderLineResponse,
    OrderResponse,
    PartnerDecisionRequest,
    PlaceOrderRequest,
    RefundAmountResponse,
    RefundDetailsResponse,
    RequestRefundRequest,
    ReturnDetailsResponse,
    StatusResponse,
    TransactionHistoryResponse,
    UpdateLineQuantityRequest,
    UpdateOrderStatusRequest,
)
from marketplace.cart.items import AddLine, RemoveLine, UpdateLineQuantity
from marketplace.cart.management import ClearCart, CreateCart, SetDeliveryAddress
from marketplace.locks import process_exclusively
from marketplace.order.cancellation import CancelOrder
from marketplace.order.creation import place_order
from marketplace.order.decision import RecordPartnerDecision
from marketplace.order.fulfillment import AssignDeliveryPartner, UpdateOrderStatus
from marketplace.order.refunds import DecideRefund, RequestRefund
from marketplace.order.returns import DecideReturn, InitiateReturn
from marketplace.queries import (
    get_cart,
    get_ledger,
    get_order,
    orders_for_buyer,
    orders_for_seller,
    pending_requests_for_seller,
    transaction_history,
)
from marketplace.settings import get_settings


# ---------------------------------------------------------------------------
# Presenters
# ---------------------------------------------------------------------------
def _address(value) -> AddressSchema | None:
    return AddressSchema(**value.to_dict()) if value is not None else None


def _cart_response(cart) -> CartResponse:
    lines = sorted(cart.lines, key=lambda li: li.added_at or cart.created_at)
    return CartResponse(
        cart_id=str(cart.id),
        customer_id=str(cart.customer_id) if cart.customer_id else None,
        guest_id=cart.guest_id,
        lines=[
            CartLineResponse(
                line_id=str(li.id),
                item_id=str(li.item_id),
                kind=li.kind,
                variant_id=str(li.variant_id) if li.variant_id else None,
                quantity=li.quantity,
                selected_size=li.selected_size,
                selected_color=li.selected_color,
                check_in=li.check_in,
                check_out=li.check_out,
                unit_price=li.unit_price,
                price=li.price,
                tax_rate=li.tax_rate,
                tax_amount=li.tax_amount,
                delivery_charge=li.delivery_charge,
                commission_amount=li.commission_amount,
            )
            for li in lines
        ],
        delivery_address=_address(cart.delivery_address),
        requires_delivery_address=cart.requires_delivery_address,
        subtotal=cart.subtotal,
        tax=cart.tax,
        delivery_charge=cart.delivery_charge,
        commission=cart.commission,
        total_price=cart.total_price,
    )


def _refund_response(order) -> RefundDetailsResponse | None:
    details = order.refund_details
    if details is None:
        return None
    bank = order.refund_bank_details
    return RefundDetailsResponse(
        reason=details.reason,
        amount=details.amount,
        item_ids=json.loads(details.item_ids) if details.item_ids else [],
        requested_by=str(details.requested_by) if details.requested_by else None,
        requested_at=details.requested_at,
        decided_at=details.decided_at,
        bank_details=BankDetailsSchema(**bank.to_dict()) if bank is not None else None,
    )


def _return_response(order) -> ReturnDetailsResponse | None:
    details = order.return_details
    if details is None:
        return None
    return ReturnDetailsResponse(
        action=details.action,
        reason=details.reason,
        item_ids=json.loads(details.item_ids) if details.item_ids else [],
        requested_by=str(details.requested_by) if details.requested_by else None,
        requested_at=details.requested_at,
        decided_at=details.decided_at,
    )


def _ledger_entry_response(entry) -> LedgerEntryResponse:
    return LedgerEntryResponse(
        sequence=entry.sequence,
        entry_type=entry.entry_type,
        family=entry.family,
        amount=entry.amount,
        status=entry.status,
        recorded_at=entry.recorded_at,
        details=json.loads(entry.details) if entry.details else None,
    )


def _order_response(order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        buyer_id=order.buyer_id,
        seller_id=str(order.seller_id) if order.seller_id else None,
        status=order.status,
        payment_method=order.payment_method,
        payment_status=order.payment_status,
        lines=[
            OrderLineResponse(
                item_id=str(li.item_id),
                kind=li.kind,
                variant_id=str(li.variant_id) if li.variant_id else None,
                quantity=li.quantity,
                selected_size=li.selected_size,
                selected_color=li.selected_color,
                unit_price=li.unit_price,
                price=li.price,
                tax_amount=li.tax_amount,
                delivery_charge=li.delivery_charge,
            )
            for li in order.lines
        ],
        subtotal=order.subtotal,
        tax=order.tax,
        delivery_charge=order.delivery_charge,
        commission=order.commission,
        total_price=order.total_price,
        currency=order.currency,
        note=order.note,
        delivery_address=_address(order.delivery_address),
        cancellation_reason=order.cancellation_reason,
        refund_status=order.refund_status,
        refund=_refund_response(order),
        return_status=order.return_status,
        return_request=_return_response(order),
        created_at=order.created_at,
    )


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/carts", tags=["carts"])


@cart_router.post("", status_code=201, response_model=CartIdResponse)
async def create_cart(body: CreateCartRequest) -> CartIdResponse:
    command = CreateCart(
        customer_id=body.customer_id,
        guest_id=body.guest_id,
    )
    result = current_domain.process(command, asynchronous=False)
    return CartIdResponse(cart_id=result)


@cart_router.get("/{cart_id}", response_model=CartResponse)
async def read_cart(cart_id: str) -> CartResponse:
    return _cart_response(get_cart(cart_id))


@cart_router.post("/{cart_id}/lines", response_model=LineIdResponse)
async def add_cart_line(cart_id: str, body: AddLineRequest) -> LineIdResponse:
    command = AddLine(
        cart_id=cart_id,
        item_id=body.item_id,
        quantity=body.quantity,
        variant_id=body.variant_id,
        selected_size=body.selected_size,
        selected_color=body.selected_color,
        check_in=body.check_in,
        check_out=body.check_out,
        guest_count=body.guest_count,
        commission_rate=get_settings().commission_rate,
    )
    line_id = process_exclusively(command, "cart", cart_id)
    return LineIdResponse(line_id=line_id)


@cart_router.put("/{cart_id}/lines/{line_id}", response_model=StatusResponse)
async def update_cart_line(cart_id: str, line_id: str, body: UpdateLineQuantityRequest) -> StatusResponse:
    command = UpdateLineQuantity(
        cart_id=cart_id,
        line_id=line_id,
        new_quantity=body.new_quantity,
        commission_rate=get_settings().commission_rate,
    )
    process_exclusively(command, "cart", cart_id)
    return StatusResponse()


@cart_router.delete("/{cart_id}/lines/{line_id}", response_model=StatusResponse)
async def remove_cart_line(cart_id: str, line_id: str) -> StatusResponse:
    command = RemoveLine(
        cart_id=cart_id,
        line_id=line_id,
        commission_rate=get_settings().commission_rate,
    )
    process_exclusively(command, "cart", cart_id)
    return StatusResponse()


@cart_router.put("/{cart_id}/clear", response_model=StatusResponse)
async def clear_cart(cart_id: str) -> StatusResponse:
    process_exclusively(ClearCart(cart_id=cart_id), "cart", cart_id)
    return StatusResponse()


@cart_router.put("/{cart_id}/delivery-address", response_model=StatusResponse)
async def set_delivery_address(cart_id: str, body: AddressSchema) -> StatusResponse:
    command = SetDeliveryAddress(
        cart_id=cart_id,
        address=json.dumps(body.model_dump()),
    )
    process_exclusively(command, "cart", cart_id)
    return StatusResponse()


@cart_router.post("/{cart_id}/orders", status_code=201, response_model=OrderIdResponse)
async def place_cart_order(cart_id: str, body: PlaceOrderRequest) -> OrderIdResponse:
    order_id = place_order(cart_id, payment_method=body.payment_method, note=body.note)
    return OrderIdResponse(order_id=order_id)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("", response_model=list[OrderResponse])
async def list_orders(
    buyer_id: str | None = None,
    seller_id: str | None = None,
    kind: str | None = None,
    status: str | None = None,
) -> list[OrderResponse]:
    if buyer_id:
        orders = orders_for_buyer(buyer_id, kind=kind, status=status)
    elif seller_id:
        orders = orders_for_seller(seller_id)
    else:
        raise ValidationError({"filter": ["Provide either buyer_id or seller_id"]})
    return [_order_response(order) for order in orders]


@order_router.get("/pending", response_model=list[OrderResponse])
async def list_pending_requests(seller_id: str, kind: str | None = None) -> list[OrderResponse]:
    return [_order_response(order) for order in pending_requests_for_seller(seller_id, kind=kind)]


@order_router.get("/{order_id}", response_model=OrderResponse)
async def read_order(order_id: str) -> OrderResponse:
    return _order_response(get_order(order_id))


@order_router.get("/{order_id}/ledger", response_model=list[LedgerEntryResponse])
async def read_ledger(order_id: str) -> list[LedgerEntryResponse]:
    return [_ledger_entry_response(entry) for entry in get_ledger(order_id)]


@order_router.get("/{order_id}/transactions", response_model=TransactionHistoryResponse)
async def read_transaction_history(order_id: str) -> TransactionHistoryResponse:
    history = transaction_history(order_id)
    order = history["order"]
    return TransactionHistoryResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        status=order.status,
        payment_method=order.payment_method,
        total_price=order.total_price,
        entries=[_ledger_entry_response(entry) for entry in history["ledger"]],
        refund_status=history["refund_status"],
        refund=_refund_response(order) if history["refund"] is not None else None,
        return_status=history["return_status"],
        return_request=_return_response(order) if history["return"] is not None else None,
    )


@order_router.put("/{order_id}/status", response_model=StatusResponse)
async def update_order_status(order_id: str, body: UpdateOrderStatusRequest) -> StatusResponse:
    process_exclusively(UpdateOrderStatus(order_id=order_id, status=body.status), "order", order_id)
    return StatusResponse()


@order_router.put("/{order_id}/decision", response_model=StatusResponse)
async def record_partner_decision(order_id: str, body: PartnerDecisionRequest) -> StatusResponse:
    process_exclusively(RecordPartnerDecision(order_id=order_id, decision=body.decision), "order", order_id)
    return StatusResponse()


@order_router.put("/{order_id}/delivery-partner", response_model=StatusResponse)
async def assign_delivery_partner(order_id: str, body: AssignDeliveryPartnerRequest) -> StatusResponse:
    command = AssignDeliveryPartner(
        order_id=order_id,
        delivery_partner_id=body.delivery_partner_id,
    )
    process_exclusively(command, "order", order_id)
    return StatusResponse()


@order_router.put("/{order_id}/cancel", response_model=StatusResponse)
async def cancel_order(order_id: str, body: CancelOrderRequest) -> StatusResponse:
    process_exclusively(CancelOrder(order_id=order_id, reason=body.reason), "order", order_id)
    return StatusResponse()


@order_router.post("/{order_id}/refunds", status_code=201, response_model=RefundAmountResponse)
async def request_refund(order_id: str, body: RequestRefundRequest) -> RefundAmountResponse:
    command = RequestRefund(
        order_id=order_id,
        item_ids=json.dumps(body.item_ids),
        reason=body.reason,
        bank_details=json.dumps(body.bank_details.model_dump()) if body.bank_details else None,
        requested_by=body.requested_by,
    )
    amount = process_exclusively(command, "order", order_id)
    return RefundAmountResponse(amount=amount)


@order_router.put("/{order_id}/refunds/decision", response_model=StatusResponse)
async def decide_refund(order_id: str, body: NegotiationDecisionRequest) -> StatusResponse:
    process_exclusively(DecideRefund(order_id=order_id, decision=body.decision), "order", order_id)
    return StatusResponse()


@order_router.post("/{order_id}/returns", status_code=201, response_model=StatusResponse)
async def initiate_return(order_id: str, body: InitiateReturnRequest) -> StatusResponse:
    command = InitiateReturn(
        order_id=order_id,
        item_ids=json.dumps(body.item_ids),
        reason=body.reason,
        action=body.action,
        requested_by=body.requested_by,
    )
    process_exclusively(command, "order", order_id)
    return StatusResponse()


@order_router.put("/{order_id}/returns/decision", response_model=StatusResponse)
async def decide_return(order_id: str, body: NegotiationDecisionRequest) -> StatusResponse:
    process_exclusively(DecideReturn(order_id=order_id, decision=body.decision), "order", order_id)
    return StatusResponse()
