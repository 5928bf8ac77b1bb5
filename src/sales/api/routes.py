"""FastAPI routes for the Sales domain — orders and invoices."""

import json

from fastapi import APIRouter, HTTPException
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from sales.api.schemas import (
    AddOrderItemRequest,
    AdjustOrderPricingRequest,
    ChangeOrderStatusRequest,
    CreateOrderRequest,
    GenerateInvoiceRequest,
    InvoiceIdResponse,
    InvoiceLineResponse,
    InvoiceResponse,
    InvoiceStatusResponse,
    ItemIdResponse,
    OrderIdResponse,
    OrderItemResponse,
    OrderResponse,
    RecordInvoicePaymentRequest,
    RefreshInvoiceStatusRequest,
    StatusResponse,
    UpdateOrderItemRequest,
)
from sales.errors import AlreadyInvoiced, InvalidTransition, NotDeletable, NotInvoiceable
from sales.invoice.generation import GenerateInvoice
from sales.invoice.invoice import Invoice
from sales.invoice.lifecycle import CancelInvoice, RefreshInvoiceStatus, SendInvoice
from sales.invoice.payment import RecordInvoicePayment
from sales.order.creation import CreateOrder
from sales.order.deletion import DeleteOrder
from sales.order.duplication import DuplicateOrder
from sales.order.modification import AddOrderItem, AdjustOrderPricing, RemoveOrderItem, UpdateOrderItem
from sales.order.order import Order
from sales.order.status import ChangeOrderStatus

_CONFLICTS = (InvalidTransition, AlreadyInvoiced, NotInvoiceable, NotDeletable)


def _dispatch(command_cls, **kwargs):
    """Build and process a command, translating domain errors to HTTP errors."""
    try:
        return current_domain.process(command_cls(**kwargs), asynchronous=False)
    except ObjectNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except _CONFLICTS as exc:
        raise HTTPException(status_code=409, detail=exc.messages) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.messages) from exc


def _load(aggregate_cls, identifier: str):
    try:
        return current_domain.repository_for(aggregate_cls).get(identifier)
    except ObjectNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


def _order_response(order: Order) -> OrderResponse:
    return OrderResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        client_id=str(order.client_id),
        status=order.status,
        order_date=order.order_date,
        expected_delivery_date=order.expected_delivery_date,
        delivery_date=order.delivery_date,
        items=[
            OrderItemResponse(
                item_id=str(item.id),
                product_id=str(item.product_id),
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                discount_rate=item.discount_rate,
                vat_rate=item.vat_rate,
                discount_amount=item.discount_amount,
                net_amount=item.net_amount,
                tax_amount=item.tax_amount,
                gross_amount=item.gross_amount,
            )
            for item in order.items
        ],
        discount_rate=order.discount_rate,
        discount_amount=order.discount_amount,
        shipping_cost=order.shipping_cost,
        net_total=order.net_total,
        tax_total=order.tax_total,
        grand_total=order.grand_total,
        billing_address=order.billing_address,
        shipping_address=order.shipping_address,
        notes=order.notes,
        invoice_id=str(order.invoice_id) if order.invoice_id else None,
        allowed_transitions=[status.value for status in order.allowed_transitions()],
        can_be_modified=order.can_be_modified,
        can_be_cancelled=order.can_be_cancelled,
        can_be_invoiced=order.can_be_invoiced,
        can_be_deleted=order.can_be_deleted,
    )


@order_router.post("", status_code=201, response_model=OrderIdResponse)
async def create_order(body: CreateOrderRequest) -> OrderIdResponse:
    result = _dispatch(CreateOrder, **body.model_dump(exclude_none=True))
    return OrderIdResponse(order_id=result)


@order_router.get("/{order_id}", response_model=OrderResponse)
async def get_order(order_id: str) -> OrderResponse:
    return _order_response(_load(Order, order_id))


@order_router.delete("/{order_id}", response_model=StatusResponse)
async def delete_order(order_id: str) -> StatusResponse:
    _dispatch(DeleteOrder, order_id=order_id)
    return StatusResponse()


@order_router.post("/{order_id}/items", status_code=201, response_model=ItemIdResponse)
async def add_order_item(order_id: str, body: AddOrderItemRequest) -> ItemIdResponse:
    result = _dispatch(AddOrderItem, order_id=order_id, **body.model_dump(exclude_none=True))
    return ItemIdResponse(item_id=result)


@order_router.put("/{order_id}/items/{item_id}", response_model=StatusResponse)
async def update_order_item(order_id: str, item_id: str, body: UpdateOrderItemRequest) -> StatusResponse:
    _dispatch(UpdateOrderItem, order_id=order_id, item_id=item_id, **body.model_dump(exclude_none=True))
    return StatusResponse()


@order_router.delete("/{order_id}/items/{item_id}", response_model=StatusResponse)
async def remove_order_item(order_id: str, item_id: str) -> StatusResponse:
    _dispatch(RemoveOrderItem, order_id=order_id, item_id=item_id)
    return StatusResponse()


@order_router.put("/{order_id}/pricing", response_model=StatusResponse)
async def adjust_order_pricing(order_id: str, body: AdjustOrderPricingRequest) -> StatusResponse:
    _dispatch(AdjustOrderPricing, order_id=order_id, **body.model_dump(exclude_none=True))
    return StatusResponse()


@order_router.put("/{order_id}/status", response_model=StatusResponse)
async def change_order_status(order_id: str, body: ChangeOrderStatusRequest) -> StatusResponse:
    _dispatch(ChangeOrderStatus, order_id=order_id, status=body.status)
    return StatusResponse()


@order_router.post("/{order_id}/duplicate", status_code=201, response_model=OrderIdResponse)
async def duplicate_order(order_id: str) -> OrderIdResponse:
    result = _dispatch(DuplicateOrder, order_id=order_id)
    return OrderIdResponse(order_id=result)


@order_router.post("/{order_id}/invoice", status_code=201, response_model=InvoiceIdResponse)
async def generate_invoice(order_id: str, body: GenerateInvoiceRequest | None = None) -> InvoiceIdResponse:
    body = body or GenerateInvoiceRequest()
    kwargs = {}
    if body.payment_terms_days is not None:
        kwargs["payment_terms_days"] = body.payment_terms_days
    if body.line_items:
        kwargs["line_items"] = json.dumps([line.model_dump(exclude_none=True) for line in body.line_items])

    result = _dispatch(GenerateInvoice, order_id=order_id, **kwargs)
    return InvoiceIdResponse(invoice_id=result)


# ---------------------------------------------------------------------------
# Invoice Router
# ---------------------------------------------------------------------------
invoice_router = APIRouter(prefix="/invoices", tags=["invoices"])


def _invoice_response(invoice: Invoice) -> InvoiceResponse:
    return InvoiceResponse(
        invoice_id=str(invoice.id),
        invoice_number=invoice.invoice_number,
        order_id=str(invoice.order_id),
        invoice_type=invoice.invoice_type,
        status=invoice.status,
        current_status=invoice.current_status().value,
        invoice_date=invoice.invoice_date,
        due_date=invoice.due_date,
        line_items=[
            InvoiceLineResponse(
                item_id=str(item.id),
                description=item.description,
                reference=item.reference,
                unit=item.unit,
                quantity=item.quantity,
                unit_price=item.unit_price,
                discount_rate=item.discount_rate,
                vat_rate=item.vat_rate,
                discount_amount=item.discount_amount,
                net_amount=item.net_amount,
                tax_amount=item.tax_amount,
                gross_amount=item.gross_amount,
            )
            for item in invoice.line_items
        ],
        discount_rate=invoice.discount_rate,
        discount_amount=invoice.discount_amount,
        shipping_cost=invoice.shipping_cost,
        net_total=invoice.net_total,
        tax_total=invoice.tax_total,
        grand_total=invoice.grand_total,
        paid_amount=invoice.paid_amount,
        remaining_amount=invoice.remaining_amount,
        days_overdue=invoice.days_overdue(),
        payment_date=invoice.payment_date,
        payment_method=invoice.payment_method,
        billing_address=invoice.billing_address,
        notes=invoice.notes,
    )


@invoice_router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(invoice_id: str) -> InvoiceResponse:
    return _invoice_response(_load(Invoice, invoice_id))


@invoice_router.put("/{invoice_id}/payment", response_model=StatusResponse)
async def record_invoice_payment(invoice_id: str, body: RecordInvoicePaymentRequest) -> StatusResponse:
    _dispatch(RecordInvoicePayment, invoice_id=invoice_id, **body.model_dump(exclude_none=True))
    return StatusResponse()


@invoice_router.put("/{invoice_id}/send", response_model=StatusResponse)
async def send_invoice(invoice_id: str) -> StatusResponse:
    _dispatch(SendInvoice, invoice_id=invoice_id)
    return StatusResponse()


@invoice_router.put("/{invoice_id}/cancel", response_model=StatusResponse)
async def cancel_invoice(invoice_id: str) -> StatusResponse:
    _dispatch(CancelInvoice, invoice_id=invoice_id)
    return StatusResponse()


@invoice_router.put("/{invoice_id}/refresh-status", response_model=InvoiceStatusResponse)
async def refresh_invoice_status(
    invoice_id: str, body: RefreshInvoiceStatusRequest | None = None
) -> InvoiceStatusResponse:
    kwargs = {}
    if body is not None and body.today is not None:
        kwargs["today"] = body.today
    status = _dispatch(RefreshInvoiceStatus, invoice_id=invoice_id, **kwargs)
    return InvoiceStatusResponse(invoice_id=invoice_id, status=status)
