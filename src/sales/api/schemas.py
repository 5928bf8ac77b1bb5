"""Pydantic request/response schemas for the Sales API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands. Amount and rate rules are enforced by the domain,
so only shape is checked here.
"""

from datetime import date

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Order Request Schemas
# ---------------------------------------------------------------------------
class CreateOrderRequest(BaseModel):
    client_id: str
    billing_address: str | None = None
    shipping_address: str | None = None
    discount_rate: float = 0.0
    shipping_cost: float = 0.0
    notes: str | None = None
    expected_delivery_date: date | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "client_id": "client-001",
                    "billing_address": "12 rue de la Paix, 75002 Paris",
                    "discount_rate": 5.0,
                    "shipping_cost": 10.0,
                }
            ]
        }
    }


class AddOrderItemRequest(BaseModel):
    product_id: str
    description: str | None = None
    quantity: int
    unit_price: float
    discount_rate: float | None = None
    vat_rate: float | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "prod-001",
                    "quantity": 3,
                    "unit_price": 100.0,
                    "discount_rate": 10.0,
                    "vat_rate": 20.0,
                }
            ]
        }
    }


class UpdateOrderItemRequest(BaseModel):
    quantity: int | None = None
    unit_price: float | None = None
    discount_rate: float | None = None
    vat_rate: float | None = None


class AdjustOrderPricingRequest(BaseModel):
    discount_rate: float | None = None
    shipping_cost: float | None = None


class ChangeOrderStatusRequest(BaseModel):
    status: str


class InvoiceLineSchema(BaseModel):
    description: str
    quantity: int
    unit_price: float
    discount_rate: float | None = None
    vat_rate: float | None = None
    reference: str | None = None
    unit: str | None = None


class GenerateInvoiceRequest(BaseModel):
    payment_terms_days: int | None = Field(default=None, ge=0)
    line_items: list[InvoiceLineSchema] | None = None


# ---------------------------------------------------------------------------
# Invoice Request Schemas
# ---------------------------------------------------------------------------
class RecordInvoicePaymentRequest(BaseModel):
    amount: float
    payment_date: date | None = None
    payment_method: str | None = None
    reference: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "amount": 500.0,
                    "payment_date": "2024-03-15",
                    "payment_method": "Transfer",
                }
            ]
        }
    }


class RefreshInvoiceStatusRequest(BaseModel):
    today: date | None = None


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class OrderIdResponse(BaseModel):
    order_id: str


class ItemIdResponse(BaseModel):
    item_id: str


class InvoiceIdResponse(BaseModel):
    invoice_id: str


class StatusResponse(BaseModel):
    status: str = "ok"


class OrderItemResponse(BaseModel):
    item_id: str
    product_id: str
    description: str | None = None
    quantity: int
    unit_price: float
    discount_rate: float
    vat_rate: float
    discount_amount: float
    net_amount: float
    tax_amount: float
    gross_amount: float


class OrderResponse(BaseModel):
    order_id: str
    order_number: str
    client_id: str
    status: str
    order_date: date | None = None
    expected_delivery_date: date | None = None
    delivery_date: date | None = None
    items: list[OrderItemResponse]
    discount_rate: float
    discount_amount: float
    shipping_cost: float
    net_total: float
    tax_total: float
    grand_total: float
    billing_address: str | None = None
    shipping_address: str | None = None
    notes: str | None = None
    invoice_id: str | None = None
    allowed_transitions: list[str]
    can_be_modified: bool
    can_be_cancelled: bool
    can_be_invoiced: bool
    can_be_deleted: bool


class InvoiceLineResponse(BaseModel):
    item_id: str
    description: str
    reference: str | None = None
    unit: str | None = None
    quantity: int
    unit_price: float
    discount_rate: float
    vat_rate: float
    discount_amount: float
    net_amount: float
    tax_amount: float
    gross_amount: float


class InvoiceResponse(BaseModel):
    invoice_id: str
    invoice_number: str
    order_id: str
    invoice_type: str
    status: str
    current_status: str
    invoice_date: date
    due_date: date
    line_items: list[InvoiceLineResponse]
    discount_rate: float
    discount_amount: float
    shipping_cost: float
    net_total: float
    tax_total: float
    grand_total: float
    paid_amount: float
    remaining_amount: float
    days_overdue: int
    payment_date: date | None = None
    payment_method: str | None = None
    billing_address: str | None = None
    notes: str | None = None


class InvoiceStatusResponse(BaseModel):
    invoice_id: str
    status: str
