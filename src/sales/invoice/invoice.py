"""Invoice aggregate (CQRS) — billing, payment tracking and overdue detection.

Invoices are generated from invoiceable orders (see ``generation``). Their
status is driven by recorded payments and by the due date rather than by
arbitrary user choice:

    DRAFT → SENT                      (send)
    DRAFT | SENT | PARTIAL | OVERDUE | PAID → PARTIAL | PAID   (record_payment)
    DRAFT | SENT | PARTIAL → OVERDUE  (due date passed, evaluated lazily)
    anything but PAID → CANCELLED     (cancel)
    CANCELLED: terminal

Overdue is never detected by background polling: ``current_status`` derives
it on inspection, and ``refresh_status`` persists the derivation.
"""

from datetime import UTC, date, datetime, timedelta
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Date, DateTime, Float, HasMany, Identifier, Integer, String, Text

from sales.config import settings
from sales.domain import sales
from sales.errors import InvalidTransition
from sales.invoice.events import (
    InvoiceBecameOverdue,
    InvoiceCancelled,
    InvoiceGenerated,
    InvoiceLinesChanged,
    InvoicePaymentRecorded,
    InvoiceSent,
)
from sales.pricing.calculator import LineTotals, calculate_line, to_amount
from sales.pricing.totals import DocumentTotals, calculate_document_totals


class InvoiceStatus(Enum):
    DRAFT = "Draft"
    SENT = "Sent"
    PARTIAL = "Partial"
    PAID = "Paid"
    OVERDUE = "Overdue"
    CANCELLED = "Cancelled"


class InvoiceType(Enum):
    STANDARD = "Standard"
    PROFORMA = "Proforma"
    CREDIT_NOTE = "Credit_Note"
    DEPOSIT = "Deposit"


class PaymentMethod(Enum):
    CASH = "Cash"
    CARD = "Card"
    TRANSFER = "Transfer"
    CHECK = "Check"
    PAYPAL = "PayPal"
    OTHER = "Other"


_PAYMENT_OUTCOMES = {InvoiceStatus.PARTIAL, InvoiceStatus.PAID}

_VALID_TRANSITIONS = {
    InvoiceStatus.DRAFT: {InvoiceStatus.SENT, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED} | _PAYMENT_OUTCOMES,
    InvoiceStatus.SENT: {InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED} | _PAYMENT_OUTCOMES,
    InvoiceStatus.PARTIAL: {InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED} | _PAYMENT_OUTCOMES,
    InvoiceStatus.OVERDUE: {InvoiceStatus.CANCELLED} | _PAYMENT_OUTCOMES,
    InvoiceStatus.PAID: _PAYMENT_OUTCOMES,  # Payment corrections only
    InvoiceStatus.CANCELLED: set(),  # Terminal
}

# States in which an invoice can no longer become overdue
_SETTLED_STATES = {InvoiceStatus.PAID, InvoiceStatus.CANCELLED}

_LINE_ITEM_REQUIRED = {"description", "quantity", "unit_price"}
_LINE_ITEM_FIELDS = _LINE_ITEM_REQUIRED | {"discount_rate", "vat_rate", "reference", "unit"}


def validate_line_items_data(line_items_data) -> None:
    """Reject line payloads that ``add_line_item`` cannot take as keyword arguments."""
    if not isinstance(line_items_data, list):
        raise ValidationError({"line_items": ["Line items must be a list of objects"]})

    errors = []
    for index, item_data in enumerate(line_items_data):
        if not isinstance(item_data, dict):
            errors.append(f"Line {index + 1} must be an object")
            continue
        unknown = set(item_data) - _LINE_ITEM_FIELDS
        if unknown:
            errors.append(f"Line {index + 1} has unknown fields: {', '.join(sorted(unknown))}")
        missing = _LINE_ITEM_REQUIRED - set(item_data)
        if missing:
            errors.append(f"Line {index + 1} is missing: {', '.join(sorted(missing))}")
    if errors:
        raise ValidationError({"line_items": errors})


def _today() -> date:
    return datetime.now(UTC).date()


@sales.entity(part_of="Invoice")
class InvoiceItem:
    """A line carried by the invoice itself."""

    description = String(required=True, max_length=500)
    reference = String(max_length=100)
    unit = String(max_length=20, default="pièce")
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True)
    discount_rate = Float(default=0.0, min_value=0.0, max_value=100.0)
    vat_rate = Float(default=20.0, min_value=0.0, max_value=100.0)
    discount_amount = Float(default=0.0)
    net_amount = Float(default=0.0)
    tax_amount = Float(default=0.0)
    gross_amount = Float(default=0.0)

    def apply_totals(self, totals: LineTotals) -> None:
        self.discount_amount = float(totals.discount_amount)
        self.net_amount = float(totals.net_amount)
        self.tax_amount = float(totals.tax_amount)
        self.gross_amount = float(totals.gross_amount)

    def recalculate(self) -> LineTotals:
        totals = calculate_line(self.quantity, self.unit_price, self.discount_rate, self.vat_rate)
        self.apply_totals(totals)
        return totals


@sales.aggregate
class Invoice:
    invoice_number = String(required=True, max_length=50)
    order_id = Identifier(required=True)
    invoice_type = String(choices=InvoiceType, default=InvoiceType.STANDARD.value)
    status = String(
        choices=InvoiceStatus,
        default=InvoiceStatus.DRAFT.value,
    )
    invoice_date = Date(required=True)
    due_date = Date(required=True)
    line_items = HasMany(InvoiceItem)
    discount_rate = Float(default=0.0, min_value=0.0, max_value=100.0)
    discount_amount = Float(default=0.0)
    shipping_cost = Float(default=0.0, min_value=0.0)
    net_total = Float(default=0.0)
    tax_total = Float(default=0.0)
    grand_total = Float(default=0.0)
    paid_amount = Float(default=0.0)
    payment_date = Date()
    payment_method = String(choices=PaymentMethod)
    payment_reference = String(max_length=100)
    billing_address = Text()
    notes = Text()
    terms_conditions = Text()
    sent_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    def _assert_can_transition(self, target_status: InvoiceStatus) -> None:
        current = InvoiceStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    @classmethod
    def create(
        cls,
        order_id: str,
        invoice_number: str,
        invoice_date: date | None = None,
        payment_terms_days: int | None = None,
        billing_address: str | None = None,
        discount_rate: float = 0.0,
        shipping_cost: float = 0.0,
        notes: str | None = None,
        terms_conditions: str | None = None,
        invoice_type: str = InvoiceType.STANDARD.value,
        totals_from=None,
        line_items_data: list[dict] | None = None,
    ):
        """Create a DRAFT invoice due ``payment_terms_days`` after its date.

        Totals are either computed from ``line_items_data`` (dicts with
        description, quantity, unit_price and optional discount_rate, vat_rate,
        reference, unit) or taken as they are from ``totals_from``.
        """
        now = datetime.now(UTC)
        invoice_date = invoice_date or now.date()
        if payment_terms_days is None:
            payment_terms_days = settings.payment_terms_days
        if payment_terms_days < 0:
            raise ValidationError({"payment_terms_days": ["Payment terms cannot be negative"]})
        if line_items_data:
            validate_line_items_data(line_items_data)

        invoice = cls(
            order_id=order_id,
            invoice_number=invoice_number,
            invoice_type=invoice_type,
            status=InvoiceStatus.DRAFT.value,
            invoice_date=invoice_date,
            due_date=invoice_date + timedelta(days=payment_terms_days),
            billing_address=billing_address,
            discount_rate=discount_rate or 0.0,
            shipping_cost=shipping_cost or 0.0,
            notes=notes,
            terms_conditions=terms_conditions,
            created_at=now,
            updated_at=now,
        )

        if line_items_data:
            for item_data in line_items_data:
                invoice.add_line_item(**item_data)
        elif totals_from is not None:
            invoice.copy_totals(totals_from)
        else:
            invoice.recalculate_totals()

        invoice.raise_(
            InvoiceGenerated(
                invoice_id=str(invoice.id),
                order_id=str(order_id),
                invoice_number=invoice_number,
                grand_total=invoice.grand_total,
                due_date=invoice.due_date,
                generated_at=now,
            )
        )
        return invoice

    # -------------------------------------------------------------------
    # Totals
    # -------------------------------------------------------------------
    def _apply_totals(self, totals: DocumentTotals) -> None:
        self.discount_amount = float(totals.discount_amount)
        self.net_total = float(totals.net_total)
        self.tax_total = float(totals.tax_total)
        self.grand_total = float(totals.grand_total)

    def copy_totals(self, source) -> None:
        """Take over the already-computed totals of ``source`` (an Order) as they are."""
        self.discount_amount = source.discount_amount
        self.net_total = source.net_total
        self.tax_total = source.tax_total
        self.grand_total = source.grand_total

    def recalculate_totals(self) -> DocumentTotals:
        """Recompute the invoice's own lines and totals."""
        for item in self.line_items:
            item.recalculate()
        totals = calculate_document_totals(self.line_items, self.discount_rate, self.shipping_cost)
        self._apply_totals(totals)
        return totals

    # -------------------------------------------------------------------
    # Line management (DRAFT only)
    # -------------------------------------------------------------------
    def _assert_editable(self) -> None:
        if InvoiceStatus(self.status) != InvoiceStatus.DRAFT:
            raise ValidationError({"status": ["Invoice lines can only be changed in Draft state"]})

    def _lines_changed(self) -> None:
        self.recalculate_totals()
        self.updated_at = datetime.now(UTC)
        self.raise_(
            InvoiceLinesChanged(
                invoice_id=str(self.id),
                line_count=len(self.line_items),
                new_net_total=self.net_total,
                new_grand_total=self.grand_total,
            )
        )

    def add_line_item(
        self,
        description: str,
        quantity: int,
        unit_price: float,
        discount_rate: float | None = None,
        vat_rate: float | None = None,
        reference: str | None = None,
        unit: str | None = None,
    ) -> InvoiceItem:
        self._assert_editable()

        discount_rate = discount_rate if discount_rate is not None else 0.0
        vat_rate = vat_rate if vat_rate is not None else settings.default_vat_rate
        line_totals = calculate_line(quantity, unit_price, discount_rate, vat_rate)

        item = InvoiceItem(
            description=description.strip(),
            reference=reference,
            quantity=quantity,
            unit_price=unit_price,
            discount_rate=discount_rate,
            vat_rate=vat_rate,
        )
        if unit:
            item.unit = unit
        item.apply_totals(line_totals)
        self.add_line_items(item)
        self._lines_changed()
        return item

    def update_line_item(
        self,
        item_id,
        quantity: int | None = None,
        unit_price: float | None = None,
        discount_rate: float | None = None,
        vat_rate: float | None = None,
    ) -> InvoiceItem:
        self._assert_editable()
        item = next((i for i in self.line_items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Line item not found"]})

        quantity = quantity if quantity is not None else item.quantity
        unit_price = unit_price if unit_price is not None else item.unit_price
        discount_rate = discount_rate if discount_rate is not None else item.discount_rate
        vat_rate = vat_rate if vat_rate is not None else item.vat_rate
        line_totals = calculate_line(quantity, unit_price, discount_rate, vat_rate)

        item.quantity = quantity
        item.unit_price = unit_price
        item.discount_rate = discount_rate
        item.vat_rate = vat_rate
        item.apply_totals(line_totals)
        self._lines_changed()
        return item

    def remove_line_item(self, item_id) -> None:
        self._assert_editable()
        item = next((i for i in self.line_items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Line item not found"]})

        self.remove_line_items(item)
        self._lines_changed()

    # -------------------------------------------------------------------
    # Payment tracking
    # -------------------------------------------------------------------
    @property
    def remaining_amount(self) -> float:
        """Amount still due; negative when over-paid."""
        return float(to_amount(self.grand_total) - to_amount(self.paid_amount or 0))

    @property
    def is_fully_paid(self) -> bool:
        return to_amount(self.paid_amount or 0) >= to_amount(self.grand_total)

    @property
    def is_partially_paid(self) -> bool:
        paid = to_amount(self.paid_amount or 0)
        return 0 < paid < to_amount(self.grand_total)

    def is_overdue(self, today: date | None = None) -> bool:
        today = today or _today()
        return InvoiceStatus(self.status) not in _SETTLED_STATES and self.due_date < today

    def days_overdue(self, today: date | None = None) -> int:
        today = today or _today()
        if not self.is_overdue(today):
            return 0
        return (today - self.due_date).days

    def current_status(self, today: date | None = None) -> InvoiceStatus:
        """Status as of ``today``, with the overdue check applied."""
        if self.is_overdue(today):
            return InvoiceStatus.OVERDUE
        return InvoiceStatus(self.status)

    def record_payment(
        self,
        amount: float,
        payment_date: date | None = None,
        payment_method: str | None = None,
        reference: str | None = None,
    ) -> None:
        """Record the total amount received so far.

        ``amount`` replaces ``paid_amount``; covering the grand total marks the
        invoice PAID, anything less marks it PARTIAL. Over-payment is kept as is.
        """
        paid = to_amount(amount)
        if paid <= 0:
            raise ValidationError({"amount": ["Paid amount must be positive"]})

        target = InvoiceStatus.PAID if paid >= to_amount(self.grand_total) else InvoiceStatus.PARTIAL
        self._assert_can_transition(target)

        if isinstance(payment_method, PaymentMethod):
            payment_method = payment_method.value

        payment_date = payment_date or _today()
        self.paid_amount = float(paid)
        self.payment_date = payment_date
        if payment_method:
            self.payment_method = payment_method
        if reference:
            self.payment_reference = reference
        self.status = target.value
        self.updated_at = datetime.now(UTC)

        self.raise_(
            InvoicePaymentRecorded(
                invoice_id=str(self.id),
                order_id=str(self.order_id),
                paid_amount=self.paid_amount,
                remaining_amount=self.remaining_amount,
                payment_date=payment_date,
                payment_method=self.payment_method,
                status=self.status,
            )
        )

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def send(self) -> None:
        """Mark the invoice as sent to the client."""
        self._assert_can_transition(InvoiceStatus.SENT)
        now = datetime.now(UTC)
        self.status = InvoiceStatus.SENT.value
        self.sent_at = now
        self.updated_at = now
        self.raise_(
            InvoiceSent(
                invoice_id=str(self.id),
                invoice_number=self.invoice_number,
                sent_at=now,
            )
        )

    def refresh_status(self, today: date | None = None) -> bool:
        """Persist OVERDUE if the due date has passed. Returns True if the status changed."""
        if not self.is_overdue(today) or InvoiceStatus(self.status) == InvoiceStatus.OVERDUE:
            return False

        self._assert_can_transition(InvoiceStatus.OVERDUE)
        now = datetime.now(UTC)
        self.status = InvoiceStatus.OVERDUE.value
        self.updated_at = now
        self.raise_(
            InvoiceBecameOverdue(
                invoice_id=str(self.id),
                invoice_number=self.invoice_number,
                due_date=self.due_date,
                remaining_amount=self.remaining_amount,
                detected_at=now,
            )
        )
        return True

    def cancel(self) -> None:
        """Cancel the invoice. Paid invoices cannot be cancelled."""
        current = InvoiceStatus(self.status)
        self._assert_can_transition(InvoiceStatus.CANCELLED)
        now = datetime.now(UTC)
        self.status = InvoiceStatus.CANCELLED.value
        self.updated_at = now
        self.raise_(
            InvoiceCancelled(
                invoice_id=str(self.id),
                order_id=str(self.order_id),
                previous_status=current.value,
                cancelled_at=now,
            )
        )


def record_invoice_payment(invoice: Invoice, amount: float, payment_date: date | None = None) -> Invoice:
    """Record a payment on ``invoice``; raises ``ValidationError`` on a non-positive amount."""
    invoice.record_payment(amount, payment_date=payment_date)
    return invoice
