"""Order aggregate (CQRS) — order entry, pricing and status lifecycle.

An order is opened empty in DRAFT, filled with lines, priced, and moved
through its status machine. Every line or pricing change recomputes the
order totals inside the aggregate, so persisted totals are never stale.

State Machine:
    DRAFT → CONFIRMED | PENDING | CANCELLED
    PENDING → CONFIRMED | CANCELLED
    CONFIRMED → PROCESSING | PENDING | CANCELLED
    PROCESSING → SHIPPED | PENDING | CANCELLED
    SHIPPED → DELIVERED | RETURNED
    DELIVERED → RETURNED
    CANCELLED, RETURNED: terminal
"""

from datetime import UTC, date, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Date, DateTime, Float, HasMany, Identifier, Integer, String, Text

from sales.config import settings
from sales.domain import sales
from sales.errors import AlreadyInvoiced, InvalidTransition, NotDeletable, NotInvoiceable
from sales.order.events import (
    OrderCreated,
    OrderDeleted,
    OrderDuplicated,
    OrderInvoiced,
    OrderItemAdded,
    OrderItemRemoved,
    OrderItemUpdated,
    OrderPricingAdjusted,
    OrderStatusChanged,
)
from sales.pricing.calculator import LineTotals, calculate_line
from sales.pricing.totals import DocumentTotals, calculate_document_totals


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    DRAFT = "Draft"
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    PROCESSING = "Processing"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"
    RETURNED = "Returned"

    @classmethod
    def parse(cls, value) -> "OrderStatus":
        """Accept a member, its value ("Confirmed") or its name ("CONFIRMED")."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            pass
        try:
            return cls[str(value).upper()]
        except KeyError:
            raise ValidationError({"status": [f"Unknown order status: {value}"]}) from None


# State machine transition map
_VALID_TRANSITIONS = {
    OrderStatus.DRAFT: {OrderStatus.CONFIRMED, OrderStatus.PENDING, OrderStatus.CANCELLED},
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.PENDING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.PENDING, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.RETURNED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED},
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.RETURNED: set(),  # Terminal
}

_MODIFIABLE_STATES = {OrderStatus.DRAFT, OrderStatus.CONFIRMED}

_NON_CANCELLABLE_STATES = {OrderStatus.CANCELLED, OrderStatus.DELIVERED, OrderStatus.RETURNED}

# States from which an invoice may be generated
_INVOICEABLE_STATES = {
    OrderStatus.CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
}


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@sales.entity(part_of="Order")
class OrderItem:
    """One product line of an order.

    The four computed amounts are overwritten by ``apply_totals`` and are only
    meaningful as a set; they are never edited directly.
    """

    product_id = Identifier(required=True)
    description = String(max_length=500)
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
        """Recompute the line amounts from its current inputs."""
        totals = calculate_line(self.quantity, self.unit_price, self.discount_rate, self.vat_rate)
        self.apply_totals(totals)
        return totals


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@sales.aggregate
class Order:
    order_number = String(required=True, max_length=50)
    client_id = Identifier(required=True)
    status = String(
        choices=OrderStatus,
        default=OrderStatus.DRAFT.value,
    )
    order_date = Date()
    expected_delivery_date = Date()
    delivery_date = Date()
    items = HasMany(OrderItem)
    discount_rate = Float(default=0.0, min_value=0.0, max_value=100.0)
    discount_amount = Float(default=0.0)
    shipping_cost = Float(default=0.0, min_value=0.0)
    net_total = Float(default=0.0)
    tax_total = Float(default=0.0)
    grand_total = Float(default=0.0)
    shipping_address = Text()
    billing_address = Text()
    notes = Text()
    invoice_id = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        order_number: str,
        client_id: str,
        billing_address: str | None = None,
        shipping_address: str | None = None,
        discount_rate: float = 0.0,
        shipping_cost: float = 0.0,
        notes: str | None = None,
        expected_delivery_date: date | None = None,
        today: date | None = None,
    ):
        """Open a new, empty DRAFT order."""
        now = datetime.now(UTC)
        totals = calculate_document_totals([], discount_rate, shipping_cost)

        order = cls(
            order_number=order_number,
            client_id=client_id,
            status=OrderStatus.DRAFT.value,
            order_date=today or now.date(),
            expected_delivery_date=expected_delivery_date,
            billing_address=billing_address,
            shipping_address=shipping_address,
            notes=notes,
            discount_rate=discount_rate or 0.0,
            shipping_cost=float(totals.shipping_cost),
            created_at=now,
            updated_at=now,
        )
        order._apply_totals(totals)

        order.raise_(
            OrderCreated(
                order_id=str(order.id),
                order_number=order_number,
                client_id=str(client_id),
                status=order.status,
                created_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Derived predicates
    # -------------------------------------------------------------------
    @property
    def can_be_modified(self) -> bool:
        return OrderStatus(self.status) in _MODIFIABLE_STATES

    @property
    def can_be_cancelled(self) -> bool:
        return OrderStatus(self.status) not in _NON_CANCELLABLE_STATES

    @property
    def can_be_invoiced(self) -> bool:
        return OrderStatus(self.status) in _INVOICEABLE_STATES and not self.invoice_id

    @property
    def can_be_deleted(self) -> bool:
        return OrderStatus(self.status) == OrderStatus.DRAFT and not self.invoice_id

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    def allowed_transitions(self) -> list[OrderStatus]:
        """Statuses the order may move to from where it is now."""
        targets = _VALID_TRANSITIONS[OrderStatus(self.status)]
        return [status for status in OrderStatus if status in targets]

    # -------------------------------------------------------------------
    # Totals
    # -------------------------------------------------------------------
    def _apply_totals(self, totals: DocumentTotals) -> None:
        self.discount_amount = float(totals.discount_amount)
        self.net_total = float(totals.net_total)
        self.tax_total = float(totals.tax_total)
        self.grand_total = float(totals.grand_total)

    def recalculate_totals(self) -> DocumentTotals:
        """Recompute every line, then the order totals."""
        for item in self.items:
            item.recalculate()
        totals = calculate_document_totals(self.items, self.discount_rate, self.shipping_cost)
        self._apply_totals(totals)
        return totals

    # -------------------------------------------------------------------
    # Line management (DRAFT and CONFIRMED only)
    # -------------------------------------------------------------------
    def _assert_can_be_modified(self) -> None:
        if not self.can_be_modified:
            raise ValidationError({"status": [f"Order in {self.status} state can no longer be modified"]})

    def _find_item(self, item_id) -> OrderItem:
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise ValidationError({"item_id": ["Item not found"]})
        return item

    def add_item(
        self,
        product_id,
        quantity: int,
        unit_price: float,
        discount_rate: float | None = None,
        vat_rate: float | None = None,
        description: str | None = None,
    ) -> OrderItem:
        """Add a line and recompute the order totals."""
        self._assert_can_be_modified()

        discount_rate = discount_rate if discount_rate is not None else 0.0
        vat_rate = vat_rate if vat_rate is not None else settings.default_vat_rate
        line_totals = calculate_line(quantity, unit_price, discount_rate, vat_rate)

        item = OrderItem(
            product_id=product_id,
            description=description.strip() if description else None,
            quantity=quantity,
            unit_price=unit_price,
            discount_rate=discount_rate,
            vat_rate=vat_rate,
        )
        item.apply_totals(line_totals)
        self.add_items(item)
        self.recalculate_totals()
        self.updated_at = datetime.now(UTC)

        self.raise_(
            OrderItemAdded(
                order_id=str(self.id),
                item_id=str(item.id),
                product_id=str(product_id),
                quantity=quantity,
                unit_price=float(unit_price),
                net_amount=item.net_amount,
                new_net_total=self.net_total,
                new_grand_total=self.grand_total,
            )
        )
        return item

    def update_item(
        self,
        item_id,
        quantity: int | None = None,
        unit_price: float | None = None,
        discount_rate: float | None = None,
        vat_rate: float | None = None,
    ) -> OrderItem:
        """Change any of a line's inputs; omitted arguments keep their value."""
        self._assert_can_be_modified()
        item = self._find_item(item_id)

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
        self.recalculate_totals()
        self.updated_at = datetime.now(UTC)

        self.raise_(
            OrderItemUpdated(
                order_id=str(self.id),
                item_id=str(item_id),
                quantity=quantity,
                unit_price=float(unit_price),
                discount_rate=float(discount_rate),
                vat_rate=float(vat_rate),
                new_net_total=self.net_total,
                new_grand_total=self.grand_total,
            )
        )
        return item

    def remove_item(self, item_id) -> None:
        """Remove a line and recompute the order totals."""
        self._assert_can_be_modified()
        item = self._find_item(item_id)

        self.remove_items(item)
        self.recalculate_totals()
        self.updated_at = datetime.now(UTC)

        self.raise_(
            OrderItemRemoved(
                order_id=str(self.id),
                item_id=str(item_id),
                new_net_total=self.net_total,
                new_grand_total=self.grand_total,
            )
        )

    def adjust_pricing(self, discount_rate: float | None = None, shipping_cost: float | None = None) -> None:
        """Change the order discount rate and/or shipping cost."""
        self._assert_can_be_modified()

        discount_rate = discount_rate if discount_rate is not None else self.discount_rate
        shipping_cost = shipping_cost if shipping_cost is not None else self.shipping_cost
        totals = calculate_document_totals(self.items, discount_rate, shipping_cost)

        self.discount_rate = discount_rate
        self.shipping_cost = float(totals.shipping_cost)
        self._apply_totals(totals)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            OrderPricingAdjusted(
                order_id=str(self.id),
                discount_rate=float(discount_rate),
                shipping_cost=self.shipping_cost,
                new_net_total=self.net_total,
                new_grand_total=self.grand_total,
            )
        )

    # -------------------------------------------------------------------
    # Status machine
    # -------------------------------------------------------------------
    def transition_to(self, target_status, today: date | None = None) -> None:
        """Move to ``target_status`` if the transition table allows it."""
        target = OrderStatus.parse(target_status)
        current = OrderStatus(self.status)
        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidTransition({"status": [f"Cannot transition from {current.value} to {target.value}"]})

        now = datetime.now(UTC)
        self.status = target.value
        if target == OrderStatus.DELIVERED:
            self.delivery_date = today or now.date()
        self.updated_at = now

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=current.value,
                new_status=target.value,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Invoicing
    # -------------------------------------------------------------------
    def assert_invoiceable(self) -> None:
        """Raise unless an invoice may be generated from this order now."""
        if self.invoice_id:
            raise AlreadyInvoiced({"invoice_id": [f"Order {self.order_number} already has an invoice"]})
        if OrderStatus(self.status) not in _INVOICEABLE_STATES:
            raise NotInvoiceable(
                {
                    "status": [
                        f"Order in {self.status} state cannot be invoiced. "
                        f"Invoicing is only allowed from: "
                        f"{', '.join(s.value for s in OrderStatus if s in _INVOICEABLE_STATES)}"
                    ]
                }
            )

    def link_invoice(self, invoice_id, invoice_number: str) -> None:
        """Record the invoice generated from this order."""
        self.assert_invoiceable()

        now = datetime.now(UTC)
        self.invoice_id = invoice_id
        self.updated_at = now

        self.raise_(
            OrderInvoiced(
                order_id=str(self.id),
                invoice_id=str(invoice_id),
                invoice_number=invoice_number,
                invoiced_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Duplication
    # -------------------------------------------------------------------
    def duplicate(self, order_number: str, today: date | None = None):
        """Open a new DRAFT order with this order's client, addresses, pricing and lines."""
        copy = Order.create(
            order_number=order_number,
            client_id=self.client_id,
            billing_address=self.billing_address,
            shipping_address=self.shipping_address,
            discount_rate=self.discount_rate,
            shipping_cost=self.shipping_cost,
            notes=f"Copy of order {self.order_number}",
            today=today,
        )
        for item in self.items:
            copy.add_item(
                product_id=item.product_id,
                quantity=item.quantity,
                unit_price=item.unit_price,
                discount_rate=item.discount_rate,
                vat_rate=item.vat_rate,
                description=item.description,
            )

        copy.raise_(
            OrderDuplicated(
                order_id=str(copy.id),
                source_order_id=str(self.id),
                source_order_number=self.order_number,
                order_number=order_number,
                duplicated_at=datetime.now(UTC),
            )
        )
        return copy

    # -------------------------------------------------------------------
    # Deletion
    # -------------------------------------------------------------------
    def discard(self) -> None:
        """Drop every line ahead of deleting the order; only a non-invoiced DRAFT qualifies."""
        if not self.can_be_deleted:
            if self.invoice_id:
                reason = f"Order {self.order_number} has an invoice and cannot be deleted"
            else:
                reason = f"Order in {self.status} state cannot be deleted. Only Draft orders can be deleted"
            raise NotDeletable({"status": [reason]})

        for item in list(self.items):
            self.remove_items(item)

        self.raise_(
            OrderDeleted(
                order_id=str(self.id),
                order_number=self.order_number,
                deleted_at=datetime.now(UTC),
            )
        )


def transition_order_status(order: Order, target_status, today: date | None = None) -> Order:
    """Apply a status change to ``order``; raises ``InvalidTransition`` if illegal."""
    order.transition_to(target_status, today=today)
    return order
