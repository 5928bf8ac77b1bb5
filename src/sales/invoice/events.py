"""Domain events for the Invoice aggregate.

All events are versioned, immutable facts representing invoice state changes.
"""

from protean.fields import Date, DateTime, Float, Identifier, Integer, String

from sales.domain import sales


@sales.event(part_of="Invoice")
class InvoiceGenerated:
    """A new invoice was generated for an order."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    invoice_number = String(required=True)
    grand_total = Float(required=True)
    due_date = Date(required=True)
    generated_at = DateTime(required=True)


@sales.event(part_of="Invoice")
class InvoiceLinesChanged:
    """The invoice's own lines or pricing changed and totals were recomputed."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    line_count = Integer(required=True)
    new_net_total = Float(required=True)
    new_grand_total = Float(required=True)


@sales.event(part_of="Invoice")
class InvoiceSent:
    """The invoice was sent to the client."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    invoice_number = String(required=True)
    sent_at = DateTime(required=True)


@sales.event(part_of="Invoice")
class InvoicePaymentRecorded:
    """A payment was recorded against the invoice."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    paid_amount = Float(required=True)
    remaining_amount = Float(required=True)
    payment_date = Date(required=True)
    payment_method = String()
    status = String(required=True)


@sales.event(part_of="Invoice")
class InvoiceBecameOverdue:
    """The due date passed without the invoice being settled."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    invoice_number = String(required=True)
    due_date = Date(required=True)
    remaining_amount = Float(required=True)
    detected_at = DateTime(required=True)


@sales.event(part_of="Invoice")
class InvoiceCancelled:
    """The invoice was cancelled."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    previous_status = String(required=True)
    cancelled_at = DateTime(required=True)
