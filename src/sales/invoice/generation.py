"""Invoice generation — projection of an order into an invoice, command and handler.

An order yields at most one invoice, and only once it has reached CONFIRMED
or a later fulfilment state. The invoice takes over the order's billing
address, pricing and already-computed totals; the order keeps a reference to
the invoice. Both aggregates are persisted by the same handler, so the link
is written in one unit of work.
"""

import json
from datetime import date

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, Text
from protean.utils.globals import current_domain

from sales.domain import sales
from sales.invoice.invoice import Invoice, validate_line_items_data
from sales.numbering import invoice_numbers
from sales.order.order import Order

logger = structlog.get_logger(__name__)


def project_invoice_from_order(
    order: Order,
    invoice_number: str,
    today: date | None = None,
    payment_terms_days: int | None = None,
    line_items_data: list[dict] | None = None,
) -> Invoice:
    """Build a DRAFT invoice from ``order`` and link the order to it.

    Raises ``AlreadyInvoiced`` or ``NotInvoiceable`` before anything changes.
    """
    order.assert_invoiceable()

    invoice = Invoice.create(
        order_id=str(order.id),
        invoice_number=invoice_number,
        invoice_date=today,
        payment_terms_days=payment_terms_days,
        billing_address=order.billing_address,
        discount_rate=order.discount_rate,
        shipping_cost=order.shipping_cost,
        notes=f"Invoice generated from order {order.order_number}",
        totals_from=None if line_items_data else order,
        line_items_data=line_items_data,
    )
    order.link_invoice(invoice.id, invoice_number)
    return invoice


@sales.command(part_of="Invoice")
class GenerateInvoice:
    """Generate the invoice of an invoiceable order."""

    order_id = Identifier(required=True)
    payment_terms_days = Integer(min_value=0)
    line_items = Text()  # JSON: optional list of invoice line dicts


@sales.command_handler(part_of=Invoice)
class GenerateInvoiceHandler:
    @handle(GenerateInvoice)
    def generate_invoice(self, command):
        order_repo = current_domain.repository_for(Order)
        invoice_repo = current_domain.repository_for(Invoice)

        order = order_repo.get(command.order_id)
        order.assert_invoiceable()

        line_items_data = None
        if command.line_items:
            line_items_data = command.line_items
            if isinstance(line_items_data, str):
                try:
                    line_items_data = json.loads(line_items_data)
                except json.JSONDecodeError as exc:
                    raise ValidationError({"line_items": [f"Invalid JSON: {exc.msg}"]}) from exc
            validate_line_items_data(line_items_data)

        invoice_number = invoice_numbers.allocate(invoice_repo.invoice_numbers())
        invoice = project_invoice_from_order(
            order,
            invoice_number,
            payment_terms_days=command.payment_terms_days,
            line_items_data=line_items_data,
        )

        invoice_repo.add(invoice)
        order_repo.add(order)

        logger.info(
            "Invoice generated",
            invoice_id=str(invoice.id),
            invoice_number=invoice_number,
            order_id=str(order.id),
            grand_total=invoice.grand_total,
        )
        return str(invoice.id)
