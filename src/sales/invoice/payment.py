"""Invoice payment — command and handler.

A recorded payment states the total received so far. Covering the grand
total settles the invoice, anything less leaves it partially paid.
"""

import structlog
from protean import handle
from protean.fields import Date, Float, Identifier, String
from protean.utils.globals import current_domain

from sales.domain import sales
from sales.invoice.invoice import Invoice, PaymentMethod

logger = structlog.get_logger(__name__)


@sales.command(part_of="Invoice")
class RecordInvoicePayment:
    invoice_id = Identifier(required=True)
    amount = Float(required=True)
    payment_date = Date()
    payment_method = String(choices=PaymentMethod)
    reference = String(max_length=100)


@sales.command_handler(part_of=Invoice)
class RecordInvoicePaymentHandler:
    @handle(RecordInvoicePayment)
    def record_payment(self, command):
        repo = current_domain.repository_for(Invoice)
        invoice = repo.get(command.invoice_id)
        invoice.record_payment(
            amount=command.amount,
            payment_date=command.payment_date,
            payment_method=command.payment_method,
            reference=command.reference,
        )
        repo.add(invoice)

        logger.info(
            "Invoice payment recorded",
            invoice_id=str(invoice.id),
            paid_amount=invoice.paid_amount,
            remaining_amount=invoice.remaining_amount,
            status=invoice.status,
        )
