"""Invoice lifecycle — sending, cancelling and overdue refresh."""

import structlog
from protean import handle
from protean.fields import Date, Identifier
from protean.utils.globals import current_domain

from sales.domain import sales
from sales.invoice.invoice import Invoice

logger = structlog.get_logger(__name__)


@sales.command(part_of="Invoice")
class SendInvoice:
    invoice_id = Identifier(required=True)


@sales.command(part_of="Invoice")
class CancelInvoice:
    invoice_id = Identifier(required=True)


@sales.command(part_of="Invoice")
class RefreshInvoiceStatus:
    """Persist OVERDUE on an invoice whose due date has passed."""

    invoice_id = Identifier(required=True)
    today = Date()


@sales.command_handler(part_of=Invoice)
class InvoiceLifecycleHandler:
    @handle(SendInvoice)
    def send_invoice(self, command):
        repo = current_domain.repository_for(Invoice)
        invoice = repo.get(command.invoice_id)
        invoice.send()
        repo.add(invoice)
        logger.info("Invoice sent", invoice_id=str(invoice.id), invoice_number=invoice.invoice_number)

    @handle(CancelInvoice)
    def cancel_invoice(self, command):
        repo = current_domain.repository_for(Invoice)
        invoice = repo.get(command.invoice_id)
        invoice.cancel()
        repo.add(invoice)
        logger.info("Invoice cancelled", invoice_id=str(invoice.id), invoice_number=invoice.invoice_number)

    @handle(RefreshInvoiceStatus)
    def refresh_status(self, command):
        repo = current_domain.repository_for(Invoice)
        invoice = repo.get(command.invoice_id)
        changed = invoice.refresh_status(command.today)
        if changed:
            repo.add(invoice)
            logger.info(
                "Invoice became overdue",
                invoice_id=str(invoice.id),
                days_overdue=invoice.days_overdue(command.today),
            )
        return invoice.status
