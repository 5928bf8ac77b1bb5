"""Repository for the Invoice aggregate."""

from sales.domain import sales
from sales.invoice.invoice import Invoice
from sales.utils.queries import iter_all


@sales.repository(part_of=Invoice)
class InvoiceRepository:
    def invoice_numbers(self) -> set[str]:
        """Every invoice number already assigned."""
        return {invoice.invoice_number for invoice in iter_all(self._dao)}

    def for_order(self, order_id) -> list[Invoice]:
        """Invoices generated from ``order_id``."""
        return list(iter_all(self._dao, order_id=str(order_id)))
