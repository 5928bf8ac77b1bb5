"""Domain errors raised by the Sales context.

All of them are Protean ``ValidationError`` subclasses carrying the usual
``{field: [messages]}`` payload, so generic handlers keep working while
callers that care can catch the specific kind.
"""

from protean.exceptions import ValidationError


class InvalidTransition(ValidationError):
    """A status change that the document's state machine does not allow."""


class AlreadyInvoiced(ValidationError):
    """The order already owns an invoice."""


class NotInvoiceable(ValidationError):
    """The order's status does not allow invoicing."""


class NotDeletable(ValidationError):
    """The order is past DRAFT or already invoiced and can no longer be deleted."""
