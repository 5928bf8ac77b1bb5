"""Sales bounded context — Orders, Invoices and their financial rules.

Handles order entry and its status lifecycle, invoice generation from
confirmed orders, payment tracking, and document numbering. Persistence,
PDF rendering and e-mail dispatch belong to the surrounding application.
"""

from protean.domain import Domain

from sales.config import settings
from sales.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging(log_dir=settings.log_dir)

# Get logger for this module
logger = get_logger(__name__)

# Domain Composition Root
sales = Domain(name="sales")
