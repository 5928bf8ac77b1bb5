"""Order duplication — command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from sales.domain import sales
from sales.numbering import order_numbers
from sales.order.order import Order

logger = structlog.get_logger(__name__)


@sales.command(part_of="Order")
class DuplicateOrder:
    """Open a new DRAFT order as a copy of an existing one."""

    order_id = Identifier(required=True)


@sales.command_handler(part_of=Order)
class DuplicateOrderHandler:
    @handle(DuplicateOrder)
    def duplicate_order(self, command):
        repo = current_domain.repository_for(Order)
        source = repo.get(command.order_id)

        copy = source.duplicate(order_numbers.allocate(repo.order_numbers()))
        repo.add(copy)

        logger.info(
            "Order duplicated",
            order_id=str(copy.id),
            order_number=copy.order_number,
            source_order_id=str(source.id),
        )
        return str(copy.id)
