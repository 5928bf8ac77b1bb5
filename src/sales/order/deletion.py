"""Order deletion — command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from sales.domain import sales
from sales.order.order import Order

logger = structlog.get_logger(__name__)


@sales.command(part_of="Order")
class DeleteOrder:
    """Delete a DRAFT order that has no invoice; anything else raises ``NotDeletable``."""

    order_id = Identifier(required=True)


@sales.command_handler(part_of=Order)
class DeleteOrderHandler:
    @handle(DeleteOrder)
    def delete_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)

        order.discard()
        # Persist the dropped lines before the order record goes
        repo.add(order)
        repo._dao.delete(order)

        logger.info(
            "Order deleted",
            order_id=str(order.id),
            order_number=order.order_number,
        )
