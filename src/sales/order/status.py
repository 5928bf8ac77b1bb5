"""Order status changes — command and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from sales.domain import sales
from sales.order.order import Order

logger = structlog.get_logger(__name__)


@sales.command(part_of="Order")
class ChangeOrderStatus:
    """Move an order to another status; illegal moves raise ``InvalidTransition``."""

    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)


@sales.command_handler(part_of=Order)
class ChangeOrderStatusHandler:
    @handle(ChangeOrderStatus)
    def change_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.status
        order.transition_to(command.status)
        repo.add(order)

        logger.info(
            "Order status changed",
            order_id=str(order.id),
            previous_status=previous,
            new_status=order.status,
        )
