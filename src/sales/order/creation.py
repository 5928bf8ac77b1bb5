"""Order creation — command and handler."""

import structlog
from protean import handle
from protean.fields import Date, Float, Identifier, Text
from protean.utils.globals import current_domain

from sales.domain import sales
from sales.numbering import order_numbers
from sales.order.order import Order

logger = structlog.get_logger(__name__)


@sales.command(part_of="Order")
class CreateOrder:
    client_id = Identifier(required=True)
    billing_address = Text()
    shipping_address = Text()
    discount_rate = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    notes = Text()
    expected_delivery_date = Date()


@sales.command_handler(part_of=Order)
class CreateOrderHandler:
    @handle(CreateOrder)
    def create_order(self, command):
        repo = current_domain.repository_for(Order)
        order_number = order_numbers.allocate(repo.order_numbers())

        order = Order.create(
            order_number=order_number,
            client_id=command.client_id,
            billing_address=command.billing_address,
            shipping_address=command.shipping_address,
            discount_rate=command.discount_rate,
            shipping_cost=command.shipping_cost,
            notes=command.notes,
            expected_delivery_date=command.expected_delivery_date,
        )
        repo.add(order)

        logger.info("Order created", order_id=str(order.id), order_number=order_number)
        return str(order.id)
