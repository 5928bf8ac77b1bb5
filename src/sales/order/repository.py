"""Repository for the Order aggregate."""

from sales.domain import sales
from sales.order.order import Order
from sales.utils.queries import iter_all


@sales.repository(part_of=Order)
class OrderRepository:
    def order_numbers(self) -> set[str]:
        """Every order number already assigned."""
        return {order.order_number for order in iter_all(self._dao)}
