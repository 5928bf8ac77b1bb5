"""Order modification — commands and handler.

Handles line additions, updates and removals, and order-level pricing.
All modifications are only allowed in DRAFT and CONFIRMED states.
"""

from protean import handle
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from sales.domain import sales
from sales.order.order import Order


@sales.command(part_of="Order")
class AddOrderItem:
    """Add a product line to an order."""

    order_id = Identifier(required=True)
    product_id = Identifier(required=True)
    description = String(max_length=500)
    quantity = Integer(required=True)
    unit_price = Float(required=True)
    discount_rate = Float()
    vat_rate = Float()


@sales.command(part_of="Order")
class UpdateOrderItem:
    """Change quantity, price or rates of an order line."""

    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer()
    unit_price = Float()
    discount_rate = Float()
    vat_rate = Float()


@sales.command(part_of="Order")
class RemoveOrderItem:
    order_id = Identifier(required=True)
    item_id = Identifier(required=True)


@sales.command(part_of="Order")
class AdjustOrderPricing:
    """Change the order discount rate and/or shipping cost."""

    order_id = Identifier(required=True)
    discount_rate = Float()
    shipping_cost = Float()


@sales.command_handler(part_of=Order)
class ModifyOrderHandler:
    @handle(AddOrderItem)
    def add_item(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        item = order.add_item(
            product_id=command.product_id,
            quantity=command.quantity,
            unit_price=command.unit_price,
            discount_rate=command.discount_rate,
            vat_rate=command.vat_rate,
            description=command.description,
        )
        repo.add(order)
        return str(item.id)

    @handle(UpdateOrderItem)
    def update_item(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.update_item(
            item_id=command.item_id,
            quantity=command.quantity,
            unit_price=command.unit_price,
            discount_rate=command.discount_rate,
            vat_rate=command.vat_rate,
        )
        repo.add(order)

    @handle(RemoveOrderItem)
    def remove_item(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.remove_item(item_id=command.item_id)
        repo.add(order)

    @handle(AdjustOrderPricing)
    def adjust_pricing(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.adjust_pricing(
            discount_rate=command.discount_rate,
            shipping_cost=command.shipping_cost,
        )
        repo.add(order)
