"""Domain events for the Order aggregate.

All events are versioned, immutable facts representing order state changes.
Line and pricing events carry the recomputed totals so consumers never need
to redo the arithmetic.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String

from sales.domain import sales


@sales.event(part_of="Order")
class OrderCreated:
    """A new, empty order was opened for a client."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    client_id = Identifier(required=True)
    status = String(required=True)
    created_at = DateTime(required=True)


@sales.event(part_of="Order")
class OrderItemAdded:
    """A line was added to an order."""

    __version__ = 1

    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    unit_price = Float(required=True)
    net_amount = Float(required=True)
    new_net_total = Float(required=True)
    new_grand_total = Float(required=True)


@sales.event(part_of="Order")
class OrderItemUpdated:
    """Quantity, price or rates of an order line changed."""

    __version__ = 1

    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    quantity = Integer(required=True)
    unit_price = Float(required=True)
    discount_rate = Float(required=True)
    vat_rate = Float(required=True)
    new_net_total = Float(required=True)
    new_grand_total = Float(required=True)


@sales.event(part_of="Order")
class OrderItemRemoved:
    """A line was removed from an order."""

    __version__ = 1

    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    new_net_total = Float(required=True)
    new_grand_total = Float(required=True)


@sales.event(part_of="Order")
class OrderPricingAdjusted:
    """The order-level discount rate or shipping cost changed."""

    __version__ = 1

    order_id = Identifier(required=True)
    discount_rate = Float(required=True)
    shipping_cost = Float(required=True)
    new_net_total = Float(required=True)
    new_grand_total = Float(required=True)


@sales.event(part_of="Order")
class OrderStatusChanged:
    """The order moved along its status machine."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@sales.event(part_of="Order")
class OrderInvoiced:
    """An invoice was generated from the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    invoice_id = Identifier(required=True)
    invoice_number = String(required=True)
    invoiced_at = DateTime(required=True)


@sales.event(part_of="Order")
class OrderDuplicated:
    """A new draft order was opened as a copy of this one."""

    __version__ = 1

    order_id = Identifier(required=True)
    source_order_id = Identifier(required=True)
    source_order_number = String(required=True)
    order_number = String(required=True)
    duplicated_at = DateTime(required=True)


@sales.event(part_of="Order")
class OrderDeleted:
    """A draft order was discarded together with its lines."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    deleted_at = DateTime(required=True)
