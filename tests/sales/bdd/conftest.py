"""Shared BDD fixtures and step definitions for the Sales domain."""

from datetime import date, timedelta

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then
from sales.errors import AlreadyInvoiced, InvalidTransition
from sales.invoice.events import (
    InvoiceBecameOverdue,
    InvoiceCancelled,
    InvoiceGenerated,
    InvoicePaymentRecorded,
    InvoiceSent,
)
from sales.invoice.generation import project_invoice_from_order
from sales.invoice.invoice import Invoice
from sales.order.events import (
    OrderCreated,
    OrderInvoiced,
    OrderItemAdded,
    OrderPricingAdjusted,
    OrderStatusChanged,
)
from sales.order.order import Order, OrderStatus

# Map event name strings to classes for dynamic lookup in Then steps
_ORDER_EVENT_CLASSES = {
    "OrderCreated": OrderCreated,
    "OrderItemAdded": OrderItemAdded,
    "OrderPricingAdjusted": OrderPricingAdjusted,
    "OrderStatusChanged": OrderStatusChanged,
    "OrderInvoiced": OrderInvoiced,
}

_INVOICE_EVENT_CLASSES = {
    "InvoiceGenerated": InvoiceGenerated,
    "InvoiceSent": InvoiceSent,
    "InvoicePaymentRecorded": InvoicePaymentRecorded,
    "InvoiceBecameOverdue": InvoiceBecameOverdue,
    "InvoiceCancelled": InvoiceCancelled,
}

# Shortest path from DRAFT to each status
_PATHS = {
    OrderStatus.DRAFT: [],
    OrderStatus.PENDING: [OrderStatus.PENDING],
    OrderStatus.CONFIRMED: [OrderStatus.CONFIRMED],
    OrderStatus.PROCESSING: [OrderStatus.CONFIRMED, OrderStatus.PROCESSING],
    OrderStatus.SHIPPED: [OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED],
}


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def error():
    """Container for captured validation errors."""
    return {"exc": None}


# ---------------------------------------------------------------------------
# Given steps — Order
# ---------------------------------------------------------------------------
@given("a draft order", target_fixture="order")
def draft_order():
    order = Order.create(order_number="CMD-202403-0001", client_id="client-001")
    order._events.clear()
    return order


@given(
    parsers.cfparse("a draft order with {rate:g}% discount and {shipping:g} shipping"),
    target_fixture="order",
)
def draft_order_with_pricing(rate, shipping):
    order = Order.create(
        order_number="CMD-202403-0001",
        client_id="client-001",
        discount_rate=rate,
        shipping_cost=shipping,
    )
    order._events.clear()
    return order


@given(parsers.cfparse('an order in "{status}" state'), target_fixture="order")
def order_in_state(status):
    order = Order.create(order_number="CMD-202403-0001", client_id="client-001")
    order.add_item(product_id="prod-001", quantity=2, unit_price=50.0)
    for step in _PATHS[OrderStatus(status)]:
        order.transition_to(step)
    order._events.clear()
    return order


@given("the order has been invoiced", target_fixture="order")
def order_invoiced(order):
    project_invoice_from_order(order, "FACT-202403-0001")
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Given steps — Invoice
# ---------------------------------------------------------------------------
@given(parsers.cfparse("an invoice of {amount:g} due on {due}"), target_fixture="invoice")
def invoice_due_on(amount, due):
    due_date = date.fromisoformat(due)
    invoice = Invoice.create(
        order_id="order-001",
        invoice_number="FACT-202403-0001",
        invoice_date=due_date - timedelta(days=30),
        payment_terms_days=30,
        line_items_data=[{"description": "Services", "quantity": 1, "unit_price": amount, "vat_rate": 0.0}],
    )
    invoice._events.clear()
    return invoice


@given(parsers.cfparse("a payment of {amount:g} has been recorded"), target_fixture="invoice")
def payment_recorded(invoice, amount):
    invoice.record_payment(amount)
    invoice._events.clear()
    return invoice


# ---------------------------------------------------------------------------
# Then steps (shared)
# ---------------------------------------------------------------------------
@then("the action fails with a validation error")
def action_fails_with_validation_error(error):
    assert error["exc"] is not None, "Expected a validation error but none was raised"
    assert isinstance(error["exc"], ValidationError)


@then("the action fails with an invalid transition error")
def action_fails_with_invalid_transition(error):
    assert isinstance(error["exc"], InvalidTransition)


@then("the action fails with an already invoiced error")
def action_fails_with_already_invoiced(error):
    assert isinstance(error["exc"], AlreadyInvoiced)


@then(parsers.cfparse('the order status is "{status}"'))
def order_status_is(order, status):
    assert order.status == status


@then(parsers.cfparse('the invoice status is "{status}"'))
def invoice_status_is(invoice, status):
    assert invoice.status == status


@then(parsers.cfparse("an {event_type} order event is raised"))
def order_event_raised(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in order._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in order._events]}"


@then(parsers.cfparse("an {event_type} invoice event is raised"))
def invoice_event_raised(invoice, event_type):
    event_cls = _INVOICE_EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in invoice._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in invoice._events]}"
