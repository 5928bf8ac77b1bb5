"""Tests for the Order state machine — transition table and derived predicates."""

from datetime import date

import pytest
from protean.exceptions import ValidationError
from sales.errors import AlreadyInvoiced, InvalidTransition, NotInvoiceable
from sales.order.events import OrderInvoiced, OrderStatusChanged
from sales.order.order import Order, OrderStatus, transition_order_status

# Shortest path from DRAFT to each status
_PATHS = {
    OrderStatus.DRAFT: [],
    OrderStatus.PENDING: [OrderStatus.PENDING],
    OrderStatus.CONFIRMED: [OrderStatus.CONFIRMED],
    OrderStatus.PROCESSING: [OrderStatus.CONFIRMED, OrderStatus.PROCESSING],
    OrderStatus.SHIPPED: [OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED],
    OrderStatus.DELIVERED: [
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.DELIVERED,
    ],
    OrderStatus.CANCELLED: [OrderStatus.CANCELLED],
    OrderStatus.RETURNED: [
        OrderStatus.CONFIRMED,
        OrderStatus.PROCESSING,
        OrderStatus.SHIPPED,
        OrderStatus.RETURNED,
    ],
}

_ALLOWED = {
    OrderStatus.DRAFT: {OrderStatus.CONFIRMED, OrderStatus.PENDING, OrderStatus.CANCELLED},
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.PENDING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.PENDING, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.RETURNED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED},
    OrderStatus.CANCELLED: set(),
    OrderStatus.RETURNED: set(),
}


def _order_at_state(status):
    order = Order.create(order_number="CMD-202403-0001", client_id="client-001")
    order.add_item(product_id="prod-001", quantity=1, unit_price=100.0)
    for step in _PATHS[status]:
        order.transition_to(step)
    order._events.clear()
    return order


_VALID = [(source, target) for source, targets in _ALLOWED.items() for target in targets]
_INVALID = [
    (source, target)
    for source in OrderStatus
    for target in OrderStatus
    if target not in _ALLOWED[source]
]


class TestTransitionTable:
    @pytest.mark.parametrize("source, target", _VALID)
    def test_allowed_transition(self, source, target):
        order = _order_at_state(source)
        order.transition_to(target)
        assert order.status == target.value

    @pytest.mark.parametrize("source, target", _INVALID)
    def test_rejected_transition_leaves_status_unchanged(self, source, target):
        order = _order_at_state(source)
        with pytest.raises(InvalidTransition):
            order.transition_to(target)
        assert order.status == source.value
        assert order._events == []

    def test_processing_cannot_go_back_to_draft(self):
        order = _order_at_state(OrderStatus.PROCESSING)
        with pytest.raises(InvalidTransition):
            transition_order_status(order, OrderStatus.DRAFT)

    def test_invalid_transition_is_a_validation_error(self):
        order = _order_at_state(OrderStatus.CANCELLED)
        with pytest.raises(ValidationError):
            order.transition_to(OrderStatus.CONFIRMED)

    @pytest.mark.parametrize("status", [OrderStatus.CANCELLED, OrderStatus.RETURNED])
    def test_terminal_states_have_no_exits(self, status):
        assert _order_at_state(status).allowed_transitions() == []

    def test_allowed_transitions_from_draft(self):
        assert set(_order_at_state(OrderStatus.DRAFT).allowed_transitions()) == _ALLOWED[OrderStatus.DRAFT]


class TestTransitionEffects:
    def test_raises_status_changed_event(self):
        order = _order_at_state(OrderStatus.DRAFT)
        order.transition_to(OrderStatus.CONFIRMED)

        event = order._events[-1]
        assert isinstance(event, OrderStatusChanged)
        assert event.previous_status == "Draft"
        assert event.new_status == "Confirmed"

    def test_delivery_records_delivery_date(self):
        order = _order_at_state(OrderStatus.SHIPPED)
        transition_order_status(order, OrderStatus.DELIVERED, today=date(2024, 4, 2))
        assert order.delivery_date == date(2024, 4, 2)

    @pytest.mark.parametrize("value", ["Confirmed", "CONFIRMED", OrderStatus.CONFIRMED])
    def test_target_accepts_value_name_or_member(self, value):
        order = _order_at_state(OrderStatus.DRAFT)
        order.transition_to(value)
        assert order.status == "Confirmed"

    def test_unknown_status_is_rejected(self):
        order = _order_at_state(OrderStatus.DRAFT)
        with pytest.raises(ValidationError):
            order.transition_to("Archived")
        assert order.status == "Draft"


class TestPredicates:
    @pytest.mark.parametrize(
        "status, expected",
        [(s, s in {OrderStatus.DRAFT, OrderStatus.CONFIRMED}) for s in OrderStatus],
    )
    def test_can_be_modified(self, status, expected):
        assert _order_at_state(status).can_be_modified is expected

    @pytest.mark.parametrize(
        "status, expected",
        [(s, s not in {OrderStatus.CANCELLED, OrderStatus.DELIVERED, OrderStatus.RETURNED}) for s in OrderStatus],
    )
    def test_can_be_cancelled(self, status, expected):
        assert _order_at_state(status).can_be_cancelled is expected

    @pytest.mark.parametrize(
        "status, expected",
        [
            (s, s in {OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.DELIVERED})
            for s in OrderStatus
        ],
    )
    def test_can_be_invoiced(self, status, expected):
        assert _order_at_state(status).can_be_invoiced is expected

    def test_only_uninvoiced_drafts_can_be_deleted(self):
        assert _order_at_state(OrderStatus.DRAFT).can_be_deleted is True
        assert _order_at_state(OrderStatus.CONFIRMED).can_be_deleted is False


class TestInvoiceLink:
    def test_link_invoice_sets_reference(self):
        order = _order_at_state(OrderStatus.CONFIRMED)
        order.link_invoice("inv-001", "FACT-202403-0001")

        assert order.invoice_id == "inv-001"
        assert order.can_be_invoiced is False
        assert isinstance(order._events[-1], OrderInvoiced)

    def test_second_link_is_rejected(self):
        order = _order_at_state(OrderStatus.SHIPPED)
        order.link_invoice("inv-001", "FACT-202403-0001")
        with pytest.raises(AlreadyInvoiced):
            order.link_invoice("inv-002", "FACT-202403-0002")
        assert order.invoice_id == "inv-001"

    def test_draft_order_is_not_invoiceable(self):
        order = _order_at_state(OrderStatus.DRAFT)
        with pytest.raises(NotInvoiceable):
            order.assert_invoiceable()

    def test_invoiced_draft_cannot_be_deleted(self):
        order = _order_at_state(OrderStatus.CONFIRMED)
        order.link_invoice("inv-001", "FACT-202403-0001")
        order.status = OrderStatus.DRAFT.value
        assert order.can_be_deleted is False
