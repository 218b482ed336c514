"""Tests for the Order aggregate: creation, item changes, status and totals."""

import json

import pytest
from ordering.order.events import OrderCreated, OrderDeleted, OrderItemsUpdated, OrderStatusUpdated
from ordering.order.order import Order
from ordering.order.state_machine import OrderStatus
from protean.exceptions import ValidationError
from shared.errors import ConflictError, InvalidStateError

WIDGETS = {"product_id": "prod-001", "product_name": "Widget", "product_sku": "WID-001", "quantity": 3, "unit_price": 10.0}
GADGET = {"product_id": "prod-002", "product_name": "Gadget", "product_sku": "GAD-002", "quantity": 1, "unit_price": 20.0}


def _make_order(items=None, **kwargs):
    return Order.create(
        customer_id="cust-001",
        order_number="ORD-20260101-0001",
        items_data=items or [WIDGETS, GADGET],
        shipping_address="1 Main St",
        shipping_city="Springfield",
        shipping_zip_code="12345",
        shipping_country="US",
        **kwargs,
    )


def _order_at(status: OrderStatus) -> Order:
    order = _make_order()
    path = {
        OrderStatus.PENDING: [],
        OrderStatus.CONFIRMED: ["Confirmed"],
        OrderStatus.PROCESSING: ["Confirmed", "Processing"],
        OrderStatus.SHIPPED: ["Confirmed", "Processing", "Shipped"],
        OrderStatus.DELIVERED: ["Confirmed", "Processing", "Shipped", "Delivered"],
        OrderStatus.CANCELLED: ["Cancelled"],
    }[status]
    for step in path:
        order.change_status(step)
    order._events.clear()
    return order


class TestOrderCreation:
    def test_new_order_is_pending(self):
        order = _make_order()
        assert order.status == OrderStatus.PENDING.value
        assert order.current_status is OrderStatus.PENDING

    def test_new_order_starts_at_revision_one(self):
        assert _make_order().revision == 1

    def test_totals_are_computed_from_items(self):
        order = _make_order()
        assert order.sub_total == 50.0
        assert order.tax_amount == 5.0
        assert order.shipping_cost == 10.0
        assert order.total_amount == 65.0

    def test_line_totals_are_stored_per_item(self):
        order = _make_order()
        totals = sorted(item.total_price for item in order.items)
        assert totals == [20.0, 30.0]

    def test_items_keep_product_snapshot(self):
        order = _make_order()
        widget = next(i for i in order.items if i.product_id == "prod-001")
        assert widget.product_name == "Widget"
        assert widget.product_sku == "WID-001"
        assert widget.unit_price == 10.0

    def test_initial_history_entry(self):
        order = _make_order()
        assert len(order.status_history) == 1
        entry = order.status_history[0]
        assert entry.previous_status is None
        assert entry.new_status == "Pending"

    def test_raises_order_created(self):
        order = _make_order()
        assert len(order._events) == 1
        event = order._events[0]
        assert isinstance(event, OrderCreated)
        assert event.order_number == "ORD-20260101-0001"
        assert event.total_amount == 65.0
        assert len(json.loads(event.items)) == 2

    def test_requires_at_least_one_item(self):
        with pytest.raises(ValidationError) as exc:
            Order.create(customer_id="cust-001", order_number="ORD-20260101-0002", items_data=[])
        assert "items" in exc.value.messages

    def test_rejects_zero_quantity(self):
        with pytest.raises(ValidationError):
            _make_order(items=[{**WIDGETS, "quantity": 0}])

    def test_free_shipping_above_threshold(self):
        order = _make_order(items=[{**WIDGETS, "quantity": 11}])
        assert order.sub_total == 110.0
        assert order.shipping_cost == 0.0
        assert order.total_amount == 121.0


class TestTotalInvariant:
    def test_total_cannot_drift_from_components(self):
        order = _make_order()
        with pytest.raises(ValidationError) as exc:
            order.total_amount = 1.0
        assert "total_amount" in exc.value.messages


class TestUpdateItems:
    def _lines(self, order):
        return {line["product_id"]: line for line in order.item_lines()}

    def test_quantity_change_recomputes_totals(self):
        order = _make_order()
        lines = self._lines(order)
        order.update_items(
            [
                {**WIDGETS, "id": lines["prod-001"]["id"], "quantity": 9},
                {**GADGET, "id": lines["prod-002"]["id"]},
            ]
        )
        assert order.sub_total == 110.0
        assert order.shipping_cost == 0.0
        assert order.tax_amount == 11.0
        assert order.total_amount == 121.0

    def test_update_bumps_revision(self):
        order = _make_order()
        lines = self._lines(order)
        order.update_items([{**WIDGETS, "id": lines["prod-001"]["id"]}])
        assert order.revision == 2

    def test_missing_items_are_removed(self):
        order = _make_order()
        lines = self._lines(order)
        order.update_items([{**WIDGETS, "id": lines["prod-001"]["id"]}])
        assert [item.product_id for item in order.items] == ["prod-001"]
        assert order.sub_total == 30.0

    def test_edit_survives_removal_in_the_same_update(self):
        order = _make_order()
        lines = self._lines(order)
        order.update_items([{**GADGET, "id": lines["prod-002"]["id"], "quantity": 4}])
        assert [(item.product_id, item.quantity) for item in order.items] == [("prod-002", 4)]
        assert order.items[0].total_price == 80.0
        assert order.sub_total == 80.0

    def test_lines_without_id_are_added(self):
        order = _make_order()
        lines = self._lines(order)
        order.update_items(
            [
                {**WIDGETS, "id": lines["prod-001"]["id"]},
                {**GADGET, "id": lines["prod-002"]["id"]},
                {"product_id": "prod-003", "product_name": "Gizmo", "quantity": 1, "unit_price": 60.0},
            ]
        )
        assert len(order.items) == 3
        assert order.sub_total == 110.0

    def test_existing_item_keeps_its_price_snapshot(self):
        order = _make_order()
        lines = self._lines(order)
        order.update_items([{**WIDGETS, "id": lines["prod-001"]["id"], "unit_price": 99.0, "quantity": 4}])
        widget = order.items[0]
        assert widget.unit_price == 10.0
        assert widget.total_price == 40.0

    def test_unknown_item_id_is_rejected(self):
        order = _make_order()
        with pytest.raises(ValidationError):
            order.update_items([{**WIDGETS, "id": "not-an-item"}])

    def test_empty_item_list_is_rejected(self):
        with pytest.raises(ValidationError):
            _make_order().update_items([])

    def test_raises_items_updated_with_previous_lines(self):
        order = _make_order()
        order._events.clear()
        lines = self._lines(order)
        order.update_items([{**WIDGETS, "id": lines["prod-001"]["id"], "quantity": 5}])

        event = order._events[-1]
        assert isinstance(event, OrderItemsUpdated)
        assert len(json.loads(event.previous_items)) == 2
        assert json.loads(event.items)[0]["quantity"] == 5
        assert event.revision == 2

    @pytest.mark.parametrize("status", [OrderStatus.CONFIRMED, OrderStatus.SHIPPED, OrderStatus.CANCELLED])
    def test_only_pending_orders_can_change_items(self, status):
        order = _order_at(status)
        with pytest.raises(InvalidStateError):
            order.update_items([WIDGETS])


class TestUpdateDetails:
    def test_only_given_fields_change(self):
        order = _make_order()
        order.update_details(shipping_city="Shelbyville", notes="Leave at the door")
        assert order.shipping_city == "Shelbyville"
        assert order.shipping_address == "1 Main St"
        assert order.notes == "Leave at the door"
        assert order.revision == 2

    def test_no_changes_keep_revision(self):
        order = _make_order()
        order.update_details()
        assert order.revision == 1


class TestChangeStatus:
    def test_confirm_pending_order(self):
        order = _make_order()
        previous = order.change_status("Confirmed", reason="Payment received", changed_by="ops")
        assert previous is OrderStatus.PENDING
        assert order.status == "Confirmed"

    def test_history_records_each_change(self):
        order = _order_at(OrderStatus.SHIPPED)
        transitions = [(c.previous_status, c.new_status) for c in order.status_history]
        assert transitions == [
            (None, "Pending"),
            ("Pending", "Confirmed"),
            ("Confirmed", "Processing"),
            ("Processing", "Shipped"),
        ]

    def test_raises_status_changed(self):
        order = _make_order()
        order._events.clear()
        order.change_status("Cancelled", reason="Customer request")
        event = order._events[0]
        assert isinstance(event, OrderStatusUpdated)
        assert event.previous_status == "Pending"
        assert event.new_status == "Cancelled"
        assert event.reason == "Customer request"

    def test_invalid_transition_leaves_order_untouched(self):
        order = _make_order()
        with pytest.raises(InvalidStateError):
            order.change_status("Shipped")
        assert order.status == "Pending"
        assert order.revision == 1
        assert len(order.status_history) == 1

    def test_terminal_state_is_final(self):
        order = _order_at(OrderStatus.DELIVERED)
        with pytest.raises(InvalidStateError):
            order.change_status("Cancelled")


class TestMarkDeleted:
    def test_pending_order_raises_deleted_event(self):
        order = _make_order()
        order._events.clear()
        order.mark_deleted()
        assert isinstance(order._events[0], OrderDeleted)

    def test_processing_order_cannot_be_deleted(self):
        order = _order_at(OrderStatus.PROCESSING)
        with pytest.raises(InvalidStateError):
            order.mark_deleted()


class TestCheckRevision:
    def test_matching_revision_passes(self):
        _make_order().check_revision(1)

    def test_no_expectation_passes(self):
        _make_order().check_revision(None)

    def test_stale_revision_conflicts(self):
        with pytest.raises(ConflictError) as exc:
            _make_order().check_revision(7)
        assert exc.value.details["current_revision"] == 1
