"""Tests for the Order aggregate: creation, status machine and cancellation."""

import json

import pytest
from protean.exceptions import ValidationError

from shoestore.ordering.order.events import OrderCancelled, OrderPlaced, OrderStatusChanged
from shoestore.ordering.order.order import Order, OrderStatus, PaymentStatus
from shoestore.ordering.order.pricing import PriceBreakdown

ADDRESS = {
    "first_name": "Ada",
    "last_name": "Lovelace",
    "street": "12 Analytical Way",
    "city": "Portland",
    "state": "OR",
    "zip_code": "97201",
}


def _line(sku="PEG-10-BLA", quantity=1, unit_price=120.0):
    return {
        "product_id": "prod-1",
        "variant_id": "var-1",
        "product_name": "Pegasus 40",
        "brand": "Nike",
        "size": "10",
        "color": "Black",
        "sku": sku,
        "quantity": quantity,
        "unit_price": unit_price,
    }


def _order(lines=None):
    order = Order.create(
        customer_id="cust-1",
        lines=lines or [_line()],
        shipping_address=ADDRESS,
        shipping_method="standard",
        pricing=PriceBreakdown(subtotal=120.0, shipping_cost=5.99, tax=9.6, discount=0.0, total=135.59),
    )
    order._events.clear()
    return order


class TestCreate:
    def test_starts_pending(self):
        order = _order()
        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.PENDING.value

    def test_items_are_snapshots(self):
        order = _order([_line(quantity=2, unit_price=60.0)])
        item = order.items[0]
        assert item.line_total == 120.0
        assert item.product_name == "Pegasus 40"

    def test_order_number_format(self):
        assert _order().order_number.startswith("ORD-")

    def test_pricing_is_stored(self):
        order = _order()
        assert order.pricing.total == 135.59
        assert order.pricing.currency == "USD"

    def test_raises_placed_event(self):
        order = Order.create(
            customer_id="cust-1",
            lines=[_line(quantity=2)],
            shipping_address=ADDRESS,
            shipping_method="express",
            pricing=PriceBreakdown(subtotal=240.0, shipping_cost=12.99, tax=19.2, discount=0.0, total=272.19),
        )
        event = order._events[0]
        assert isinstance(event, OrderPlaced)
        assert event.item_count == 2
        assert json.loads(event.items)[0]["sku"] == "PEG-10-BLA"

    def test_needs_items(self):
        with pytest.raises(ValidationError):
            Order.create(
                customer_id="cust-1",
                lines=[],
                shipping_address=ADDRESS,
                shipping_method="standard",
                pricing=PriceBreakdown(subtotal=0, shipping_cost=0, tax=0, discount=0, total=0),
            )

    def test_gift_message_only_for_gifts(self):
        order = Order.create(
            customer_id="cust-1",
            lines=[_line()],
            shipping_address=ADDRESS,
            shipping_method="standard",
            pricing=PriceBreakdown(subtotal=120.0, shipping_cost=5.99, tax=9.6, discount=0.0, total=135.59),
            gift_message="Enjoy",
        )
        assert order.gift_message is None


class TestStatusMachine:
    def test_happy_path(self):
        order = _order()
        for status in ("confirmed", "processing", "shipped", "delivered"):
            order.update_status(status, changed_by="staff")
        assert order.status == OrderStatus.DELIVERED.value
        assert order.delivered_at is not None
        assert [s.to_status for s in order.status_history][-1] == "delivered"

    def test_shipping_records_tracking(self):
        order = _order()
        order.update_status("confirmed")
        order.update_status("shipped", tracking={"carrier": "UPS", "tracking_number": "1Z999"})
        assert order.tracking.tracking_number == "1Z999"
        assert order._events[-1].tracking_number == "1Z999"

    def test_raises_status_changed(self):
        order = _order()
        order.update_status("confirmed", note="Checked by hand")
        event = order._events[0]
        assert isinstance(event, OrderStatusChanged)
        assert event.previous_status == "pending"
        assert event.new_status == "confirmed"

    def test_invalid_transition(self):
        order = _order()
        with pytest.raises(ValidationError):
            order.update_status("delivered")

    def test_unknown_status(self):
        with pytest.raises(ValidationError):
            _order().update_status("teleported")

    def test_terminal_statuses_are_final(self):
        order = _order()
        order.cancel()
        with pytest.raises(ValidationError):
            order.update_status("confirmed")


class TestCancel:
    def test_customer_can_cancel_pending(self):
        order = _order()
        order.cancel(reason="Changed my mind", cancelled_by="customer")
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Changed my mind"
        assert order.cancelled_at is not None

    def test_cancel_event_lists_reserved_lines(self):
        order = _order([_line(quantity=3)])
        order.cancel()
        event = order._events[0]
        assert isinstance(event, OrderCancelled)
        assert json.loads(event.items)[0]["quantity"] == 3

    def test_customer_cannot_cancel_processing_order(self):
        order = _order()
        order.update_status("confirmed")
        order.update_status("processing")
        with pytest.raises(ValidationError):
            order.cancel(cancelled_by="customer")

    def test_staff_can_cancel_processing_order(self):
        order = _order()
        order.update_status("confirmed")
        order.update_status("processing")
        order.cancel(cancelled_by="staff", by_staff=True)
        assert order.status == OrderStatus.CANCELLED.value

    def test_nobody_cancels_a_shipped_order(self):
        order = _order()
        order.update_status("confirmed")
        order.update_status("shipped")
        with pytest.raises(ValidationError):
            order.cancel(by_staff=True)

    def test_holds_stock_until_shipped(self):
        order = _order()
        assert order.holds_stock is True
        order.update_status("confirmed")
        order.update_status("shipped")
        assert order.holds_stock is False
