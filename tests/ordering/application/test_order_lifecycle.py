"""Application tests for cancellation and staff status updates."""

import pytest
from protean.exceptions import ValidationError

from shoestore.errors import Forbidden, NotFound
from shoestore.ordering.order.lifecycle import cancel_order, load_order_for, update_order_status
from shoestore.ordering.order.order import OrderStatus


def _items(runner, boot):
    return [
        {"product_id": str(runner.id), "size": "10", "color": "Black", "quantity": 2},
        {"product_id": str(boot.id), "size": "9", "color": "Brown", "quantity": 1},
    ]


class TestCancel:
    def test_releases_exact_quantities(self, customer, runner, boot, place_order, stock_of):
        order = place_order(customer, _items(runner, boot))

        cancelled = cancel_order(order.id, customer, reason="Found them cheaper")

        assert cancelled.status == OrderStatus.CANCELLED.value
        assert cancelled.cancellation_reason == "Found them cheaper"
        assert stock_of(runner, "10", "Black") == 5
        assert stock_of(boot, "9", "Brown") == 5

    def test_second_cancel_is_rejected_and_stock_untouched(self, customer, runner, boot, place_order, stock_of):
        order = place_order(customer, _items(runner, boot))
        cancel_order(order.id, customer)

        with pytest.raises(ValidationError):
            cancel_order(order.id, customer)
        assert stock_of(runner, "10", "Black") == 5

    def test_other_customers_cannot_cancel(self, customer, register, order):
        stranger = register(email="eve@example.com", first_name="Eve", last_name="Dropper")
        with pytest.raises(Forbidden):
            cancel_order(order.id, stranger)

    def test_staff_cancel_of_processing_order_releases_stock(self, customer, staff, runner, order, stock_of):
        update_order_status(order.id, staff, "confirmed")
        update_order_status(order.id, staff, "processing")

        cancel_order(order.id, staff, reason="Warehouse damage")

        assert stock_of(runner, "10", "Black") == 5

    def test_unknown_order(self, customer):
        with pytest.raises(NotFound):
            cancel_order("missing", customer)


class TestStaffStatusUpdates:
    def test_requires_staff(self, customer, order):
        with pytest.raises(Forbidden):
            update_order_status(order.id, customer, "confirmed")

    def test_records_who_changed_it(self, staff, order):
        updated = update_order_status(order.id, staff, "confirmed", note="Phoned customer")
        change = [s for s in updated.status_history if s.to_status == "confirmed"][0]
        assert change.changed_by == "staff"
        assert change.note == "Phoned customer"

    def test_cancel_through_status_update_releases_stock(self, staff, runner, order, stock_of):
        update_order_status(order.id, staff, "cancelled", note="Fraud check")
        assert stock_of(runner, "10", "Black") == 5

    def test_shipping_keeps_stock_out(self, staff, runner, order, stock_of):
        update_order_status(order.id, staff, "confirmed")
        update_order_status(
            order.id,
            staff,
            "shipped",
            tracking={"carrier": "UPS", "tracking_number": "1Z999", "tracking_url": None},
        )
        assert stock_of(runner, "10", "Black") == 4


class TestVisibility:
    def test_owner_and_staff_can_see_an_order(self, customer, staff, order):
        assert load_order_for(order.id, customer).id == order.id
        assert load_order_for(order.id, staff).id == order.id

    def test_strangers_cannot(self, register, order):
        stranger = register(email="eve@example.com", first_name="Eve", last_name="Dropper")
        with pytest.raises(Forbidden):
            load_order_for(order.id, stranger)
