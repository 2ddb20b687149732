"""Application tests for batch stock reservation and compensation."""

import threading

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from shoestore.catalogue.product import reservation as reservation_module
from shoestore.catalogue.product.product import Product
from shoestore.catalogue.product.reservation import StockRequest, StockReservation
from shoestore.domain import shoestore
from shoestore.errors import InactiveVariant, InsufficientStock, ReservationFailed, VariantNotFound
from shoestore.notifications.notification import product_events


def _request(product, size, color, quantity=1):
    return StockRequest(str(product.id), size, color, quantity)


class TestReserve:
    def test_reserves_every_line(self, runner, boot, stock_of):
        lines = StockReservation().reserve([_request(runner, "10", "Black"), _request(boot, "9", "Brown", 2)])

        assert [line.quantity for line in lines] == [1, 2]
        assert stock_of(runner, "10", "Black") == 4
        assert stock_of(boot, "9", "Brown") == 3

    def test_reserved_line_carries_remaining_stock(self, runner):
        line = StockReservation().reserve_one(_request(runner, "10", "Black", 2))
        assert line.remaining == 3
        assert line.sku == runner.find_variant("10", "Black").sku

    def test_failure_restores_earlier_lines(self, runner, make_product, stock_of):
        sold_out = make_product(name="Sold Out", variants=(("10", "White", 0, 90.0),))

        with pytest.raises(InsufficientStock):
            StockReservation().reserve([_request(runner, "10", "Black"), _request(sold_out, "10", "White")])

        assert stock_of(runner, "10", "Black") == 5
        assert stock_of(sold_out, "10", "White") == 0

    def test_unknown_product(self, runner, stock_of):
        with pytest.raises(VariantNotFound):
            StockReservation().reserve(
                [_request(runner, "10", "Black"), StockRequest("no-such-product", "10", "Black", 1)]
            )
        assert stock_of(runner, "10", "Black") == 5

    def test_inactive_variant_fails_the_batch(self, runner, boot, stock_of):
        boot.deactivate_variant(boot.find_variant("9", "Brown").id)
        current_domain.repository_for(Product).add(boot)

        with pytest.raises(InactiveVariant):
            StockReservation().reserve([_request(runner, "10", "Black"), _request(boot, "9", "Brown")])
        assert stock_of(runner, "10", "Black") == 5

    def test_negative_quantity_never_adds_stock(self, runner, boot, stock_of):
        with pytest.raises(ValidationError):
            StockReservation().reserve([_request(runner, "10", "Black"), _request(boot, "9", "Brown", -3)])

        assert stock_of(runner, "10", "Black") == 5
        assert stock_of(boot, "9", "Brown") == 5

    def test_compensation_failure_is_reported(self, runner, make_product, monkeypatch):
        sold_out = make_product(name="Sold Out", variants=(("10", "White", 0, 90.0),))
        reservation = StockReservation()

        def broken_release(line):
            raise RuntimeError("storage unavailable")

        monkeypatch.setattr(reservation, "release_one", broken_release)

        with pytest.raises(ReservationFailed) as exc:
            reservation.reserve([_request(runner, "10", "Black"), _request(sold_out, "10", "White")])
        assert exc.value.details["unreleased_skus"] == [runner.find_variant("10", "Black").sku]
        assert exc.value.details["cause"] == "InsufficientStock"


class TestRelease:
    def test_release_puts_back_exact_quantities(self, runner, boot, stock_of):
        reservation = StockReservation()
        lines = reservation.reserve([_request(runner, "10", "Black", 2), _request(boot, "9", "Brown", 3)])

        reservation.release(lines)

        assert stock_of(runner, "10", "Black") == 5
        assert stock_of(boot, "9", "Brown") == 5


@pytest.mark.slow
class TestConcurrentReservation:
    def test_last_units_are_never_oversold(self, make_product, stock_of):
        product = make_product(name="Limited", variants=(("10", "Red", 3, 250.0),))
        reservation = StockReservation()
        outcomes = []

        def attempt():
            with shoestore.domain_context():
                try:
                    reservation.reserve([_request(product, "10", "Red")])
                    outcomes.append("reserved")
                except InsufficientStock:
                    outcomes.append("sold_out")

        threads = [threading.Thread(target=attempt) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert outcomes.count("reserved") == 3
        assert outcomes.count("sold_out") == 7
        assert stock_of(product, "10", "Red") == 0


class TestLowStockAlerts:
    def _watch_broadcasts(self, monkeypatch, product):
        lock = reservation_module._shared_locks.for_product(product.id)
        broadcasts = []

        def record(notification_type, data=None, interval=None):
            broadcasts.append({"type": notification_type, "sku": data["sku"], "lock_held": lock.locked()})

        monkeypatch.setattr(product_events, "notify_admins", record)
        return broadcasts

    def test_alert_goes_out_after_the_lock_is_released(self, staff, make_product, monkeypatch):
        trail = make_product(name="Speedgoat 5", brand="Hoka", variants=(("9", "Blue", 3, 150.0),), threshold=2)
        broadcasts = self._watch_broadcasts(monkeypatch, trail)

        StockReservation().reserve([_request(trail, "9", "Blue")])

        assert broadcasts == [{"type": "low_stock", "sku": "SPE-9-BLU", "lock_held": False}]

    def test_single_line_alert_also_waits_for_the_lock(self, staff, make_product, monkeypatch):
        trail = make_product(name="Speedgoat 5", brand="Hoka", variants=(("9", "Blue", 3, 150.0),), threshold=2)
        broadcasts = self._watch_broadcasts(monkeypatch, trail)

        StockReservation().reserve_one(_request(trail, "9", "Blue"))

        assert [b["lock_held"] for b in broadcasts] == [False]

    def test_rolled_back_batch_sends_no_alert(self, staff, make_product, monkeypatch, stock_of):
        trail = make_product(name="Speedgoat 5", brand="Hoka", variants=(("9", "Blue", 3, 150.0),), threshold=2)
        sold_out = make_product(name="Sold Out", variants=(("10", "White", 0, 90.0),))
        broadcasts = self._watch_broadcasts(monkeypatch, trail)

        with pytest.raises(InsufficientStock):
            StockReservation().reserve([_request(trail, "9", "Blue"), _request(sold_out, "10", "White")])

        assert broadcasts == []
        assert stock_of(trail, "9", "Blue") == 3
