"""Tests for variant stock on the Product aggregate."""

import pytest
from protean.exceptions import ValidationError

from shoestore.catalogue.product.events import (
    LowStockDetected,
    StockAdjusted,
    StockReleased,
    StockReserved,
    VariantAdded,
)
from shoestore.catalogue.product.product import Product
from shoestore.errors import InactiveVariant, InsufficientStock, VariantNotFound


def _product(stock=5, threshold=2):
    product = Product.create(name="Gel Kayano", brand="Asics", category="running", gender="women")
    product.add_variant(size="8", color="Blue", sku="GK-8-BLU", price=160.0, stock=stock, low_stock_threshold=threshold)
    product._events.clear()
    return product


class TestAddVariant:
    def test_total_stock_follows_variants(self):
        product = _product(stock=5)
        product.add_variant(size="9", color="Blue", sku="GK-9-BLU", price=160.0, stock=3)
        assert product.total_stock == 8

    def test_raises_event(self):
        product = _product()
        product.add_variant(size="9", color="Blue", sku="GK-9-BLU", price=160.0, stock=3)
        assert isinstance(product._events[-1], VariantAdded)
        assert product._events[-1].stock == 3

    def test_rejects_duplicate_size_and_color(self):
        product = _product()
        with pytest.raises(ValidationError):
            product.add_variant(size="8", color="blue", sku="GK-8-BLU-2", price=160.0)

    def test_rejects_unknown_size(self):
        product = _product()
        with pytest.raises(ValidationError):
            product.add_variant(size="45", color="Blue", sku="GK-45", price=160.0)


class TestReserveStock:
    def test_decrements_stock(self):
        product = _product(stock=5)
        product.reserve_stock("8", "Blue", 2)
        assert product.find_variant("8", "Blue").stock == 3
        assert product.total_stock == 3

    def test_color_match_is_case_insensitive(self):
        product = _product(stock=5)
        product.reserve_stock("8", "blue", 1)
        assert product.find_variant("8", "Blue").stock == 4

    def test_raises_reserved_event(self):
        product = _product(stock=5)
        product.reserve_stock("8", "Blue", 1)
        event = product._events[0]
        assert isinstance(event, StockReserved)
        assert event.quantity == 1
        assert event.remaining == 4

    def test_insufficient_stock_reports_what_is_left(self):
        product = _product(stock=2)
        with pytest.raises(InsufficientStock) as exc:
            product.reserve_stock("8", "Blue", 3)
        assert exc.value.available == 2
        assert exc.value.requested == 3
        assert "2" in exc.value.message
        assert product.find_variant("8", "Blue").stock == 2

    def test_unknown_variant(self):
        product = _product()
        with pytest.raises(VariantNotFound):
            product.reserve_stock("11", "Blue", 1)

    def test_inactive_variant(self):
        product = _product()
        product.deactivate_variant(product.find_variant("8", "Blue").id)
        with pytest.raises(InactiveVariant):
            product.reserve_stock("8", "Blue", 1)

    def test_inactive_product(self):
        product = _product()
        product.deactivate()
        with pytest.raises(InactiveVariant):
            product.reserve_stock("8", "Blue", 1)

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_quantity_must_be_positive(self, quantity):
        product = _product(stock=5)
        with pytest.raises(ValidationError):
            product.reserve_stock("8", "Blue", quantity)
        assert product.find_variant("8", "Blue").stock == 5
        assert product._events == []

    def test_low_stock_signal_at_threshold(self):
        product = _product(stock=4, threshold=2)
        product.reserve_stock("8", "Blue", 2)
        low = [e for e in product._events if isinstance(e, LowStockDetected)]
        assert len(low) == 1
        assert low[0].current_stock == 2
        assert low[0].threshold == 2

    def test_no_low_stock_signal_above_threshold(self):
        product = _product(stock=5, threshold=2)
        product.reserve_stock("8", "Blue", 1)
        assert not [e for e in product._events if isinstance(e, LowStockDetected)]


class TestReleaseStock:
    def test_increments_stock(self):
        product = _product(stock=5)
        product.reserve_stock("8", "Blue", 3)
        product.release_stock("8", "Blue", 3)
        assert product.find_variant("8", "Blue").stock == 5
        assert isinstance(product._events[-1], StockReleased)

    def test_inactive_variant_still_takes_stock_back(self):
        product = _product(stock=5)
        product.reserve_stock("8", "Blue", 1)
        product.deactivate_variant(product.find_variant("8", "Blue").id)
        product.release_stock("8", "Blue", 1)
        assert product.find_variant("8", "Blue").stock == 5

    def test_quantity_must_be_positive(self):
        product = _product()
        with pytest.raises(ValidationError):
            product.release_stock("8", "Blue", 0)


class TestAdjustStock:
    def test_restock(self):
        product = _product(stock=1)
        variant = product.find_variant("8", "Blue")
        product.adjust_stock(variant.id, 10, reason="Delivery")
        assert variant.stock == 11
        event = product._events[-1]
        assert isinstance(event, StockAdjusted)
        assert event.previous_stock == 1
        assert event.new_stock == 11

    def test_cannot_write_off_more_than_stock(self):
        product = _product(stock=1)
        with pytest.raises(ValidationError):
            product.adjust_stock(product.find_variant("8", "Blue").id, -2)


class TestAvailability:
    def test_deactivate_twice_raises_one_event(self):
        product = _product()
        product.deactivate()
        product.deactivate()
        assert len(product._events) == 1
        assert product.is_active is False

    def test_reactivate(self):
        product = _product()
        product.deactivate()
        product.activate()
        assert product.is_active is True
