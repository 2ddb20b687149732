"""Application tests for order placement: pricing, reservation and compensation."""

import pytest
from protean import current_domain
from protean.exceptions import ValidationError

from shoestore.catalogue.product.product import Product
from shoestore.domain import shoestore
from shoestore.errors import EmptyOrder, InsufficientStock, ProductUnavailable, VariantUnavailable
from shoestore.ordering.cart.management import AddToCart, cart_for
from shoestore.ordering.order.order import Order, OrderStatus, PaymentStatus
from shoestore.ordering.order.placement import OrderPlacement
from shoestore.ordering.order.queries import orders_for_customer


def _item(product, size, color, quantity=1, **extra):
    return {"product_id": str(product.id), "size": size, "color": color, "quantity": quantity, **extra}


class TestPlaceWithItems:
    def test_two_items_in_stock(self, customer, runner, boot, place_order, stock_of):
        order = place_order(customer, [_item(runner, "10", "Black"), _item(boot, "9", "Brown")])

        assert order.status == OrderStatus.PENDING.value
        assert order.payment_status == PaymentStatus.PENDING.value
        assert stock_of(runner, "10", "Black") == 4
        assert stock_of(boot, "9", "Brown") == 4

    def test_priced_from_catalogue(self, customer, runner, place_order):
        order = place_order(customer, [_item(runner, "10", "Black", 2, unit_price=1.0, price=1.0)])

        assert order.items[0].unit_price == 120.0
        assert order.pricing.subtotal == 240.0
        assert order.pricing.total == round(240.0 + 5.99 + 19.2, 2)

    def test_shipping_method_changes_total(self, customer, runner, place_order):
        order = place_order(customer, [_item(runner, "10", "Black")], shipping_method="overnight")
        assert order.pricing.shipping_cost == 24.99

    def test_insufficient_stock_leaves_everything_untouched(self, customer, runner, make_product, place_order, stock_of):
        sold_out = make_product(name="Sold Out", variants=(("10", "White", 0, 90.0),))

        with pytest.raises(InsufficientStock) as exc:
            place_order(customer, [_item(runner, "10", "Black"), _item(sold_out, "10", "White")])

        assert exc.value.available == 0
        assert stock_of(runner, "10", "Black") == 5
        assert orders_for_customer(customer.id) == []

    def test_unknown_product(self, customer, place_order):
        with pytest.raises(ProductUnavailable):
            place_order(customer, [{"product_id": "missing", "size": "10", "color": "Black", "quantity": 1}])

    def test_inactive_product(self, customer, runner, place_order):
        runner.deactivate()
        current_domain.repository_for(Product).add(runner)
        with pytest.raises(ProductUnavailable):
            place_order(customer, [_item(runner, "10", "Black")])

    def test_missing_variant(self, customer, runner, place_order):
        with pytest.raises(VariantUnavailable):
            place_order(customer, [_item(runner, "12", "Black")])

    def test_unknown_shipping_method_reserves_nothing(self, customer, runner, place_order, stock_of):
        with pytest.raises(ValidationError):
            place_order(customer, [_item(runner, "10", "Black")], shipping_method="teleport")
        assert stock_of(runner, "10", "Black") == 5


class TestPlaceFromCart:
    def test_checks_out_the_cart_and_clears_it(self, customer, runner, place_order, stock_of):
        current_domain.process(
            AddToCart(customer_id=str(customer.id), product_id=str(runner.id), size="10", color="Black", quantity=2),
            asynchronous=False,
        )

        order = place_order(customer)

        assert order.items[0].quantity == 2
        assert stock_of(runner, "10", "Black") == 3
        assert cart_for(customer.id).is_empty

    def test_empty_cart(self, customer, place_order):
        with pytest.raises(EmptyOrder):
            place_order(customer)

    def test_explicit_items_leave_the_cart_alone(self, customer, runner, boot, place_order):
        current_domain.process(
            AddToCart(customer_id=str(customer.id), product_id=str(boot.id), size="9", color="Brown"),
            asynchronous=False,
        )
        place_order(customer, [_item(runner, "10", "Black")])
        assert len(cart_for(customer.id).items) == 1


class TestPersistFailure:
    def test_reservation_is_released_when_the_order_cannot_be_stored(
        self, customer, runner, address, stock_of, monkeypatch
    ):
        def refuse(command, asynchronous=True):
            raise RuntimeError("database is down")

        placement = OrderPlacement()
        monkeypatch.setattr(shoestore, "process", refuse)

        with pytest.raises(RuntimeError):
            placement.place(
                customer_id=customer.id,
                shipping_address=address,
                items=[_item(runner, "10", "Black", 2)],
            )

        monkeypatch.undo()
        assert stock_of(runner, "10", "Black") == 5
        assert current_domain.repository_for(Order)._dao.query.all().items == []
