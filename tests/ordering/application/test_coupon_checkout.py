"""Application tests for coupons at checkout: discount, limits and usage counting."""

from datetime import UTC, datetime, timedelta

import pytest
from protean import current_domain

from shoestore.errors import InvalidCoupon
from shoestore.ordering.coupon.coupon import Coupon
from shoestore.ordering.coupon.management import DeactivateCoupon
from shoestore.ordering.order.lifecycle import cancel_order
from shoestore.ordering.order.placement import OrderPlacement
from shoestore.ordering.order.queries import orders_for_customer


def _item(product, size, color, quantity=1):
    return {"product_id": str(product.id), "size": size, "color": color, "quantity": quantity}


def _uses(coupon):
    return current_domain.repository_for(Coupon).get(coupon.id).used_count


class TestDiscountAtCheckout:
    def test_percentage_coupon_lowers_the_total(self, customer, runner, make_coupon, place_order):
        coupon = make_coupon(value=10.0)

        order = place_order(customer, [_item(runner, "10", "Black")], coupon_code="spring10")

        assert order.coupon_code == "SPRING10"
        assert order.pricing.discount == 12.0
        assert order.pricing.total == round(120.0 + 5.99 + 9.6 - 12.0, 2)
        assert _uses(coupon) == 1

    def test_only_applicable_lines_are_discounted(self, customer, runner, boot, make_coupon, place_order):
        make_coupon(code="BOOTS20", value=20.0, applicable_brands=["Blundstone"])

        order = place_order(
            customer,
            [_item(runner, "10", "Black"), _item(boot, "9", "Brown")],
            coupon_code="BOOTS20",
        )

        assert order.pricing.subtotal == 320.0
        assert order.pricing.discount == 40.0

    def test_fixed_coupon_is_capped_at_the_applicable_amount(self, customer, runner, make_coupon, place_order):
        make_coupon(code="BIGGIFT", coupon_type="fixed", value=500.0)
        order = place_order(customer, [_item(runner, "10", "Black")], coupon_code="BIGGIFT")
        assert order.pricing.discount == 120.0

    def test_quote_reserves_nothing(self, customer, runner, make_coupon, stock_of):
        coupon = make_coupon(value=10.0)

        breakdown = OrderPlacement().quote(customer.id, items=[_item(runner, "10", "Black")], coupon_code="SPRING10")

        assert breakdown.discount == 12.0
        assert stock_of(runner, "10", "Black") == 5
        assert _uses(coupon) == 0


class TestRejectedCoupons:
    def test_unknown_code_places_nothing(self, customer, runner, place_order, stock_of):
        with pytest.raises(InvalidCoupon) as exc:
            place_order(customer, [_item(runner, "10", "Black")], coupon_code="NOPE")

        assert exc.value.message == "Invalid coupon code"
        assert stock_of(runner, "10", "Black") == 5
        assert orders_for_customer(customer.id) == []

    def test_expired(self, customer, runner, make_coupon, place_order):
        now = datetime.now(UTC)
        make_coupon(valid_from=now - timedelta(days=10), valid_to=now - timedelta(days=1))
        with pytest.raises(InvalidCoupon, match="expired"):
            place_order(customer, [_item(runner, "10", "Black")], coupon_code="SPRING10")

    def test_deactivated(self, customer, runner, make_coupon, place_order):
        make_coupon()
        current_domain.process(DeactivateCoupon(code="SPRING10"), asynchronous=False)
        with pytest.raises(InvalidCoupon):
            place_order(customer, [_item(runner, "10", "Black")], coupon_code="SPRING10")

    def test_minimum_is_checked_on_applicable_amount(self, customer, runner, boot, make_coupon, place_order):
        make_coupon(code="BOOTS20", value=20.0, applicable_brands=["Blundstone"], min_order_amount=250.0)

        with pytest.raises(InvalidCoupon) as exc:
            place_order(customer, [_item(runner, "10", "Black"), _item(boot, "9", "Brown")], coupon_code="BOOTS20")

        assert exc.value.details["applicable_amount"] == 200.0

    def test_not_applicable_to_any_item(self, customer, runner, make_coupon, place_order):
        make_coupon(applicable_brands=["Blundstone"])
        with pytest.raises(InvalidCoupon, match="not applicable"):
            place_order(customer, [_item(runner, "10", "Black")], coupon_code="SPRING10")

    def test_used_up_for_everyone(self, customer, register, runner, make_coupon, place_order):
        make_coupon(usage_limit=1)
        place_order(customer, [_item(runner, "10", "Black")], coupon_code="SPRING10")

        other = register(email="bob@example.com", first_name="Bob", last_name="B")
        with pytest.raises(InvalidCoupon, match="expired"):
            place_order(other, [_item(runner, "10", "Black")], coupon_code="SPRING10")


class TestPerCustomerLimit:
    def test_second_use_is_refused(self, customer, runner, make_coupon, place_order):
        make_coupon()
        place_order(customer, [_item(runner, "10", "Black")], coupon_code="SPRING10")

        with pytest.raises(InvalidCoupon, match="already used"):
            place_order(customer, [_item(runner, "10", "Black")], coupon_code="SPRING10")

    def test_cancelled_order_does_not_count(self, customer, runner, make_coupon, place_order):
        make_coupon()
        first = place_order(customer, [_item(runner, "10", "Black")], coupon_code="SPRING10")
        cancel_order(first.id, customer)

        second = place_order(customer, [_item(runner, "10", "Black")], coupon_code="SPRING10")
        assert second.pricing.discount == 12.0

    def test_higher_limit_allows_repeat_use(self, customer, runner, make_coupon, place_order):
        coupon = make_coupon(per_customer_limit=2)
        place_order(customer, [_item(runner, "10", "Black")], coupon_code="SPRING10")
        place_order(customer, [_item(runner, "10", "Black")], coupon_code="SPRING10")
        assert _uses(coupon) == 2
