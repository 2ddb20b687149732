"""BDD tests for checkout, webhook payment and cancellation."""

import pytest
from protean import current_domain
from pytest_bdd import given, parsers, scenarios, then, when

from shoestore.catalogue.product.management import AdjustStock
from shoestore.errors import StoreError
from shoestore.ordering.order.lifecycle import cancel_order
from shoestore.ordering.order.queries import orders_for_customer
from shoestore.payments.gateway.port import to_cents
from shoestore.payments.payment.intent import create_payment_intent
from shoestore.payments.payment.webhook import process_webhook

scenarios("features/checkout.feature")


@pytest.fixture()
def shelf():
    """Products by name, with the size and color the scenario uses."""
    return {}


@pytest.fixture()
def outcome():
    return {}


def _line(shelf, name, quantity):
    product, size, color = shelf[name]
    return {"product_id": str(product.id), "size": size, "color": color, "quantity": quantity}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given("a registered customer")
def _(customer):
    pass


@given(parsers.cfparse('a product "{name}" in size "{size}" color "{color}" with {stock:d} in stock'))
def _(make_product, shelf, name, size, color, stock):
    shelf[name] = (make_product(name=name, variants=((size, color, stock, 120.0),)), size, color)


@given(parsers.cfparse('"{name}" is sold out'))
def _(shelf, name):
    product, size, color = shelf[name]
    variant = product.find_variant(size, color)
    current_domain.process(
        AdjustStock(product_id=str(product.id), variant_id=str(variant.id), quantity=-variant.stock),
        asynchronous=False,
    )


@given(parsers.cfparse('the customer has placed an order for {quantity:d} pair of "{name}"'), target_fixture="order")
def _(customer, place_order, shelf, quantity, name):
    return place_order(customer, [_line(shelf, name, quantity)])


@given(
    parsers.cfparse('the customer has placed an order for {first:d} "{a}" and {second:d} "{b}"'),
    target_fixture="order",
)
def _(customer, place_order, shelf, first, a, second, b):
    return place_order(customer, [_line(shelf, a, first), _line(shelf, b, second)])


@given("a payment intent was created for the order", target_fixture="intent")
def _(customer, order, gateway):
    return create_payment_intent(order.id, customer, gateway=gateway)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the customer orders {first:d} "{a}" and {second:d} "{b}"'))
def _(customer, place_order, shelf, outcome, first, a, second, b):
    try:
        outcome["order"] = place_order(customer, [_line(shelf, a, first), _line(shelf, b, second)])
    except StoreError as exc:
        outcome["error"] = exc


def _payment_succeeded(intent, order, webhook_payload, event_id):
    payload = webhook_payload(
        "payment_intent.succeeded",
        {
            "id": intent["payment_intent_id"],
            "amount_received": to_cents(order.pricing.total),
            "latest_charge": "ch_test_1",
            "status": "succeeded",
        },
        event_id=event_id,
    )
    return process_webhook(payload, "test-signature")


@when("the gateway reports the payment succeeded")
def _(intent, order, webhook_payload, outcome):
    outcome["first_delivery"] = _payment_succeeded(intent, order, webhook_payload, "evt_1")


@when("the gateway reports the payment succeeded again")
def _(intent, order, webhook_payload, outcome):
    outcome["second_delivery"] = _payment_succeeded(intent, order, webhook_payload, "evt_1")


@when("the customer cancels the order")
def _(customer, order):
    cancel_order(order.id, customer)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then("the order is placed")
def _(outcome):
    assert "error" not in outcome
    assert outcome["order"] is not None


@then(parsers.cfparse('the order is rejected with "{kind}"'))
def _(outcome, kind):
    assert outcome["error"].kind == kind


def _current_order(request, outcome, load):
    placed = outcome.get("order") or request.getfixturevalue("order")
    return load(placed.id)


@then(parsers.cfparse('the order status is "{status}"'))
def _(request, outcome, load, status):
    assert _current_order(request, outcome, load).status == status


@then(parsers.cfparse('the payment status is "{status}"'))
def _(request, outcome, load, status):
    assert _current_order(request, outcome, load).payment_status == status


@then(parsers.cfparse('"{name}" has {stock:d} in stock'))
def _(shelf, stock_of, name, stock):
    product, size, color = shelf[name]
    assert stock_of(product, size, color) == stock


@then("the customer has no orders")
def _(customer):
    assert orders_for_customer(customer.id) == []


@then("the repeated delivery changed nothing")
def _(outcome):
    assert outcome["first_delivery"] is True
    assert outcome["second_delivery"] is False


@then(parsers.cfparse('the customer received {count:d} "{notification_type}" notification'))
def _(customer, notifications_for, count, notification_type):
    assert len(notifications_for(customer, notification_type)) == count
