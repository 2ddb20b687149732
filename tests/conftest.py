import json
import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Fetch and activate the domain by pushing the associated domain_context. The activated domain can then be referred to elsewhere as `current_domain`
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from shoestore.domain import load_elements, shoestore

    load_elements()
    shoestore.init()
    shoestore.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)


@pytest.fixture(scope="session", autouse=True)
def setup_db():
    from shoestore.domain import shoestore
    from shoestore.utils.db import drop_db, setup_db

    setup_db(shoestore)

    yield

    drop_db(shoestore)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fresh fakes for every test, and cleanup of all stores afterwards"""
    from shoestore.notifications.channel import reset_channels
    from shoestore.payments.gateway import reset_gateway, set_gateway
    from shoestore.payments.gateway.fake_adapter import FakeGateway

    set_gateway(FakeGateway())
    reset_channels()

    yield

    from protean import current_domain

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()

    reset_gateway()
    reset_channels()


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------
@pytest.fixture()
def gateway():
    from shoestore.payments.gateway import get_gateway

    return get_gateway()


@pytest.fixture()
def email_channel():
    from shoestore.notifications.channel import get_channel

    return get_channel("email")


@pytest.fixture()
def push_channel():
    from shoestore.notifications.channel import get_channel

    return get_channel("push")


@pytest.fixture()
def realtime():
    from shoestore.notifications.channel import get_channel

    return get_channel("realtime")


# ---------------------------------------------------------------------------
# People
# ---------------------------------------------------------------------------
@pytest.fixture()
def register():
    """Register a customer (or staff member) and return the stored aggregate."""
    from protean import current_domain

    from shoestore.identity.customer.customer import Customer
    from shoestore.identity.customer.registration import RegisterCustomer

    def _register(email="ada@example.com", role="customer", first_name="Ada", last_name="Lovelace"):
        customer_id = current_domain.process(
            RegisterCustomer(email=email, first_name=first_name, last_name=last_name, role=role),
            asynchronous=False,
        )
        return current_domain.repository_for(Customer).get(customer_id)

    return _register


@pytest.fixture()
def customer(register):
    return register()


@pytest.fixture()
def staff(register):
    return register(email="sam@example.com", role="staff", first_name="Sam", last_name="Stockroom")


@pytest.fixture()
def admin(register):
    return register(email="ana@example.com", role="admin", first_name="Ana", last_name="Admin")


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_product():
    """Create a product with (size, color, stock, price) variants and return it."""
    from protean import current_domain

    from shoestore.catalogue.product.management import AddVariant, CreateProduct
    from shoestore.catalogue.product.product import Product

    def _make(name="Pegasus 40", brand="Nike", variants=(("10", "Black", 5, 120.0),), threshold=0):
        product_id = current_domain.process(
            CreateProduct(name=name, brand=brand, category="running", gender="men"),
            asynchronous=False,
        )
        for size, color, stock, price in variants:
            current_domain.process(
                AddVariant(
                    product_id=product_id,
                    size=size,
                    color=color,
                    sku=f"{name[:3].upper()}-{size}-{color[:3].upper()}",
                    price=price,
                    stock=stock,
                    low_stock_threshold=threshold,
                ),
                asynchronous=False,
            )
        return current_domain.repository_for(Product).get(product_id)

    return _make


@pytest.fixture()
def runner(make_product):
    return make_product()


@pytest.fixture()
def boot(make_product):
    return make_product(name="Chelsea Boot", brand="Blundstone", variants=(("9", "Brown", 5, 200.0),))


@pytest.fixture()
def stock_of():
    """Current stock of a product variant, read back from the repository."""
    from protean import current_domain

    from shoestore.catalogue.product.product import Product

    def _stock(product, size, color):
        fresh = current_domain.repository_for(Product).get(product.id)
        return fresh.find_variant(size, color).stock

    return _stock


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
@pytest.fixture()
def address():
    return {
        "first_name": "Ada",
        "last_name": "Lovelace",
        "street": "12 Analytical Way",
        "city": "Portland",
        "state": "OR",
        "zip_code": "97201",
        "country": "US",
    }


@pytest.fixture()
def place_order(address):
    from shoestore.ordering.order.placement import OrderPlacement

    def _place(customer, items=None, shipping_method="standard", coupon_code=None):
        return OrderPlacement().place(
            customer_id=customer.id,
            shipping_address=address,
            shipping_method=shipping_method,
            items=items,
            coupon_code=coupon_code,
        )

    return _place


@pytest.fixture()
def make_coupon():
    """Create a coupon valid from yesterday until next month and return it."""
    from datetime import UTC, datetime, timedelta

    from protean import current_domain

    from shoestore.ordering.coupon.coupon import Coupon
    from shoestore.ordering.coupon.management import CreateCoupon

    def _make(code="SPRING10", coupon_type="percentage", value=10.0, **extra):
        now = datetime.now(UTC)
        for field in ("applicable_brands", "applicable_categories", "applicable_products", "excluded_products"):
            if field in extra:
                extra[field] = json.dumps(extra[field])
        coupon_id = current_domain.process(
            CreateCoupon(
                code=code,
                coupon_type=coupon_type,
                value=value,
                valid_from=extra.pop("valid_from", now - timedelta(days=1)),
                valid_to=extra.pop("valid_to", now + timedelta(days=30)),
                **extra,
            ),
            asynchronous=False,
        )
        return current_domain.repository_for(Coupon).get(coupon_id)

    return _make


@pytest.fixture()
def order(customer, runner, place_order):
    return place_order(customer, [{"product_id": str(runner.id), "size": "10", "color": "Black", "quantity": 1}])


@pytest.fixture()
def load():
    from protean import current_domain

    from shoestore.ordering.order.order import Order

    def _load(order_id):
        return current_domain.repository_for(Order).get(order_id)

    return _load


@pytest.fixture()
def paid_order(order, customer, gateway, load):
    from shoestore.payments.payment.intent import confirm_payment_intent, create_payment_intent

    create_payment_intent(order.id, customer, gateway=gateway)
    confirm_payment_intent(order.id, customer, "pm_card_visa", gateway=gateway)
    return load(order.id)


@pytest.fixture()
def delivered_order(order, staff, load):
    from shoestore.ordering.order.lifecycle import update_order_status

    for status in ("confirmed", "shipped", "delivered"):
        update_order_status(order.id, staff, status)
    return load(order.id)


@pytest.fixture()
def webhook_payload():
    """Build a raw gateway event body. Amounts are in cents, as the gateway sends them."""

    def _payload(event_type, data, event_id="evt_test_1"):
        return json.dumps({"id": event_id, "type": event_type, "data": {"object": data}}).encode()

    return _payload


@pytest.fixture()
def notifications_for():
    from shoestore.notifications.notification.inbox import inbox

    def _for(recipient, notification_type=None):
        items = inbox(recipient.id)
        if notification_type:
            items = [n for n in items if n.notification_type == notification_type]
        return items

    return _for


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------
@pytest.fixture()
def client():
    from fastapi import FastAPI, Request
    from fastapi.testclient import TestClient

    from shoestore.catalogue.api.routes import product_router, review_router
    from shoestore.domain import shoestore
    from shoestore.errors import register_error_handlers
    from shoestore.identity.api.routes import router as customer_router
    from shoestore.notifications.api.routes import notification_router
    from shoestore.ordering.api.routes import cart_router, coupon_router, order_router, wishlist_router
    from shoestore.payments.api.routes import payment_router

    app = FastAPI()

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        with shoestore.domain_context():
            return await call_next(request)

    register_error_handlers(app)
    routers = (
        customer_router,
        product_router,
        review_router,
        cart_router,
        order_router,
        coupon_router,
        wishlist_router,
        payment_router,
        notification_router,
    )
    for router in routers:
        app.include_router(router)
    return TestClient(app)


@pytest.fixture()
def auth():
    def _headers(customer):
        return {"X-User-Id": str(customer.id)}

    return _headers
