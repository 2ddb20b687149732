"""Order placement: turn a cart (or explicit items) into a pending order.

The sequence matters:

1. resolve the items (explicit items win, otherwise the customer's cart)
2. re-read every product/variant and take the catalogue price
3. check the coupon, if one was given, and price the order with its discount
4. reserve stock for all lines as one batch
5. persist the order through the PlaceOrder command
6. release the reservation if persisting failed, then re-raise
7. count the coupon as used and clear the cart when it was the source

``OrderPlaced`` is raised by the aggregate and consumed by the notification
handlers; a notification problem never reaches this module.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from shoestore.catalogue.product.product import Product
from shoestore.catalogue.product.reservation import StockRequest, StockReservation
from shoestore.domain import shoestore
from shoestore.errors import EmptyOrder, InsufficientStock, ProductUnavailable, VariantUnavailable
from shoestore.ordering.cart.management import ClearCart, cart_for
from shoestore.ordering.coupon.management import CouponLine, RedeemCoupon, evaluate_coupon
from shoestore.ordering.order.order import Order
from shoestore.ordering.order.pricing import PriceBreakdown, PricedLine, price_order

logger = structlog.get_logger(__name__)


@shoestore.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    lines = Text(required=True)  # JSON: list of reserved line snapshots
    shipping_address = Text(required=True)  # JSON: address dict
    shipping_method = String(required=True, max_length=20)
    subtotal = Float(required=True)
    tax = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    discount = Float(default=0.0)
    coupon_code = String(max_length=30)
    total = Float(required=True)
    currency = String(max_length=3, default="USD")
    customer_notes = Text()
    is_gift = Boolean(default=False)
    gift_message = String(max_length=500)


@shoestore.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        pricing = PriceBreakdown(
            subtotal=command.subtotal,
            shipping_cost=command.shipping_cost or 0.0,
            tax=command.tax or 0.0,
            discount=command.discount or 0.0,
            total=command.total,
        )
        order = Order.create(
            customer_id=command.customer_id,
            lines=json.loads(command.lines),
            shipping_address=json.loads(command.shipping_address),
            shipping_method=command.shipping_method,
            pricing=pricing,
            currency=command.currency or "USD",
            customer_notes=command.customer_notes,
            is_gift=command.is_gift,
            gift_message=command.gift_message,
            coupon_code=command.coupon_code,
        )
        current_domain.repository_for(Order).add(order)
        return str(order.id)


class OrderPlacement:
    """Coordinates catalogue lookup, pricing, reservation and persistence."""

    def __init__(self, reservation: StockReservation | None = None):
        self.reservation = reservation or StockReservation()

    def place(
        self,
        customer_id,
        shipping_address: dict,
        shipping_method: str = "standard",
        items: list[dict] | None = None,
        customer_notes=None,
        is_gift=False,
        gift_message=None,
        coupon_code=None,
    ) -> Order:
        requested, from_cart = self._requested_items(customer_id, items)
        lines = [self._catalogue_line(item) for item in requested]
        breakdown, coupon = self._price(customer_id, lines, shipping_method, coupon_code)

        reserved = self.reservation.reserve(
            [StockRequest(line["product_id"], line["size"], line["color"], line["quantity"]) for line in lines]
        )

        command = PlaceOrder(
            customer_id=str(customer_id),
            lines=json.dumps(lines),
            shipping_address=json.dumps(shipping_address),
            shipping_method=shipping_method,
            subtotal=breakdown.subtotal,
            tax=breakdown.tax,
            shipping_cost=breakdown.shipping_cost,
            discount=breakdown.discount,
            total=breakdown.total,
            currency=current_domain.config.get("custom", {}).get("currency", "USD"),
            customer_notes=customer_notes,
            is_gift=is_gift,
            gift_message=gift_message,
            coupon_code=coupon.code if coupon else None,
        )
        try:
            order_id = current_domain.process(command, asynchronous=False)
        except Exception as exc:
            logger.error(
                "Order could not be persisted, releasing reserved stock",
                customer_id=str(customer_id),
                lines=len(reserved),
                error=str(exc),
            )
            self.reservation.release(reserved)
            raise

        if coupon:
            self._redeem(coupon.code, order_id, customer_id)
        if from_cart:
            self._clear_cart(customer_id)

        logger.info("Order placed", order_id=order_id, customer_id=str(customer_id), total=breakdown.total)
        return current_domain.repository_for(Order).get(order_id)

    def quote(self, customer_id, shipping_method="standard", items=None, coupon_code=None) -> PriceBreakdown:
        """Price what ``place`` would charge, without reserving or saving anything."""
        requested, _ = self._requested_items(customer_id, items)
        lines = [self._catalogue_line(item) for item in requested]
        breakdown, _ = self._price(customer_id, lines, shipping_method, coupon_code)
        return breakdown

    def _price(self, customer_id, lines, shipping_method, coupon_code):
        coupon, discount = None, 0.0
        if coupon_code:
            coupon, discount = evaluate_coupon(coupon_code, customer_id, [CouponLine.for_line(line) for line in lines])

        priced = [PricedLine(line["unit_price"], line["quantity"]) for line in lines]
        return price_order(priced, shipping_method, discount=discount), coupon

    def _requested_items(self, customer_id, items):
        if items:
            return [dict(item) for item in items], False

        cart = cart_for(customer_id)
        if cart is None or cart.is_empty:
            raise EmptyOrder("There is nothing to order: no items given and the cart is empty")

        cart_items = [
            {"product_id": str(i.product_id), "size": i.size, "color": i.color, "quantity": i.quantity}
            for i in cart.items
        ]
        return cart_items, True

    def _catalogue_line(self, item: dict) -> dict:
        """Re-read the catalogue for one requested item. Any client-sent price is ignored."""
        product_id, size, color = item["product_id"], str(item["size"]), item["color"]
        quantity = int(item["quantity"])
        context = {"product_id": str(product_id), "size": size, "color": color}

        try:
            product = current_domain.repository_for(Product).get(product_id)
        except ObjectNotFoundError as exc:
            raise ProductUnavailable(f"Product {product_id} is no longer available", **context) from exc
        if not product.is_active:
            raise ProductUnavailable(f"{product.name} is no longer available", **context)

        variant = product.find_variant(size, color)
        if variant is None or not variant.is_active:
            raise VariantUnavailable(f"{product.name} is not available in size {size} / {color}", **context)

        if variant.stock < quantity:
            raise InsufficientStock(
                f"Only {variant.stock} left of {product.name} in size {size} / {color}",
                available=variant.stock,
                requested=quantity,
                **context,
            )

        return {
            "product_id": str(product.id),
            "variant_id": str(variant.id),
            "product_name": product.name,
            "brand": product.brand,
            "category": product.category,
            "image_url": product.image_url,
            "size": variant.size,
            "color": variant.color,
            "sku": variant.sku,
            "quantity": quantity,
            "unit_price": variant.price,
        }

    def _redeem(self, code, order_id, customer_id):
        try:
            current_domain.process(
                RedeemCoupon(code=code, order_id=order_id, customer_id=str(customer_id)), asynchronous=False
            )
        except Exception as exc:
            logger.error("Order placed but coupon use was not counted", code=code, order_id=order_id, error=str(exc))

    def _clear_cart(self, customer_id):
        try:
            current_domain.process(ClearCart(customer_id=str(customer_id)), asynchronous=False)
        except Exception as exc:
            logger.error("Order placed but cart could not be cleared", customer_id=str(customer_id), error=str(exc))
