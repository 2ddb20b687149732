"""Coupon management: staff commands, redemption and checkout evaluation."""

import json
from dataclasses import dataclass
from datetime import UTC, datetime

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from shoestore.domain import shoestore
from shoestore.errors import InvalidCoupon, NotFound
from shoestore.ordering.coupon.coupon import Coupon, normalize_code
from shoestore.ordering.order.order import Order, OrderStatus


@dataclass(frozen=True)
class CouponLine:
    """The part of an order line a coupon looks at."""

    product_id: str
    brand: str | None
    category: str | None
    amount: float

    @classmethod
    def for_line(cls, line: dict) -> "CouponLine":
        return cls(
            product_id=str(line["product_id"]),
            brand=line.get("brand"),
            category=line.get("category"),
            amount=round(line["unit_price"] * line["quantity"], 2),
        )


def coupon_by_code(code) -> Coupon | None:
    coupons = current_domain.repository_for(Coupon)._dao.query.filter(code=normalize_code(code)).all().items
    return coupons[0] if coupons else None


def get_coupon(code) -> Coupon:
    coupon = coupon_by_code(code)
    if coupon is None:
        raise NotFound(f"Coupon {normalize_code(code)} not found", code=normalize_code(code))
    return coupon


def list_coupons(active_only=False) -> list[Coupon]:
    query = current_domain.repository_for(Coupon)._dao.query
    if active_only:
        query = query.filter(is_active=True)
    return sorted(query.all().items, key=lambda c: c.code)


def redemptions_by(customer_id, code) -> int:
    """Orders the customer placed with ``code`` that were not cancelled."""
    orders = (
        current_domain.repository_for(Order)
        ._dao.query.filter(customer_id=str(customer_id), coupon_code=normalize_code(code))
        .all()
        .items
    )
    return sum(1 for order in orders if order.status != OrderStatus.CANCELLED.value)


def evaluate_coupon(code, customer_id, lines: list[CouponLine], moment=None) -> tuple[Coupon, float]:
    """Check ``code`` against the customer and the order lines; return it with its discount."""
    code = normalize_code(code)
    coupon = coupon_by_code(code)
    if coupon is None:
        raise InvalidCoupon("Invalid coupon code", code=code)
    if not coupon.is_valid_at(moment):
        raise InvalidCoupon("Coupon is not valid or has expired", code=code)
    if redemptions_by(customer_id, code) >= coupon.per_customer_limit:
        raise InvalidCoupon("You have already used this coupon", code=code, limit=coupon.per_customer_limit)

    applicable = round(
        sum(line.amount for line in lines if coupon.applies_to(line.product_id, line.brand, line.category)),
        2,
    )
    if applicable <= 0:
        raise InvalidCoupon("Coupon is not applicable to any items in your order", code=code)
    if applicable < (coupon.min_order_amount or 0.0):
        raise InvalidCoupon(
            f"Minimum order amount of ${coupon.min_order_amount:.2f} required for this coupon",
            code=code,
            minimum=coupon.min_order_amount,
            applicable_amount=applicable,
        )
    return coupon, coupon.discount_on(applicable)


@shoestore.command(part_of="Coupon")
class CreateCoupon:
    code = String(required=True, max_length=30)
    description = String(max_length=255)
    coupon_type = String(required=True, max_length=20)
    value = Float(required=True, min_value=0.0)
    min_order_amount = Float(default=0.0)
    max_discount = Float()
    usage_limit = Integer()
    per_customer_limit = Integer(default=1)
    valid_from = DateTime()  # Blank means now
    valid_to = DateTime(required=True)
    applicable_brands = Text()  # JSON: list of brand names
    applicable_categories = Text()  # JSON: list of categories
    applicable_products = Text()  # JSON: list of product ids
    excluded_products = Text()  # JSON: list of product ids
    created_by = Identifier()


@shoestore.command(part_of="Coupon")
class DeactivateCoupon:
    code = String(required=True, max_length=30)


@shoestore.command(part_of="Coupon")
class RedeemCoupon:
    code = String(required=True, max_length=30)
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)


@shoestore.command_handler(part_of=Coupon)
class CouponHandler:
    @handle(CreateCoupon)
    def create(self, command):
        if coupon_by_code(command.code) is not None:
            raise ValidationError({"code": [f"Coupon {normalize_code(command.code)} already exists"]})

        coupon = Coupon.create(
            code=command.code,
            coupon_type=command.coupon_type,
            value=command.value,
            valid_from=command.valid_from or datetime.now(UTC),
            valid_to=command.valid_to,
            description=command.description,
            min_order_amount=command.min_order_amount,
            max_discount=command.max_discount,
            usage_limit=command.usage_limit,
            per_customer_limit=command.per_customer_limit,
            applicable_brands=json.loads(command.applicable_brands or "[]"),
            applicable_categories=json.loads(command.applicable_categories or "[]"),
            applicable_products=json.loads(command.applicable_products or "[]"),
            excluded_products=json.loads(command.excluded_products or "[]"),
            created_by=command.created_by,
        )
        current_domain.repository_for(Coupon).add(coupon)
        return str(coupon.id)

    @handle(DeactivateCoupon)
    def deactivate(self, command):
        coupon = get_coupon(command.code)
        coupon.deactivate()
        current_domain.repository_for(Coupon).add(coupon)

    @handle(RedeemCoupon)
    def redeem(self, command):
        coupon = get_coupon(command.code)
        coupon.redeem(command.order_id, command.customer_id)
        current_domain.repository_for(Coupon).add(coupon)
        return coupon.used_count
