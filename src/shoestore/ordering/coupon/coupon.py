"""Coupon aggregate (CQRS): a discount code redeemable at checkout.

A coupon takes a percentage or a fixed amount off the part of an order it
applies to. Applicability is narrowed by brand, category and product lists;
an empty list means "no restriction". Excluded products never count.

Invariants:
    - a percentage coupon never exceeds 100%
    - the validity window ends after it starts
    - used_count never exceeds usage_limit
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String, Text

from shoestore.domain import shoestore
from shoestore.ordering.coupon.events import CouponCreated, CouponDeactivated, CouponRedeemed


class CouponType(Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


def normalize_code(code) -> str:
    return str(code or "").strip().upper()


def _aware(moment: datetime) -> datetime:
    # Some providers hand datetimes back without tzinfo
    return moment if moment.tzinfo else moment.replace(tzinfo=UTC)


def _as_list(values) -> str:
    return json.dumps([str(v) for v in values or []])


@shoestore.aggregate
class Coupon:
    code = String(required=True, max_length=30, unique=True)
    description = String(max_length=255)
    coupon_type = String(choices=CouponType, required=True)
    value = Float(required=True, min_value=0.0)
    min_order_amount = Float(default=0.0, min_value=0.0)
    max_discount = Float(min_value=0.0)
    usage_limit = Integer(min_value=1)  # Blank means unlimited
    used_count = Integer(default=0, min_value=0)
    per_customer_limit = Integer(default=1, min_value=1)
    valid_from = DateTime(required=True)
    valid_to = DateTime(required=True)
    applicable_brands = Text()  # JSON: list of brand names
    applicable_categories = Text()  # JSON: list of categories
    applicable_products = Text()  # JSON: list of product ids
    excluded_products = Text()  # JSON: list of product ids
    is_active = Boolean(default=True)
    created_by = Identifier()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def percentage_is_at_most_100(self):
        if self.coupon_type == CouponType.PERCENTAGE.value and self.value is not None and self.value > 100:
            raise ValidationError({"value": ["A percentage coupon cannot exceed 100%"]})

    @invariant.post
    def window_ends_after_it_starts(self):
        if self.valid_from and self.valid_to and _aware(self.valid_to) <= _aware(self.valid_from):
            raise ValidationError({"valid_to": ["Coupon must expire after it becomes valid"]})

    @invariant.post
    def usage_stays_within_limit(self):
        if self.usage_limit is not None and (self.used_count or 0) > self.usage_limit:
            raise ValidationError({"used_count": [f"Coupon {self.code} has no uses left"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        code,
        coupon_type,
        value,
        valid_from,
        valid_to,
        description=None,
        min_order_amount=0.0,
        max_discount=None,
        usage_limit=None,
        per_customer_limit=1,
        applicable_brands=None,
        applicable_categories=None,
        applicable_products=None,
        excluded_products=None,
        created_by=None,
    ):
        now = datetime.now(UTC)
        code = normalize_code(code)
        if not code:
            raise ValidationError({"code": ["Coupon code is required"]})

        coupon = cls(
            code=code,
            description=description,
            coupon_type=coupon_type,
            value=value,
            min_order_amount=min_order_amount or 0.0,
            max_discount=max_discount,
            usage_limit=usage_limit,
            used_count=0,
            per_customer_limit=per_customer_limit or 1,
            valid_from=valid_from,
            valid_to=valid_to,
            applicable_brands=_as_list(applicable_brands),
            applicable_categories=_as_list(applicable_categories),
            applicable_products=_as_list(applicable_products),
            excluded_products=_as_list(excluded_products),
            is_active=True,
            created_by=created_by,
            created_at=now,
            updated_at=now,
        )
        coupon.raise_(
            CouponCreated(
                coupon_id=str(coupon.id),
                code=code,
                coupon_type=coupon_type,
                value=value,
                valid_from=valid_from,
                valid_to=valid_to,
                created_by=str(created_by) if created_by else None,
            )
        )
        return coupon

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def listed(self, field) -> list[str]:
        return json.loads(getattr(self, field) or "[]")

    @property
    def uses_left(self) -> int | None:
        if self.usage_limit is None:
            return None
        return max(0, self.usage_limit - (self.used_count or 0))

    def is_valid_at(self, moment: datetime | None = None) -> bool:
        """Active, inside its validity window and not used up."""
        moment = _aware(moment or datetime.now(UTC))
        if not self.is_active:
            return False
        if moment < _aware(self.valid_from) or moment > _aware(self.valid_to):
            return False
        return self.uses_left is None or self.uses_left > 0

    def applies_to(self, product_id, brand=None, category=None) -> bool:
        product_id = str(product_id)
        if product_id in self.listed("excluded_products"):
            return False

        products = self.listed("applicable_products")
        brands = [b.lower() for b in self.listed("applicable_brands")]
        categories = self.listed("applicable_categories")
        if not (products or brands or categories):
            return True
        return (
            product_id in products
            or (brand is not None and brand.lower() in brands)
            or (category is not None and category in categories)
        )

    def discount_on(self, amount: float) -> float:
        """Discount on ``amount``; never more than the amount itself."""
        if amount <= 0:
            return 0.0
        if self.coupon_type == CouponType.PERCENTAGE.value:
            discount = amount * self.value / 100
            if self.max_discount is not None:
                discount = min(discount, self.max_discount)
        else:
            discount = self.value
        return round(min(discount, amount), 2)

    # -------------------------------------------------------------------
    # Commands
    # -------------------------------------------------------------------
    def redeem(self, order_id, customer_id):
        if not self.is_valid_at():
            raise ValidationError({"code": [f"Coupon {self.code} is not valid or has expired"]})

        now = datetime.now(UTC)
        self.used_count = (self.used_count or 0) + 1
        self.updated_at = now
        self.raise_(
            CouponRedeemed(
                coupon_id=str(self.id),
                code=self.code,
                order_id=str(order_id),
                customer_id=str(customer_id),
                used_count=self.used_count,
                redeemed_at=now,
            )
        )

    def deactivate(self):
        if not self.is_active:
            return
        now = datetime.now(UTC)
        self.is_active = False
        self.updated_at = now
        self.raise_(CouponDeactivated(coupon_id=str(self.id), code=self.code, deactivated_at=now))
