"""Order aggregate (CQRS): a priced, stock-backed purchase.

The order is created only after every line's stock has been reserved. Line
items are snapshots of the catalogue at the time of purchase and never change
afterwards. Pricing is computed once at creation and stored.

Two state machines live on the order:

Order status (staff and payment driven):
    PENDING → CONFIRMED → PROCESSING → SHIPPED → DELIVERED → RETURNED
    PENDING | CONFIRMED | PROCESSING → CANCELLED
    any non-terminal → REFUNDED (full refund)

Payment status (gateway driven):
    PENDING → PROCESSING → COMPLETED | FAILED | CANCELLED
    COMPLETED | PARTIALLY_REFUNDED → PARTIALLY_REFUNDED | REFUNDED
    FAILED | CANCELLED → PENDING (retry)
"""

import json
import random
import time
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from shoestore.domain import shoestore
from shoestore.ordering.order.events import OrderCancelled, OrderPlaced, OrderStatusChanged
from shoestore.ordering.order.pricing import ShippingMethod
from shoestore.payments.payment.events import (
    PaymentActionRequired,
    PaymentCancelled,
    PaymentCapturedAfterCancellation,
    PaymentDisputed,
    PaymentFailed,
    PaymentIntentCreated,
    PaymentRefunded,
    PaymentRetried,
    PaymentSucceeded,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    RETURNED = "returned"
    REFUNDED = "refunded"


class PaymentStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class AttemptAction(Enum):
    CREATE_INTENT = "create_intent"
    CONFIRM_INTENT = "confirm_intent"
    WEBHOOK = "webhook"
    RETRY = "retry"
    REFUND = "refund"


# ---------------------------------------------------------------------------
# State machines
# ---------------------------------------------------------------------------
_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PROCESSING, OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED, OrderStatus.RETURNED},
    OrderStatus.DELIVERED: {OrderStatus.RETURNED},
    OrderStatus.CANCELLED: set(),  # Terminal
    OrderStatus.RETURNED: set(),  # Terminal
    OrderStatus.REFUNDED: set(),  # Terminal
}

# Customers may cancel only before the warehouse starts working on the order
_CUSTOMER_CANCELLABLE = {OrderStatus.PENDING, OrderStatus.CONFIRMED}

# Statuses that still hold reserved stock
STOCK_HOLDING_STATUSES = {OrderStatus.PENDING, OrderStatus.CONFIRMED, OrderStatus.PROCESSING}

_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {
        PaymentStatus.PROCESSING,
        PaymentStatus.COMPLETED,
        PaymentStatus.FAILED,
        PaymentStatus.CANCELLED,
    },
    PaymentStatus.PROCESSING: {PaymentStatus.COMPLETED, PaymentStatus.FAILED, PaymentStatus.CANCELLED},
    PaymentStatus.FAILED: {PaymentStatus.PENDING, PaymentStatus.COMPLETED, PaymentStatus.CANCELLED},
    PaymentStatus.CANCELLED: {PaymentStatus.PENDING},
    PaymentStatus.COMPLETED: {PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED},
    PaymentStatus.PARTIALLY_REFUNDED: {PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED},
    PaymentStatus.REFUNDED: set(),  # Terminal
}

_REFUNDABLE = {PaymentStatus.COMPLETED, PaymentStatus.PARTIALLY_REFUNDED}

_PAYMENT_FIELDS = (
    "method",
    "status",
    "transaction_id",
    "failure_code",
    "failure_reason",
    "paid_at",
    "refunded_amount",
)


def generate_order_number() -> str:
    return f"ORD-{int(time.time() * 1000)}-{random.randint(0, 999):03d}"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@shoestore.value_object(part_of="Order")
class ShippingAddress:
    """Where the order ships. Captured at checkout and never edited afterwards."""

    first_name = String(required=True, max_length=100)
    last_name = String(required=True, max_length=100)
    street = String(required=True, max_length=255)
    city = String(required=True, max_length=100)
    state = String(required=True, max_length=100)
    zip_code = String(required=True, max_length=20)
    country = String(max_length=2, default="US")
    phone = String(max_length=30)


@shoestore.value_object(part_of="Order")
class OrderPricing:
    """Amounts locked at checkout; catalogue price changes never touch them."""

    subtotal = Float(default=0.0)
    tax = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    discount = Float(default=0.0)
    total = Float(default=0.0)
    currency = String(max_length=3, default="USD")


@shoestore.value_object(part_of="Order")
class PaymentDetails:
    """Current payment state. Replaced as a whole on every change."""

    method = String(max_length=30, default="card")
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    transaction_id = String(max_length=255)
    failure_code = String(max_length=100)
    failure_reason = String(max_length=500)
    paid_at = DateTime()
    refunded_amount = Float(default=0.0)


@shoestore.value_object(part_of="Order")
class TrackingInfo:
    carrier = String(max_length=100)
    tracking_number = String(max_length=255)
    tracking_url = String(max_length=500)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@shoestore.entity(part_of="Order")
class OrderItem:
    """Snapshot of one purchased variant. Nothing on it changes after creation."""

    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    brand = String(max_length=100)
    image_url = String(max_length=500)
    size = String(required=True, max_length=5)
    color = String(required=True, max_length=50)
    sku = String(required=True, max_length=50)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    line_total = Float(required=True, min_value=0.0)

    def snapshot(self) -> dict:
        return {
            "product_id": str(self.product_id),
            "variant_id": str(self.variant_id),
            "product_name": self.product_name,
            "brand": self.brand,
            "size": self.size,
            "color": self.color,
            "sku": self.sku,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "line_total": self.line_total,
        }


@shoestore.entity(part_of="Order")
class PaymentAttempt:
    intent_id = String(max_length=255)
    amount = Float(required=True)
    status = String(required=True, max_length=50)
    action = String(choices=AttemptAction, required=True)
    detail = String(max_length=500)
    attempted_at = DateTime(required=True)


@shoestore.entity(part_of="Order")
class RefundRecord:
    refund_id = String(required=True, max_length=255)
    amount = Float(required=True, min_value=0.0)
    reason = String(max_length=500)
    refunded_at = DateTime(required=True)


@shoestore.entity(part_of="Order")
class StatusChange:
    from_status = String(max_length=20)
    to_status = String(required=True, max_length=20)
    note = String(max_length=500)
    changed_by = String(max_length=50)
    changed_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@shoestore.aggregate
class Order:
    order_number = String(required=True, max_length=40)
    customer_id = Identifier(required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    items = HasMany(OrderItem)
    shipping_address = ValueObject(ShippingAddress, required=True)
    shipping_method = String(choices=ShippingMethod, default=ShippingMethod.STANDARD.value)
    pricing = ValueObject(OrderPricing, required=True)
    coupon_code = String(max_length=30)

    # Payment sub-document
    payment = ValueObject(PaymentDetails)
    payment_intent_id = String(max_length=255)  # Current gateway intent; webhooks look orders up by it
    payment_attempts = HasMany(PaymentAttempt)
    refunds = HasMany(RefundRecord)

    status_history = HasMany(StatusChange)
    tracking = ValueObject(TrackingInfo)
    customer_notes = Text()
    is_gift = Boolean(default=False)
    gift_message = String(max_length=500)
    cancellation_reason = String(max_length=500)

    confirmed_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        customer_id,
        lines,
        shipping_address,
        shipping_method,
        pricing,
        currency="USD",
        customer_notes=None,
        is_gift=False,
        gift_message=None,
        coupon_code=None,
    ):
        """Create a pending order from already-reserved, already-priced lines.

        Args:
            customer_id: The customer placing the order.
            lines: List of dicts with product_id, variant_id, product_name,
                brand, image_url, size, color, sku, quantity, unit_price.
            shipping_address: Dict matching ShippingAddress.
            shipping_method: One of ShippingMethod values.
            pricing: A PriceBreakdown, with any coupon discount already applied.
            coupon_code: The redeemed coupon, if any.
        """
        if not lines:
            raise ValidationError({"items": ["An order needs at least one item"]})

        now = datetime.now(UTC)
        order = cls(
            order_number=generate_order_number(),
            customer_id=customer_id,
            status=OrderStatus.PENDING.value,
            shipping_address=ShippingAddress(**shipping_address),
            shipping_method=shipping_method,
            pricing=OrderPricing(
                subtotal=pricing.subtotal,
                tax=pricing.tax,
                shipping_cost=pricing.shipping_cost,
                discount=pricing.discount,
                total=pricing.total,
                currency=currency,
            ),
            payment=PaymentDetails(status=PaymentStatus.PENDING.value, refunded_amount=0.0),
            customer_notes=customer_notes,
            is_gift=bool(is_gift),
            gift_message=gift_message if is_gift else None,
            coupon_code=coupon_code,
            created_at=now,
            updated_at=now,
        )

        for line in lines:
            order.add_items(
                OrderItem(
                    product_id=line["product_id"],
                    variant_id=line["variant_id"],
                    product_name=line["product_name"],
                    brand=line.get("brand"),
                    image_url=line.get("image_url"),
                    size=line["size"],
                    color=line["color"],
                    sku=line["sku"],
                    quantity=line["quantity"],
                    unit_price=line["unit_price"],
                    line_total=round(line["unit_price"] * line["quantity"], 2),
                )
            )
        order.add_status_history(
            StatusChange(from_status=None, to_status=OrderStatus.PENDING.value, note="Order placed", changed_at=now)
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order.order_number,
                customer_id=str(customer_id),
                items=json.dumps([item.snapshot() for item in order.items]),
                item_count=sum(item.quantity for item in order.items),
                subtotal=order.pricing.subtotal,
                discount=order.pricing.discount,
                total=order.pricing.total,
                currency=order.pricing.currency,
                shipping_method=shipping_method,
                coupon_code=coupon_code,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def payment_status(self) -> str:
        return self.payment.status if self.payment else PaymentStatus.PENDING.value

    @property
    def holds_stock(self) -> bool:
        return OrderStatus(self.status) in STOCK_HOLDING_STATUSES

    @property
    def is_cancelled(self) -> bool:
        return OrderStatus(self.status) == OrderStatus.CANCELLED

    @property
    def refundable_amount(self) -> float:
        refunded = self.payment.refunded_amount if self.payment else 0.0
        return round(self.pricing.total - (refunded or 0.0), 2)

    def reserved_lines(self) -> list[dict]:
        return [
            {
                "product_id": str(item.product_id),
                "variant_id": str(item.variant_id),
                "sku": item.sku,
                "size": item.size,
                "color": item.color,
                "quantity": item.quantity,
            }
            for item in self.items
        ]

    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _assert_payment_can_transition(self, target_status):
        current = PaymentStatus(self.payment_status)
        if target_status not in _PAYMENT_TRANSITIONS.get(current, set()):
            raise ValidationError(
                {"payment_status": [f"Cannot move payment from {current.value} to {target_status.value}"]}
            )

    def _set_status(self, target, note=None, changed_by=None):
        now = datetime.now(UTC)
        previous = self.status
        self.status = target.value
        self.updated_at = now
        self.add_status_history(
            StatusChange(
                from_status=previous,
                to_status=target.value,
                note=note,
                changed_by=changed_by,
                changed_at=now,
            )
        )

        stamps = {
            OrderStatus.CONFIRMED: "confirmed_at",
            OrderStatus.SHIPPED: "shipped_at",
            OrderStatus.DELIVERED: "delivered_at",
            OrderStatus.CANCELLED: "cancelled_at",
        }
        if target in stamps:
            setattr(self, stamps[target], now)
        return previous, now

    def _replace_payment(self, **changes):
        current = {}
        if self.payment:
            current = {name: getattr(self.payment, name) for name in _PAYMENT_FIELDS}
        current.update(changes)
        self.payment = PaymentDetails(**current)

    def _record_attempt(self, action, status, amount=None, detail=None, intent_id=None):
        self.add_payment_attempts(
            PaymentAttempt(
                intent_id=intent_id or self.payment_intent_id,
                amount=self.pricing.total if amount is None else amount,
                status=status,
                action=action.value,
                detail=detail,
                attempted_at=datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # Fulfilment
    # -------------------------------------------------------------------
    def update_status(self, new_status, note=None, changed_by=None, tracking=None):
        """Staff-driven status change, validated against the transition table."""
        try:
            target = OrderStatus(new_status)
        except ValueError as exc:
            raise ValidationError({"status": [f"Unknown order status {new_status}"]}) from exc
        if target == OrderStatus.CANCELLED:
            return self.cancel(reason=note, cancelled_by=changed_by, by_staff=True)

        self._assert_can_transition(target)

        if target == OrderStatus.SHIPPED and tracking:
            self.tracking = TrackingInfo(**tracking)

        previous, now = self._set_status(target, note=note, changed_by=changed_by)
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                previous_status=previous,
                new_status=target.value,
                note=note,
                changed_by=changed_by,
                carrier=self.tracking.carrier if self.tracking else None,
                tracking_number=self.tracking.tracking_number if self.tracking else None,
                changed_at=now,
            )
        )
        return previous

    def cancel(self, reason=None, cancelled_by=None, by_staff=False):
        current = OrderStatus(self.status)
        if not by_staff and current not in _CUSTOMER_CANCELLABLE:
            raise ValidationError({"status": [f"Orders that are {current.value} can no longer be cancelled"]})
        self._assert_can_transition(OrderStatus.CANCELLED)

        self.cancellation_reason = reason
        previous, now = self._set_status(OrderStatus.CANCELLED, note=reason, changed_by=cancelled_by)
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                previous_status=previous,
                reason=reason,
                cancelled_by=cancelled_by,
                items=json.dumps(self.reserved_lines()),
                cancelled_at=now,
            )
        )
        return previous

    # -------------------------------------------------------------------
    # Payment
    # -------------------------------------------------------------------
    def assert_awaiting_payment(self):
        if OrderStatus(self.status) == OrderStatus.CANCELLED:
            raise ValidationError({"status": ["Cannot pay for a cancelled order"]})
        if PaymentStatus(self.payment_status) != PaymentStatus.PENDING:
            raise ValidationError(
                {"payment_status": [f"Cannot create a payment intent while payment is {self.payment_status}"]}
            )

    def attach_payment_intent(self, intent_id, gateway_status, action=AttemptAction.CREATE_INTENT):
        """Record a freshly created gateway intent. Only pending payments take a new intent."""
        self.assert_awaiting_payment()

        self.payment_intent_id = intent_id
        self.updated_at = datetime.now(UTC)
        self._record_attempt(action, gateway_status, intent_id=intent_id)
        self.raise_(
            PaymentIntentCreated(
                order_id=str(self.id),
                customer_id=str(self.customer_id),
                intent_id=intent_id,
                amount=self.pricing.total,
                currency=self.pricing.currency,
                created_at=self.updated_at,
            )
        )

    def record_confirmation(self, gateway_status, detail=None):
        """Log a confirm-intent call. ``processing`` moves payment along; others are left to webhooks."""
        self._record_attempt(AttemptAction.CONFIRM_INTENT, gateway_status, detail=detail)
        if gateway_status == PaymentStatus.PROCESSING.value and PaymentStatus(self.payment_status) == PaymentStatus.PENDING:
            self._replace_payment(status=PaymentStatus.PROCESSING.value)
        self.updated_at = datetime.now(UTC)

    def mark_payment_succeeded(self, transaction_id=None, amount=None):
        """Apply a success outcome. Returns False when the payment was already settled.

        A cancelled order stays cancelled: the payment is recorded as completed
        so it can be refunded, and staff are alerted instead of the customer.
        """
        current = PaymentStatus(self.payment_status)
        if current in (PaymentStatus.COMPLETED, PaymentStatus.REFUNDED, PaymentStatus.PARTIALLY_REFUNDED):
            return False
        self._assert_payment_can_transition(PaymentStatus.COMPLETED)

        now = datetime.now(UTC)
        self._replace_payment(
            status=PaymentStatus.COMPLETED.value,
            transaction_id=transaction_id,
            failure_code=None,
            failure_reason=None,
            paid_at=now,
        )
        self._record_attempt(AttemptAction.WEBHOOK, PaymentStatus.COMPLETED.value, amount=amount)
        if OrderStatus(self.status) == OrderStatus.PENDING:
            self._set_status(OrderStatus.CONFIRMED, note="Payment received", changed_by="payment")

        event_cls = PaymentCapturedAfterCancellation if self.is_cancelled else PaymentSucceeded
        self.raise_(
            event_cls(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                intent_id=self.payment_intent_id,
                transaction_id=transaction_id,
                amount=self.pricing.total if amount is None else amount,
                currency=self.pricing.currency,
                paid_at=now,
            )
        )
        return True

    def mark_payment_failed(self, failure_code=None, failure_reason=None, retryable=True):
        current = PaymentStatus(self.payment_status)
        if current == PaymentStatus.FAILED and self.payment.failure_code == failure_code:
            return False
        if current not in (PaymentStatus.PENDING, PaymentStatus.PROCESSING, PaymentStatus.FAILED):
            return False

        now = datetime.now(UTC)
        self._replace_payment(
            status=PaymentStatus.FAILED.value,
            failure_code=failure_code,
            failure_reason=failure_reason or "Payment failed",
        )
        self._record_attempt(AttemptAction.WEBHOOK, PaymentStatus.FAILED.value, detail=failure_reason)
        self.updated_at = now

        self.raise_(
            PaymentFailed(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                intent_id=self.payment_intent_id,
                amount=self.pricing.total,
                failure_code=failure_code,
                failure_reason=failure_reason or "Payment failed",
                retryable=retryable,
                failed_at=now,
            )
        )
        return True

    def mark_payment_cancelled(self):
        current = PaymentStatus(self.payment_status)
        if current == PaymentStatus.CANCELLED:
            return False
        if current not in (PaymentStatus.PENDING, PaymentStatus.PROCESSING, PaymentStatus.FAILED):
            return False

        now = datetime.now(UTC)
        self._replace_payment(status=PaymentStatus.CANCELLED.value)
        self._record_attempt(AttemptAction.WEBHOOK, PaymentStatus.CANCELLED.value)
        self.updated_at = now

        self.raise_(
            PaymentCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                intent_id=self.payment_intent_id,
                cancelled_at=now,
            )
        )
        return True

    def request_payment_action(self, next_action, client_secret=None):
        """The gateway needs the customer to do something; payment status is untouched."""
        if PaymentStatus(self.payment_status) not in (PaymentStatus.PENDING, PaymentStatus.PROCESSING):
            return False

        self._record_attempt(AttemptAction.WEBHOOK, "requires_action")
        self.raise_(
            PaymentActionRequired(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                intent_id=self.payment_intent_id,
                next_action=json.dumps(next_action or {}),
                client_secret=client_secret,
            )
        )
        return True

    def assert_refundable(self, amount):
        if PaymentStatus(self.payment_status) not in _REFUNDABLE:
            raise ValidationError({"payment_status": [f"Cannot refund a payment that is {self.payment_status}"]})
        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Refund amount must be positive"]})
        if round(amount, 2) > self.refundable_amount:
            raise ValidationError(
                {"amount": [f"Refund of {amount:.2f} exceeds the refundable amount {self.refundable_amount:.2f}"]}
            )

    def record_refund(self, refund_id, amount, reason=None):
        """Apply a refund once per gateway refund id. Returns False for a refund already on file."""
        if any(r.refund_id == refund_id for r in self.refunds):
            return False
        self.assert_refundable(amount)

        now = datetime.now(UTC)
        total_refunded = round((self.payment.refunded_amount or 0.0) + amount, 2)
        fully_refunded = total_refunded >= round(self.pricing.total, 2)
        target = PaymentStatus.REFUNDED if fully_refunded else PaymentStatus.PARTIALLY_REFUNDED
        self._assert_payment_can_transition(target)

        self.add_refunds(RefundRecord(refund_id=refund_id, amount=amount, reason=reason, refunded_at=now))
        self._replace_payment(status=target.value, refunded_amount=total_refunded)
        self._record_attempt(AttemptAction.REFUND, target.value, amount=amount, detail=reason)
        if fully_refunded and OrderStatus(self.status) != OrderStatus.REFUNDED:
            self._set_status(OrderStatus.REFUNDED, note=reason or "Payment refunded", changed_by="payment")
        self.updated_at = now

        self.raise_(
            PaymentRefunded(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                refund_id=refund_id,
                amount=amount,
                total_refunded=total_refunded,
                fully_refunded=fully_refunded,
                reason=reason,
                refunded_at=now,
            )
        )
        return True

    def record_dispute(self, dispute_id, amount, reason=None):
        self.raise_(
            PaymentDisputed(
                order_id=str(self.id),
                order_number=self.order_number,
                customer_id=str(self.customer_id),
                dispute_id=dispute_id,
                amount=amount,
                reason=reason,
                opened_at=datetime.now(UTC),
            )
        )

    def assert_retryable(self):
        if PaymentStatus(self.payment_status) not in (PaymentStatus.FAILED, PaymentStatus.CANCELLED):
            raise ValidationError(
                {"payment_status": [f"Only failed or cancelled payments can be retried, payment is {self.payment_status}"]}
            )
        if OrderStatus(self.status) == OrderStatus.CANCELLED:
            raise ValidationError({"status": ["Cannot retry payment for a cancelled order"]})

    def retry_payment(self, new_intent_id, gateway_status):
        """Start over with a brand-new gateway intent."""
        self.assert_retryable()
        if new_intent_id == self.payment_intent_id:
            raise ValidationError({"payment_intent_id": ["A retry must use a new payment intent"]})

        previous_intent = self.payment_intent_id
        self._replace_payment(status=PaymentStatus.PENDING.value, failure_code=None, failure_reason=None)
        self.payment_intent_id = new_intent_id
        self._record_attempt(AttemptAction.RETRY, gateway_status, intent_id=new_intent_id)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            PaymentRetried(
                order_id=str(self.id),
                previous_intent_id=previous_intent,
                new_intent_id=new_intent_id,
                retried_at=self.updated_at,
            )
        )
