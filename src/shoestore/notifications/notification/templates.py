"""Plain-text notification templates.

Each notification type has a fixed set of channels, a default priority and a
title/message pair rendered from the event data. Missing keys render as an
empty string instead of failing.
"""

from dataclasses import dataclass

from shoestore.notifications.notification.notification import Channel, Priority

EMAIL = Channel.EMAIL.value
PUSH = Channel.PUSH.value
IN_APP = Channel.IN_APP.value
REALTIME = Channel.REALTIME.value


class _Blank(dict):
    def __missing__(self, key):
        return ""


@dataclass(frozen=True)
class Template:
    title: str
    message: str
    channels: tuple[str, ...]
    priority: str = Priority.NORMAL.value
    for_admins: bool = False

    def render(self, data: dict) -> tuple[str, str]:
        values = _Blank(data or {})
        return self.title.format_map(values), self.message.format_map(values)


TEMPLATES = {
    "order_placed": Template(
        title="Order Received - {order_number}",
        message="Thanks for your order {order_number}. We have reserved your {item_count} item(s); "
        "the total is {total} {currency}.",
        channels=(EMAIL, IN_APP, REALTIME),
    ),
    "order_confirmed": Template(
        title="Order Confirmed - {order_number}",
        message="Your order {order_number} has been confirmed and is being prepared.",
        channels=(EMAIL, PUSH, IN_APP, REALTIME),
        priority=Priority.HIGH.value,
    ),
    "order_status_update": Template(
        title="Order {order_number} is {new_status}",
        message="Your order {order_number} moved from {previous_status} to {new_status}. {tracking}",
        channels=(EMAIL, PUSH, IN_APP, REALTIME),
    ),
    "order_cancelled": Template(
        title="Order Cancelled - {order_number}",
        message="Your order {order_number} has been cancelled. {reason}",
        channels=(EMAIL, IN_APP, REALTIME),
    ),
    "payment_succeeded": Template(
        title="Payment Received - {order_number}",
        message="We received your payment of {amount} {currency}. Order {order_number} is confirmed.",
        channels=(EMAIL, PUSH, IN_APP, REALTIME),
        priority=Priority.HIGH.value,
    ),
    "payment_failed": Template(
        title="Payment Failed - {order_number}",
        message="Your payment for order {order_number} did not go through: {failure_reason}. "
        "You can retry the payment at {retry_url}.",
        channels=(EMAIL, PUSH, IN_APP, REALTIME),
        priority=Priority.HIGH.value,
    ),
    "payment_cancelled": Template(
        title="Payment Cancelled - {order_number}",
        message="The payment for order {order_number} was cancelled.",
        channels=(EMAIL, IN_APP),
    ),
    "payment_action_required": Template(
        title="Action Needed - {order_number}",
        message="Your bank needs you to confirm the payment for order {order_number}.",
        channels=(EMAIL, PUSH, IN_APP, REALTIME),
        priority=Priority.URGENT.value,
    ),
    "refund_processed": Template(
        title="Refund Processed - {order_number}",
        message="We refunded {amount} {currency} for order {order_number}.",
        channels=(EMAIL, IN_APP),
    ),
    "new_paid_order": Template(
        title="New Paid Order - {order_number}",
        message="Order {order_number} was paid: {amount} {currency}.",
        channels=(PUSH, IN_APP, REALTIME),
        priority=Priority.HIGH.value,
        for_admins=True,
    ),
    "payment_failed_admin": Template(
        title="Payment Failed - {order_number}",
        message="Payment for order {order_number} failed ({failure_code}): {failure_reason}.",
        channels=(IN_APP, REALTIME),
        for_admins=True,
    ),
    "payment_dispute": Template(
        title="Payment Dispute - {order_number}",
        message="Customer {customer_id} disputed {amount} {currency} on order {order_number}. Reason: {reason}.",
        channels=(EMAIL, PUSH, IN_APP, REALTIME),
        priority=Priority.URGENT.value,
        for_admins=True,
    ),
    "paid_cancelled_order": Template(
        title="Refund Needed - {order_number}",
        message="Order {order_number} was cancelled but a payment of {amount} {currency} was captured. Refund it.",
        channels=(EMAIL, PUSH, IN_APP, REALTIME),
        priority=Priority.URGENT.value,
        for_admins=True,
    ),
    "low_stock": Template(
        title="Low Stock Alert",
        message="{product_name} - {color} (Size {size}) is running low: {current_stock} left.",
        channels=(PUSH, IN_APP, REALTIME),
        priority=Priority.URGENT.value,
        for_admins=True,
    ),
}


def get_template(notification_type: str) -> Template:
    try:
        return TEMPLATES[notification_type]
    except KeyError:
        raise ValueError(f"Unknown notification type: {notification_type}") from None
