"""Inbound event handler: Notifications reacts to Order and payment events.

Both the order lifecycle and the payment outcomes are raised by the Order
aggregate, so one handler on the order stream covers them. A notification
problem is logged and swallowed here: it must never undo or fail the order
change that triggered it.
"""

from functools import wraps

import structlog
from protean import handle
from protean.utils.globals import current_domain

from shoestore.domain import shoestore
from shoestore.notifications.notification.admin import notify_admins
from shoestore.notifications.notification.notification import Notification
from shoestore.notifications.notification.sending import notify
from shoestore.ordering.order.events import OrderCancelled, OrderPlaced, OrderStatusChanged
from shoestore.payments.payment.events import (
    PaymentActionRequired,
    PaymentCancelled,
    PaymentCapturedAfterCancellation,
    PaymentDisputed,
    PaymentFailed,
    PaymentRefunded,
    PaymentSucceeded,
)

logger = structlog.get_logger(__name__)


def isolated(fn):
    """Log instead of propagating anything the notification path raises."""

    @wraps(fn)
    def wrapper(self, event):
        try:
            fn(self, event)
        except Exception as exc:
            logger.error(
                "Notification for event failed",
                event_type=type(event).__name__,
                order_id=str(getattr(event, "order_id", "")),
                error=str(exc),
            )

    return wrapper


def _currency() -> str:
    return current_domain.config.get("custom", {}).get("currency", "USD")


def _money(amount) -> str:
    return f"{amount or 0.0:.2f}"


@shoestore.event_handler(part_of=Notification, stream_category="shoestore::order")
class OrderNotificationHandler:
    @handle(OrderPlaced)
    @isolated
    def on_order_placed(self, event: OrderPlaced) -> None:
        notify(
            event.customer_id,
            "order_placed",
            {
                "order_id": str(event.order_id),
                "order_number": event.order_number,
                "item_count": event.item_count,
                "total": _money(event.total),
                "currency": event.currency or _currency(),
            },
        )

    @handle(OrderStatusChanged)
    @isolated
    def on_status_changed(self, event: OrderStatusChanged) -> None:
        tracking = ""
        if event.tracking_number:
            tracking = f"Tracking: {event.carrier or ''} {event.tracking_number}".replace("  ", " ")
        notification_type = "order_confirmed" if event.new_status == "confirmed" else "order_status_update"
        notify(
            event.customer_id,
            notification_type,
            {
                "order_id": str(event.order_id),
                "order_number": event.order_number,
                "previous_status": event.previous_status,
                "new_status": event.new_status,
                "note": event.note,
                "tracking": tracking,
            },
        )

    @handle(OrderCancelled)
    @isolated
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        notify(
            event.customer_id,
            "order_cancelled",
            {
                "order_id": str(event.order_id),
                "order_number": event.order_number,
                "reason": f"Reason: {event.reason}" if event.reason else "",
                "cancelled_by": event.cancelled_by,
            },
        )

    @handle(PaymentSucceeded)
    @isolated
    def on_payment_succeeded(self, event: PaymentSucceeded) -> None:
        data = {
            "order_id": str(event.order_id),
            "order_number": event.order_number,
            "customer_id": str(event.customer_id),
            "amount": _money(event.amount),
            "currency": event.currency or _currency(),
        }
        notify(event.customer_id, "payment_succeeded", data)
        notify_admins("new_paid_order", data)

    @handle(PaymentCapturedAfterCancellation)
    @isolated
    def on_payment_after_cancellation(self, event: PaymentCapturedAfterCancellation) -> None:
        # The customer already heard about the cancellation; only staff can fix this
        notify_admins(
            "paid_cancelled_order",
            {
                "order_id": str(event.order_id),
                "order_number": event.order_number,
                "customer_id": str(event.customer_id),
                "transaction_id": event.transaction_id,
                "amount": _money(event.amount),
                "currency": event.currency or _currency(),
            },
        )

    @handle(PaymentFailed)
    @isolated
    def on_payment_failed(self, event: PaymentFailed) -> None:
        data = {
            "order_id": str(event.order_id),
            "order_number": event.order_number,
            "customer_id": str(event.customer_id),
            "failure_code": event.failure_code,
            "failure_reason": event.failure_reason,
            "retryable": event.retryable,
            "retry_url": f"/payments/{event.order_id}/retry",
        }
        notify(event.customer_id, "payment_failed", data)
        notify_admins("payment_failed_admin", data)

    @handle(PaymentCancelled)
    @isolated
    def on_payment_cancelled(self, event: PaymentCancelled) -> None:
        notify(
            event.customer_id,
            "payment_cancelled",
            {"order_id": str(event.order_id), "order_number": event.order_number},
        )

    @handle(PaymentActionRequired)
    @isolated
    def on_payment_action_required(self, event: PaymentActionRequired) -> None:
        notify(
            event.customer_id,
            "payment_action_required",
            {
                "order_id": str(event.order_id),
                "order_number": event.order_number,
                "next_action": event.next_action,
                "client_secret": event.client_secret,
            },
        )

    @handle(PaymentRefunded)
    @isolated
    def on_payment_refunded(self, event: PaymentRefunded) -> None:
        notify(
            event.customer_id,
            "refund_processed",
            {
                "order_id": str(event.order_id),
                "order_number": event.order_number,
                "refund_id": event.refund_id,
                "amount": _money(event.amount),
                "currency": _currency(),
                "fully_refunded": event.fully_refunded,
            },
        )

    @handle(PaymentDisputed)
    @isolated
    def on_payment_disputed(self, event: PaymentDisputed) -> None:
        notify_admins(
            "payment_dispute",
            {
                "order_id": str(event.order_id),
                "order_number": event.order_number,
                "customer_id": str(event.customer_id),
                "dispute_id": event.dispute_id,
                "amount": _money(event.amount),
                "currency": _currency(),
                "reason": event.reason,
            },
        )
