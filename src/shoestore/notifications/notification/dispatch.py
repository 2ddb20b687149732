"""Internal dispatch handler: delivers a notification on each of its channels.

Reacts to NotificationCreated. Every channel is attempted on its own and its
outcome (sent/failed plus the error) is written back to the notification.
A push service reporting the subscription as gone makes us forget it.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from shoestore.domain import shoestore
from shoestore.identity.customer.customer import Customer
from shoestore.identity.customer.registration import ClearPushSubscription
from shoestore.notifications.channel import get_channel
from shoestore.notifications.channel.push import GONE
from shoestore.notifications.notification.events import NotificationCreated
from shoestore.notifications.notification.notification import Channel, Notification

logger = structlog.get_logger(__name__)


@shoestore.event_handler(part_of=Notification)
class NotificationDispatcher:
    @handle(NotificationCreated)
    def on_notification_created(self, event: NotificationCreated) -> None:
        repo = current_domain.repository_for(Notification)
        try:
            notification = repo.get(event.notification_id)
        except ObjectNotFoundError:
            logger.error("Notification vanished before dispatch", notification_id=str(event.notification_id))
            return

        recipient = _recipient(notification.recipient_id)
        for delivery in notification.pending_deliveries():
            channel = delivery.channel
            try:
                sent, error = _deliver(channel, notification, recipient)
            except Exception as exc:
                sent, error = False, str(exc)
                logger.error(
                    "Notification channel raised",
                    notification_id=str(notification.id),
                    channel=channel,
                    error=str(exc),
                )
            notification.record_delivery(channel, sent, error)

        notification.finish_delivery()
        repo.add(notification)


def _recipient(customer_id) -> Customer | None:
    try:
        return current_domain.repository_for(Customer).get(customer_id)
    except ObjectNotFoundError:
        return None


def _deliver(channel: str, notification: Notification, recipient: Customer | None) -> tuple[bool, str | None]:
    if channel == Channel.IN_APP.value:
        # The stored record is the in-app notification
        return True, None

    if channel == Channel.REALTIME.value:
        delivered = get_channel("realtime").emit(
            notification.recipient_id,
            "notification",
            {
                "id": str(notification.id),
                "type": notification.notification_type,
                "title": notification.title,
                "message": notification.message,
                "priority": notification.priority,
                "data": notification.payload,
            },
        )
        return delivered, None if delivered else "Recipient is not connected"

    if recipient is None:
        return False, "Recipient not found"

    if channel == Channel.EMAIL.value:
        result = get_channel("email").send(to=recipient.email, subject=notification.title, body=notification.message)
        return result.get("status") == "sent", result.get("error")

    if channel == Channel.PUSH.value:
        if recipient.push_subscription is None:
            return False, "No push subscription"
        subscription = {
            "endpoint": recipient.push_subscription.endpoint,
            "keys": {"p256dh": recipient.push_subscription.p256dh, "auth": recipient.push_subscription.auth},
        }
        result = get_channel("push").send(
            subscription,
            {
                "title": notification.title,
                "body": notification.message,
                "data": {"type": notification.notification_type, **notification.payload},
            },
        )
        if result.get("status") == GONE:
            _forget_push_subscription(recipient)
        return result.get("status") == "sent", result.get("error")

    return False, f"No adapter for channel {channel}"


def _forget_push_subscription(recipient: Customer) -> None:
    logger.info("Push subscription expired, removing it", customer_id=str(recipient.id))
    current_domain.process(
        ClearPushSubscription(customer_id=str(recipient.id), reason="expired"),
        asynchronous=False,
    )
