"""Notification fan-out: choose channels, persist, hand over to the dispatcher.

The record is persisted first; NotificationCreated then triggers delivery on
each channel (see dispatch.py). Callers get the notification back with the
per-channel outcomes already recorded when processing is synchronous.
"""

import json

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from shoestore.domain import shoestore
from shoestore.notifications.notification.notification import Notification
from shoestore.notifications.notification.templates import get_template
from shoestore.notifications.preference.management import preferences_for

logger = structlog.get_logger(__name__)


@shoestore.command(part_of="Notification")
class SendNotification:
    recipient_id = Identifier(required=True)
    notification_type = String(required=True, max_length=50)
    title = String(required=True, max_length=255)
    message = Text(required=True)
    priority = String(required=True, max_length=10)
    channels = Text(required=True)  # JSON list
    data = Text()  # JSON


@shoestore.command_handler(part_of=Notification)
class SendNotificationHandler:
    @handle(SendNotification)
    def send(self, command):
        notification = Notification.create(
            recipient_id=command.recipient_id,
            notification_type=command.notification_type,
            title=command.title,
            message=command.message,
            priority=command.priority,
            channels=json.loads(command.channels),
            data=json.loads(command.data) if command.data else {},
        )
        current_domain.repository_for(Notification).add(notification)
        return str(notification.id)


def select_channels(recipient_id, notification_type: str) -> list[str] | None:
    """The template's channels narrowed by the recipient's preferences.

    Returns None when the recipient has unsubscribed from the type.
    """
    template = get_template(notification_type)
    preference = preferences_for(recipient_id)
    if preference is None:
        return list(template.channels)
    if not preference.is_subscribed_to(notification_type):
        return None
    return preference.allowed_channels(template.channels)


def notify(recipient_id, notification_type: str, data: dict | None = None, priority: str | None = None):
    """Notify one recipient. Returns the stored notification, or None when they opted out."""
    template = get_template(notification_type)
    channels = select_channels(recipient_id, notification_type)
    if channels is None:
        logger.info(
            "Recipient unsubscribed from notification type",
            recipient_id=str(recipient_id),
            notification_type=notification_type,
        )
        return None

    title, message = template.render(data or {})
    notification_id = current_domain.process(
        SendNotification(
            recipient_id=str(recipient_id),
            notification_type=notification_type,
            title=title,
            message=message,
            priority=priority or template.priority,
            channels=json.dumps(channels),
            data=json.dumps(data or {}, default=str),
        ),
        asynchronous=False,
    )
    return current_domain.repository_for(Notification).get(notification_id)
