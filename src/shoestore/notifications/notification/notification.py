"""Notification aggregate (CQRS): one message to one recipient.

A notification is persisted before any delivery is attempted, with one
ChannelDelivery per channel it should go out on. The dispatcher then tries
each channel independently and records the outcome on the delivery; a failed
channel never affects the others or the record itself.

Delivery lifecycle, per channel:
    PENDING → SENT
    PENDING → FAILED
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, HasMany, Identifier, String, Text

from shoestore.domain import shoestore
from shoestore.notifications.notification.events import (
    NotificationCreated,
    NotificationDelivered,
    NotificationRead,
)


class Channel(Enum):
    EMAIL = "email"
    PUSH = "push"
    SMS = "sms"
    IN_APP = "in_app"
    REALTIME = "realtime"


class Priority(Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class DeliveryStatus(Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


@shoestore.entity(part_of="Notification")
class ChannelDelivery:
    channel: String(choices=Channel, required=True)
    status: String(choices=DeliveryStatus, default=DeliveryStatus.PENDING.value)
    error: String(max_length=500)
    sent_at: DateTime()


@shoestore.aggregate
class Notification:
    recipient_id: Identifier(required=True)
    notification_type: String(required=True, max_length=50)
    title: String(required=True, max_length=255)
    message: Text(required=True)
    priority: String(choices=Priority, default=Priority.NORMAL.value)
    data: Text()  # JSON: the event data the message was rendered from
    deliveries = HasMany(ChannelDelivery)
    is_read: Boolean(default=False)
    read_at: DateTime()
    created_at: DateTime()

    @classmethod
    def create(cls, recipient_id, notification_type, title, message, priority, channels, data=None):
        if not channels:
            raise ValidationError({"channels": ["A notification needs at least one channel"]})

        now = datetime.now(UTC)
        notification = cls(
            recipient_id=recipient_id,
            notification_type=notification_type,
            title=title,
            message=message,
            priority=priority,
            data=json.dumps(data or {}, default=str),
            is_read=False,
            created_at=now,
        )
        for channel in channels:
            notification.add_deliveries(ChannelDelivery(channel=channel, status=DeliveryStatus.PENDING.value))

        notification.raise_(
            NotificationCreated(
                notification_id=str(notification.id),
                recipient_id=str(recipient_id),
                notification_type=notification_type,
                priority=priority,
                channels=json.dumps(list(channels)),
                created_at=now,
            )
        )
        return notification

    @property
    def payload(self) -> dict:
        return json.loads(self.data) if self.data else {}

    @property
    def channels(self) -> list[str]:
        return [d.channel for d in self.deliveries]

    def pending_deliveries(self) -> list[ChannelDelivery]:
        return [d for d in self.deliveries if d.status == DeliveryStatus.PENDING.value]

    def outcome_for(self, channel) -> str | None:
        for delivery in self.deliveries:
            if delivery.channel == channel:
                return delivery.status
        return None

    def record_delivery(self, channel, sent: bool, error=None):
        delivery = next((d for d in self.deliveries if d.channel == channel), None)
        if delivery is None:
            raise ValidationError({"channel": [f"Notification was not meant for {channel}"]})

        delivery.status = DeliveryStatus.SENT.value if sent else DeliveryStatus.FAILED.value
        delivery.error = None if sent else (error or "Delivery failed")[:500]
        delivery.sent_at = datetime.now(UTC) if sent else None

    def finish_delivery(self):
        self.raise_(
            NotificationDelivered(
                notification_id=str(self.id),
                recipient_id=str(self.recipient_id),
                outcomes=json.dumps({d.channel: d.status for d in self.deliveries}),
                delivered_at=datetime.now(UTC),
            )
        )

    def mark_read(self):
        """Returns False when the notification was already read."""
        if self.is_read:
            return False
        self.is_read = True
        self.read_at = datetime.now(UTC)
        self.raise_(
            NotificationRead(
                notification_id=str(self.id),
                recipient_id=str(self.recipient_id),
                read_at=self.read_at,
            )
        )
        return True
