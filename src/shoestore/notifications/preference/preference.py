"""NotificationPreference aggregate (CQRS): which channels a customer wants.

Customers without stored preferences get every channel a template lists.
In-app notifications cannot be switched off: the inbox is the record of what
the store told the customer.
"""

import json
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Identifier, Text

from shoestore.domain import shoestore
from shoestore.notifications.notification.notification import Channel
from shoestore.notifications.notification.templates import TEMPLATES
from shoestore.notifications.preference.events import (
    PreferencesUpdated,
    TypeResubscribed,
    TypeUnsubscribed,
)


@shoestore.aggregate
class NotificationPreference:
    customer_id: Identifier(required=True, unique=True)

    email_enabled: Boolean(default=True)
    push_enabled: Boolean(default=True)
    sms_enabled: Boolean(default=False)
    realtime_enabled: Boolean(default=True)

    unsubscribed_types: Text()  # JSON list of notification types

    created_at: DateTime()
    updated_at: DateTime()

    @classmethod
    def create_default(cls, customer_id):
        now = datetime.now(UTC)
        return cls(
            customer_id=customer_id,
            email_enabled=True,
            push_enabled=True,
            sms_enabled=False,
            realtime_enabled=True,
            unsubscribed_types=json.dumps([]),
            created_at=now,
            updated_at=now,
        )

    def _flag_for(self, channel) -> bool:
        flags = {
            Channel.EMAIL.value: self.email_enabled,
            Channel.PUSH.value: self.push_enabled,
            Channel.SMS.value: self.sms_enabled,
            Channel.REALTIME.value: self.realtime_enabled,
            Channel.IN_APP.value: True,
        }
        return bool(flags.get(channel, False))

    def allowed_channels(self, channels) -> list[str]:
        return [c for c in channels if self._flag_for(c)]

    def _unsubscribed(self) -> list[str]:
        return json.loads(self.unsubscribed_types) if self.unsubscribed_types else []

    def is_subscribed_to(self, notification_type) -> bool:
        return notification_type not in self._unsubscribed()

    def update_channels(self, email=None, push=None, sms=None, realtime=None):
        """Pass None to keep a channel unchanged."""
        if email is None and push is None and sms is None and realtime is None:
            raise ValidationError({"channels": ["At least one channel preference must be provided"]})

        if email is not None:
            self.email_enabled = email
        if push is not None:
            self.push_enabled = push
        if sms is not None:
            self.sms_enabled = sms
        if realtime is not None:
            self.realtime_enabled = realtime
        self.updated_at = datetime.now(UTC)

        self.raise_(
            PreferencesUpdated(
                preference_id=str(self.id),
                customer_id=str(self.customer_id),
                email_enabled=self.email_enabled,
                push_enabled=self.push_enabled,
                sms_enabled=self.sms_enabled,
                realtime_enabled=self.realtime_enabled,
                updated_at=self.updated_at,
            )
        )

    def unsubscribe(self, notification_type):
        if notification_type not in TEMPLATES:
            raise ValidationError({"notification_type": [f"Unknown notification type {notification_type}"]})
        current = self._unsubscribed()
        if notification_type in current:
            return

        self.unsubscribed_types = json.dumps(current + [notification_type])
        self.updated_at = datetime.now(UTC)
        self.raise_(
            TypeUnsubscribed(
                preference_id=str(self.id),
                customer_id=str(self.customer_id),
                notification_type=notification_type,
                unsubscribed_at=self.updated_at,
            )
        )

    def resubscribe(self, notification_type):
        current = self._unsubscribed()
        if notification_type not in current:
            return

        self.unsubscribed_types = json.dumps([t for t in current if t != notification_type])
        self.updated_at = datetime.now(UTC)
        self.raise_(
            TypeResubscribed(
                preference_id=str(self.id),
                customer_id=str(self.customer_id),
                notification_type=notification_type,
                resubscribed_at=self.updated_at,
            )
        )
