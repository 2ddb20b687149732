"""Domain events for the NotificationPreference aggregate."""

from protean.fields import Boolean, DateTime, Identifier, String

from shoestore.domain import shoestore


@shoestore.event(part_of="NotificationPreference")
class PreferencesUpdated:
    __version__ = 1

    preference_id: Identifier(required=True)
    customer_id: Identifier(required=True)
    email_enabled: Boolean()
    push_enabled: Boolean()
    sms_enabled: Boolean()
    realtime_enabled: Boolean()
    updated_at: DateTime(required=True)


@shoestore.event(part_of="NotificationPreference")
class TypeUnsubscribed:
    __version__ = 1

    preference_id: Identifier(required=True)
    customer_id: Identifier(required=True)
    notification_type: String(required=True)
    unsubscribed_at: DateTime(required=True)


@shoestore.event(part_of="NotificationPreference")
class TypeResubscribed:
    __version__ = 1

    preference_id: Identifier(required=True)
    customer_id: Identifier(required=True)
    notification_type: String(required=True)
    resubscribed_at: DateTime(required=True)
