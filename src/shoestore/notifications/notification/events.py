"""Domain events for the Notification aggregate."""

from protean.fields import DateTime, Identifier, String, Text

from shoestore.domain import shoestore


@shoestore.event(part_of="Notification")
class NotificationCreated:
    __version__ = 1

    notification_id: Identifier(required=True)
    recipient_id: Identifier(required=True)
    notification_type: String(required=True)
    priority: String(required=True)
    channels: Text(required=True)  # JSON list of channels to attempt
    created_at: DateTime(required=True)


@shoestore.event(part_of="Notification")
class NotificationDelivered:
    __version__ = 1

    notification_id: Identifier(required=True)
    recipient_id: Identifier(required=True)
    outcomes: Text(required=True)  # JSON: {channel: status}
    delivered_at: DateTime(required=True)


@shoestore.event(part_of="Notification")
class NotificationRead:
    __version__ = 1

    notification_id: Identifier(required=True)
    recipient_id: Identifier(required=True)
    read_at: DateTime(required=True)
