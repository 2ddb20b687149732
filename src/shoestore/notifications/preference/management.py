"""Preference management: commands, handler and lookup."""

from protean import handle
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from shoestore.domain import shoestore
from shoestore.notifications.preference.preference import NotificationPreference


def preferences_for(customer_id) -> NotificationPreference | None:
    repo = current_domain.repository_for(NotificationPreference)
    found = repo._dao.query.filter(customer_id=str(customer_id)).all().items
    return found[0] if found else None


def _load_or_create(customer_id) -> NotificationPreference:
    return preferences_for(customer_id) or NotificationPreference.create_default(customer_id)


@shoestore.command(part_of="NotificationPreference")
class UpdatePreferences:
    customer_id = Identifier(required=True)
    email = Boolean()
    push = Boolean()
    sms = Boolean()
    realtime = Boolean()


@shoestore.command(part_of="NotificationPreference")
class UnsubscribeFromType:
    customer_id = Identifier(required=True)
    notification_type = String(required=True, max_length=50)


@shoestore.command(part_of="NotificationPreference")
class ResubscribeToType:
    customer_id = Identifier(required=True)
    notification_type = String(required=True, max_length=50)


@shoestore.command_handler(part_of=NotificationPreference)
class PreferenceHandler:
    @handle(UpdatePreferences)
    def update_preferences(self, command):
        preference = _load_or_create(command.customer_id)
        preference.update_channels(
            email=command.email,
            push=command.push,
            sms=command.sms,
            realtime=command.realtime,
        )
        current_domain.repository_for(NotificationPreference).add(preference)
        return str(preference.id)

    @handle(UnsubscribeFromType)
    def unsubscribe(self, command):
        preference = _load_or_create(command.customer_id)
        preference.unsubscribe(command.notification_type)
        current_domain.repository_for(NotificationPreference).add(preference)

    @handle(ResubscribeToType)
    def resubscribe(self, command):
        preference = _load_or_create(command.customer_id)
        preference.resubscribe(command.notification_type)
        current_domain.repository_for(NotificationPreference).add(preference)
