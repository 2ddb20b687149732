"""The in-app inbox: listing and read tracking."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from shoestore.domain import shoestore
from shoestore.errors import Forbidden
from shoestore.notifications.notification.notification import Notification


@shoestore.command(part_of="Notification")
class MarkNotificationRead:
    notification_id = Identifier(required=True)
    reader_id = Identifier(required=True)


@shoestore.command(part_of="Notification")
class MarkAllNotificationsRead:
    recipient_id = Identifier(required=True)


def inbox(recipient_id, unread_only=False) -> list[Notification]:
    filters = {"recipient_id": str(recipient_id)}
    if unread_only:
        filters["is_read"] = False
    items = current_domain.repository_for(Notification)._dao.query.filter(**filters).all().items
    return sorted(items, key=lambda n: n.created_at, reverse=True)


def unread_count(recipient_id) -> int:
    return len(inbox(recipient_id, unread_only=True))


@shoestore.command_handler(part_of=Notification)
class InboxHandler:
    @handle(MarkNotificationRead)
    def mark_read(self, command):
        repo = current_domain.repository_for(Notification)
        notification = repo.get(command.notification_id)
        if str(notification.recipient_id) != str(command.reader_id):
            raise Forbidden("Notification belongs to another customer")
        if notification.mark_read():
            repo.add(notification)

    @handle(MarkAllNotificationsRead)
    def mark_all_read(self, command):
        repo = current_domain.repository_for(Notification)
        marked = 0
        for notification in inbox(command.recipient_id, unread_only=True):
            notification.mark_read()
            repo.add(notification)
            marked += 1
        return marked
