"""Admin broadcast: one notification per active staff member.

Recipients are notified one after another with a short pause in between so a
burst of alerts does not hammer the channel providers. A failure for one
recipient is logged and counted; the rest still get theirs.
"""

import time

import structlog
from protean.utils.globals import current_domain

from shoestore.identity.customer.customer import STAFF_ROLES, Customer
from shoestore.notifications.notification.sending import notify

logger = structlog.get_logger(__name__)


def admin_recipients() -> list[Customer]:
    customers = current_domain.repository_for(Customer)._dao.query.filter(is_active=True).all().items
    return [c for c in customers if c.role in STAFF_ROLES]


def _interval() -> float:
    return float(current_domain.config.get("custom", {}).get("admin_notification_interval", 0.0))


def notify_admins(notification_type: str, data: dict | None = None, interval: float | None = None) -> dict:
    """Returns ``{"sent": n, "failed": m}``."""
    pause = _interval() if interval is None else interval
    sent = failed = 0

    for index, admin in enumerate(admin_recipients()):
        if index and pause:
            time.sleep(pause)
        try:
            notify(admin.id, notification_type, data)
            sent += 1
        except Exception as exc:
            failed += 1
            logger.error(
                "Admin notification failed",
                recipient_id=str(admin.id),
                notification_type=notification_type,
                error=str(exc),
            )

    logger.info("Admin broadcast finished", notification_type=notification_type, sent=sent, failed=failed)
    return {"sent": sent, "failed": failed}
