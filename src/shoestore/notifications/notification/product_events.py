"""Inbound event handler: alert staff when a variant runs low on stock.

The broadcast is deferred so it never runs while a product lock is held.
"""

import structlog
from protean import handle

from shoestore.catalogue.product.events import LowStockDetected
from shoestore.domain import shoestore
from shoestore.notifications.notification.admin import notify_admins
from shoestore.notifications.notification.notification import Notification
from shoestore.utils.deferred import defer

logger = structlog.get_logger(__name__)


@shoestore.event_handler(part_of=Notification, stream_category="shoestore::product")
class ProductNotificationHandler:
    @handle(LowStockDetected)
    def on_low_stock(self, event: LowStockDetected) -> None:
        try:
            defer(
                notify_admins,
                "low_stock",
                {
                    "product_id": str(event.product_id),
                    "variant_id": str(event.variant_id),
                    "product_name": event.product_name,
                    "sku": event.sku,
                    "size": event.size,
                    "color": event.color,
                    "current_stock": event.current_stock,
                    "threshold": event.threshold,
                },
            )
        except Exception as exc:
            logger.error("Low stock alert failed", sku=event.sku, error=str(exc))
