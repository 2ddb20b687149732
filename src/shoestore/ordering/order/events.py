"""Domain events for the Order aggregate's fulfilment lifecycle.

Payment outcomes are raised by the same aggregate but live with the payments
context (``shoestore.payments.payment.events``).
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from shoestore.domain import shoestore


@shoestore.event(part_of="Order")
class OrderPlaced:
    """Stock was reserved and the order persisted; payment is still pending."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of line snapshots
    item_count = Integer(required=True)
    subtotal = Float(required=True)
    discount = Float(default=0.0)
    total = Float(required=True)
    currency = String(default="USD")
    shipping_method = String(required=True)
    coupon_code = String()
    placed_at = DateTime(required=True)


@shoestore.event(part_of="Order")
class OrderStatusChanged:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    note = String()
    changed_by = String()
    carrier = String()
    tracking_number = String()
    changed_at = DateTime(required=True)


@shoestore.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled; its reserved stock is due to be released."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String()
    cancelled_by = String()
    items = Text(required=True)  # JSON: reserved lines to release
    cancelled_at = DateTime(required=True)
