"""Payment events raised by the Order aggregate.

Payment lives on the order as a sub-document, so these events are part of the
Order stream. Notification handlers subscribe to them to tell the customer
(and admins) what happened.
"""

from protean.fields import Boolean, DateTime, Float, Identifier, String, Text

from shoestore.domain import shoestore


@shoestore.event(part_of="Order")
class PaymentIntentCreated:
    __version__ = 1

    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    intent_id = String(required=True)
    amount = Float(required=True)
    currency = String(required=True)
    created_at = DateTime(required=True)


@shoestore.event(part_of="Order")
class PaymentSucceeded:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    intent_id = String(required=True)
    transaction_id = String()
    amount = Float(required=True)
    currency = String(required=True)
    paid_at = DateTime(required=True)


@shoestore.event(part_of="Order")
class PaymentCapturedAfterCancellation:
    """Money arrived for an order that was already cancelled. Staff must refund it."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    intent_id = String(required=True)
    transaction_id = String()
    amount = Float(required=True)
    currency = String(required=True)
    paid_at = DateTime(required=True)


@shoestore.event(part_of="Order")
class PaymentFailed:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    intent_id = String(required=True)
    amount = Float(required=True)
    failure_code = String()
    failure_reason = String()
    retryable = Boolean(default=True)
    failed_at = DateTime(required=True)


@shoestore.event(part_of="Order")
class PaymentCancelled:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    intent_id = String(required=True)
    cancelled_at = DateTime(required=True)


@shoestore.event(part_of="Order")
class PaymentActionRequired:
    """The customer has to complete a step (3-D Secure challenge, redirect)."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    intent_id = String(required=True)
    next_action = Text()  # JSON: gateway's next-action payload
    client_secret = String()


@shoestore.event(part_of="Order")
class PaymentRefunded:
    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    refund_id = String(required=True)
    amount = Float(required=True)
    total_refunded = Float(required=True)
    fully_refunded = Boolean(required=True)
    reason = String()
    refunded_at = DateTime(required=True)


@shoestore.event(part_of="Order")
class PaymentDisputed:
    """A chargeback was opened. Nothing changes on the order; staff handle it."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    dispute_id = String(required=True)
    amount = Float(required=True)
    reason = String()
    opened_at = DateTime(required=True)


@shoestore.event(part_of="Order")
class PaymentRetried:
    __version__ = 1

    order_id = Identifier(required=True)
    previous_intent_id = String()
    new_intent_id = String(required=True)
    retried_at = DateTime(required=True)
