"""Payment webhook ingestion.

The raw request body is verified against the gateway signature before
anything in it is trusted. The event's payment intent id locates the order;
events for unknown orders, for an intent that has since been replaced by a
retry, or of a kind we do not handle are acknowledged and ignored so the
gateway stops redelivering them.

Gateway amounts arrive in cents and are converted to major units here.
"""

import json

import structlog
from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from shoestore.ordering.order.lifecycle import release_freed_stock
from shoestore.ordering.order.order import Order
from shoestore.ordering.order.queries import find_by_intent
from shoestore.payments.gateway import get_gateway
from shoestore.payments.gateway.port import PaymentGateway, WebhookEvent, from_cents
from shoestore.payments.payment.outcomes import (
    RecordActionRequired,
    RecordDispute,
    RecordPaymentCancellation,
    RecordPaymentFailure,
    RecordPaymentSuccess,
    RecordRefund,
)

logger = structlog.get_logger(__name__)


def _payment_succeeded(order: Order, data: dict):
    return RecordPaymentSuccess(
        order_id=str(order.id),
        transaction_id=data.get("latest_charge") or data.get("id"),
        amount=from_cents(data.get("amount_received") or data.get("amount")),
    )


def _payment_failed(order: Order, data: dict):
    error = data.get("last_payment_error") or {}
    return RecordPaymentFailure(
        order_id=str(order.id),
        failure_code=error.get("decline_code") or error.get("code") or "payment_failed",
        failure_reason=error.get("message") or "Payment failed",
        retryable=True,
    )


def _payment_canceled(order: Order, data: dict):
    return RecordPaymentCancellation(order_id=str(order.id))


def _requires_action(order: Order, data: dict):
    return RecordActionRequired(
        order_id=str(order.id),
        next_action=json.dumps(data.get("next_action") or {}),
        client_secret=data.get("client_secret"),
    )


def _charge_refunded(order: Order, data: dict):
    # amount_refunded is cumulative; only the part we have not recorded is new
    already_refunded = order.payment.refunded_amount if order.payment else 0.0
    amount = round(from_cents(data.get("amount_refunded")) - (already_refunded or 0.0), 2)
    if amount <= 0:
        return None

    refunds = (data.get("refunds") or {}).get("data") or []
    latest = refunds[0] if refunds else {}
    return RecordRefund(
        order_id=str(order.id),
        refund_id=latest.get("id") or f"{data.get('id')}:{data.get('amount_refunded')}",
        amount=amount,
        reason=latest.get("reason"),
    )


def _dispute_created(order: Order, data: dict):
    return RecordDispute(
        order_id=str(order.id),
        dispute_id=data.get("id"),
        amount=from_cents(data.get("amount")),
        reason=data.get("reason"),
    )


# Event type -> (field holding the intent id, command builder)
HANDLERS = {
    "payment_intent.succeeded": ("id", _payment_succeeded),
    "payment_intent.payment_failed": ("id", _payment_failed),
    "payment_intent.canceled": ("id", _payment_canceled),
    "payment_intent.requires_action": ("id", _requires_action),
    "charge.refunded": ("payment_intent", _charge_refunded),
    "charge.dispute.created": ("payment_intent", _dispute_created),
}


def handle_event(event: WebhookEvent) -> bool:
    """Apply one verified gateway event. Returns True when an order changed."""
    log = logger.bind(event_id=event.event_id, event_type=event.type)
    if event.type not in HANDLERS:
        log.info("Ignoring unhandled webhook event")
        return False

    intent_field, build = HANDLERS[event.type]
    intent_id = event.data.get(intent_field)
    order = find_by_intent(intent_id)
    if order is None:
        log.info("Webhook does not match a current payment intent", intent_id=intent_id)
        return False

    command = build(order, event.data)
    if command is None:
        log.info("Webhook already reflected on order", order_id=str(order.id))
        return False

    try:
        changed = current_domain.process(command, asynchronous=False)
    except ValidationError as exc:
        # e.g. a refund for a payment that never completed
        log.warning("Webhook outcome does not apply to order", order_id=str(order.id), errors=exc.messages)
        return False

    if changed:
        release_freed_stock(order)
    log.info("Webhook processed", order_id=str(order.id), changed=bool(changed))
    return bool(changed)


def process_webhook(payload: bytes, signature: str, gateway: PaymentGateway | None = None) -> bool:
    """Verify and apply a raw webhook delivery.

    Raises InvalidWebhookSignature before any state is touched when the
    payload cannot be verified.
    """
    gateway = gateway or get_gateway()
    event = gateway.construct_event(payload, signature)
    return handle_event(event)
