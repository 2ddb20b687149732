"""Stripe payment gateway adapter.

Stripe works in the smallest currency unit, so amounts are converted to cents
on the way out. SDK exceptions are translated into the store's gateway errors:
network trouble becomes ``GatewayTimeout`` (outcome unknown), everything the
API answered with becomes ``GatewayRejected``.
"""

import json

import stripe
import structlog

from shoestore.errors import GatewayRejected, GatewayTimeout, InvalidWebhookSignature
from shoestore.payments.gateway.port import (
    IntentResult,
    PaymentGateway,
    RefundResult,
    WebhookEvent,
    from_cents,
    to_cents,
)

logger = structlog.get_logger(__name__)


class StripeGateway(PaymentGateway):
    def __init__(self, api_key: str, webhook_secret: str, timeout: float = 10.0, max_retries: int = 2):
        self.webhook_secret = webhook_secret
        stripe.api_key = api_key
        stripe.max_network_retries = max_retries
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    def _call(self, operation, fn, **params):
        try:
            return fn(**params)
        except stripe.CardError as exc:
            raise GatewayRejected(
                exc.user_message or "Card was declined",
                code=exc.code,
                decline_code=getattr(exc, "decline_code", None),
            ) from exc
        except (stripe.APIConnectionError, stripe.RateLimitError) as exc:
            logger.warning("Stripe unreachable", operation=operation, error=str(exc))
            raise GatewayTimeout(operation=operation) from exc
        except stripe.InvalidRequestError as exc:
            raise GatewayRejected(exc.user_message or str(exc), code=exc.code, retryable=False) from exc
        except stripe.StripeError as exc:
            logger.error("Stripe request failed", operation=operation, error=str(exc))
            raise GatewayRejected(exc.user_message or "Payment provider error", code=exc.code) from exc

    def create_customer(self, email, name, metadata):
        customer = self._call(
            "create_customer",
            stripe.Customer.create,
            email=email,
            name=name,
            metadata=metadata,
        )
        return customer.id

    def create_intent(self, amount, currency, customer_id, metadata):
        intent = self._call(
            "create_intent",
            stripe.PaymentIntent.create,
            amount=to_cents(amount),
            currency=currency.lower(),
            customer=customer_id,
            metadata=metadata,
            automatic_payment_methods={"enabled": True},
        )
        return IntentResult(intent_id=intent.id, status=intent.status, client_secret=intent.client_secret)

    def confirm_intent(self, intent_id, payment_method_id):
        intent = self._call(
            "confirm_intent",
            stripe.PaymentIntent.confirm,
            intent=intent_id,
            payment_method=payment_method_id,
        )
        error = intent.get("last_payment_error") or {}
        return IntentResult(
            intent_id=intent.id,
            status=intent.status,
            client_secret=intent.client_secret,
            next_action=intent.get("next_action"),
            failure_code=error.get("code"),
            failure_reason=error.get("message"),
        )

    def refund(self, intent_id, amount, reason=None):
        refund = self._call(
            "refund",
            stripe.Refund.create,
            payment_intent=intent_id,
            amount=to_cents(amount),
            metadata={"reason": reason or ""},
        )
        return RefundResult(refund_id=refund.id, status=refund.status, amount=from_cents(refund.amount))

    def construct_event(self, payload, signature):
        try:
            event = stripe.Webhook.construct_event(payload, signature, self.webhook_secret)
        except (ValueError, stripe.SignatureVerificationError) as exc:
            raise InvalidWebhookSignature("Webhook signature verification failed") from exc

        body = json.loads(payload)
        return WebhookEvent(event_id=event.id, type=event.type, data=body["data"]["object"])
