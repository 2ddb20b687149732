"""Configurable fake payment gateway for development and testing.

Simulates the gateway without any network calls. Its behavior can be switched
at runtime (succeed, decline, require 3-D Secure, time out), and every call is
recorded in ``calls`` so tests can assert on what was sent. Webhook payloads
are trusted when signed with ``test-signature``.
"""

import json
from uuid import uuid4

from shoestore.errors import GatewayRejected, GatewayTimeout, InvalidWebhookSignature
from shoestore.payments.gateway.port import IntentResult, PaymentGateway, RefundResult, WebhookEvent

VALID_SIGNATURE = "test-signature"

# Outcome of confirm_intent
SUCCEED = "succeed"
DECLINE = "decline"
REQUIRE_ACTION = "require_action"
TIMEOUT = "timeout"


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.outcome: str = SUCCEED
        self.failure_code: str = "card_declined"
        self.failure_reason: str = "Your card was declined."
        self.calls: list[dict] = []
        self.intents: dict[str, dict] = {}

    def configure(self, outcome: str = SUCCEED, failure_code=None, failure_reason=None) -> None:
        """Configure gateway behavior at runtime."""
        self.outcome = outcome
        if failure_code:
            self.failure_code = failure_code
        if failure_reason:
            self.failure_reason = failure_reason

    def _raise_if_unreachable(self, method):
        if self.outcome == TIMEOUT:
            raise GatewayTimeout(operation=method)

    def create_customer(self, email, name, metadata):
        self.calls.append({"method": "create_customer", "email": email, "name": name, "metadata": metadata})
        self._raise_if_unreachable("create_customer")
        return f"cus_fake_{uuid4().hex[:12]}"

    def create_intent(self, amount, currency, customer_id, metadata):
        self.calls.append(
            {
                "method": "create_intent",
                "amount": amount,
                "currency": currency,
                "customer_id": customer_id,
                "metadata": metadata,
            }
        )
        self._raise_if_unreachable("create_intent")

        intent_id = f"pi_fake_{uuid4().hex[:16]}"
        self.intents[intent_id] = {"amount": amount, "currency": currency, "metadata": metadata}
        return IntentResult(
            intent_id=intent_id,
            status="requires_payment_method",
            client_secret=f"{intent_id}_secret_{uuid4().hex[:8]}",
        )

    def confirm_intent(self, intent_id, payment_method_id):
        self.calls.append({"method": "confirm_intent", "intent_id": intent_id, "payment_method_id": payment_method_id})
        self._raise_if_unreachable("confirm_intent")

        if self.outcome == DECLINE:
            raise GatewayRejected(self.failure_reason, code=self.failure_code)
        if self.outcome == REQUIRE_ACTION:
            return IntentResult(
                intent_id=intent_id,
                status="requires_action",
                client_secret=f"{intent_id}_secret",
                next_action={"type": "use_stripe_sdk"},
            )
        return IntentResult(intent_id=intent_id, status="succeeded")

    def refund(self, intent_id, amount, reason=None):
        self.calls.append({"method": "refund", "intent_id": intent_id, "amount": amount, "reason": reason})
        self._raise_if_unreachable("refund")

        if self.outcome == DECLINE:
            raise GatewayRejected(self.failure_reason, code=self.failure_code, retryable=False)
        return RefundResult(refund_id=f"re_fake_{uuid4().hex[:12]}", status="succeeded", amount=amount)

    def construct_event(self, payload, signature):
        if signature != VALID_SIGNATURE:
            raise InvalidWebhookSignature("Webhook signature verification failed")
        try:
            body = json.loads(payload)
        except ValueError as exc:
            raise InvalidWebhookSignature("Webhook payload is not valid JSON") from exc

        return WebhookEvent(
            event_id=body.get("id") or f"evt_fake_{uuid4().hex[:12]}",
            type=body.get("type", ""),
            data=(body.get("data") or {}).get("object") or {},
        )
