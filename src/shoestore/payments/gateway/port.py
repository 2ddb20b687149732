"""Payment gateway port (abstract interface).

Defines what the payment coordinator needs from a gateway. Amounts cross this
boundary in major currency units (dollars); adapters convert to whatever the
provider expects. Adapters raise ``GatewayRejected`` for a definitive refusal
and ``GatewayTimeout`` when the provider could not be reached in time.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


def to_cents(amount: float) -> int:
    return int(round(amount * 100))


def from_cents(amount: int | None) -> float:
    return round((amount or 0) / 100, 2)


@dataclass(frozen=True)
class IntentResult:
    """State of a payment intent after a create or confirm call."""

    intent_id: str
    status: str  # requires_payment_method, requires_action, processing, succeeded, canceled
    client_secret: str | None = None
    next_action: dict | None = None
    failure_code: str | None = None
    failure_reason: str | None = None


@dataclass(frozen=True)
class RefundResult:
    refund_id: str
    status: str
    amount: float


@dataclass(frozen=True)
class WebhookEvent:
    """A verified gateway event. ``data`` is the event's object payload."""

    event_id: str
    type: str
    data: dict = field(default_factory=dict)


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_customer(self, email: str, name: str, metadata: dict) -> str:
        """Register the customer with the gateway; returns the gateway customer id."""
        ...

    @abstractmethod
    def create_intent(self, amount: float, currency: str, customer_id: str, metadata: dict) -> IntentResult:
        ...

    @abstractmethod
    def confirm_intent(self, intent_id: str, payment_method_id: str) -> IntentResult:
        ...

    @abstractmethod
    def refund(self, intent_id: str, amount: float, reason: str | None = None) -> RefundResult:
        ...

    @abstractmethod
    def construct_event(self, payload: bytes, signature: str) -> WebhookEvent:
        """Verify ``signature`` over the raw ``payload`` and parse it.

        Raises InvalidWebhookSignature when the payload cannot be trusted.
        """
        ...
