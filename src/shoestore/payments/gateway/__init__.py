"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- StripeGateway when STRIPE_SECRET_KEY is set
- FakeGateway otherwise (development and tests)
"""

import os

from shoestore.payments.gateway.fake_adapter import FakeGateway
from shoestore.payments.gateway.port import PaymentGateway

_current_gateway: PaymentGateway | None = None


def _gateway_from_env() -> PaymentGateway:
    api_key = os.environ.get("STRIPE_SECRET_KEY")
    if not api_key:
        return FakeGateway()

    from shoestore.payments.gateway.stripe_adapter import StripeGateway

    return StripeGateway(
        api_key=api_key,
        webhook_secret=os.environ.get("STRIPE_WEBHOOK_SECRET", ""),
        timeout=float(os.environ.get("PAYMENT_GATEWAY_TIMEOUT", "10")),
    )


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, building it from the environment on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _gateway_from_env()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    global _current_gateway
    _current_gateway = None
