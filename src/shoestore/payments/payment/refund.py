"""Staff-initiated refunds."""

import structlog
from protean.utils.globals import current_domain

from shoestore.errors import Forbidden
from shoestore.ordering.order.lifecycle import load_order, release_freed_stock
from shoestore.ordering.order.order import Order
from shoestore.payments.gateway import get_gateway
from shoestore.payments.gateway.port import PaymentGateway
from shoestore.payments.payment.outcomes import RecordRefund

logger = structlog.get_logger(__name__)


def refund_payment(
    order_id,
    caller,
    amount: float | None = None,
    reason: str | None = None,
    gateway: PaymentGateway | None = None,
) -> Order:
    """Refund part or all of a completed payment.

    Without an amount, whatever has not been refunded yet is refunded. The
    amount is checked against the order before the gateway is asked, so an
    oversized refund never reaches it. A full refund of an order that has not
    shipped puts its stock back.
    """
    if not caller.is_staff:
        raise Forbidden("Staff or admin role required")

    gateway = gateway or get_gateway()
    order = load_order(order_id)
    amount = order.refundable_amount if amount is None else round(amount, 2)
    order.assert_refundable(amount)

    result = gateway.refund(order.payment_intent_id, amount, reason)
    current_domain.process(
        RecordRefund(order_id=str(order.id), refund_id=result.refund_id, amount=amount, reason=reason),
        asynchronous=False,
    )
    logger.info("Refund issued", order_id=str(order.id), refund_id=result.refund_id, amount=amount)
    return release_freed_stock(order)
