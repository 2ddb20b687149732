"""Payment intents: create, confirm and retry.

The gateway is called first and its answer is recorded on the order through a
command afterwards. A gateway failure therefore never leaves a half-written
order behind: either the intent exists and is on the order, or nothing changed.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from shoestore.domain import shoestore
from shoestore.errors import Forbidden, GatewayRejected
from shoestore.identity.customer.customer import Customer
from shoestore.identity.customer.registration import LinkGatewayCustomer
from shoestore.ordering.order.lifecycle import load_order, load_order_for
from shoestore.ordering.order.order import Order
from shoestore.payments.gateway import get_gateway
from shoestore.payments.gateway.port import PaymentGateway
from shoestore.payments.payment.outcomes import RecordActionRequired, RecordPaymentFailure, RecordPaymentSuccess

logger = structlog.get_logger(__name__)


@shoestore.command(part_of="Order")
class AttachPaymentIntent:
    order_id = Identifier(required=True)
    intent_id = String(required=True, max_length=255)
    gateway_status = String(required=True, max_length=50)


@shoestore.command(part_of="Order")
class RecordConfirmation:
    order_id = Identifier(required=True)
    gateway_status = String(required=True, max_length=50)
    detail = String(max_length=500)


@shoestore.command(part_of="Order")
class RetryPayment:
    order_id = Identifier(required=True)
    new_intent_id = String(required=True, max_length=255)
    gateway_status = String(required=True, max_length=50)


@shoestore.command_handler(part_of=Order)
class PaymentIntentHandler:
    @handle(AttachPaymentIntent)
    def attach_intent(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.attach_payment_intent(command.intent_id, command.gateway_status)
        repo.add(order)

    @handle(RecordConfirmation)
    def record_confirmation(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_confirmation(command.gateway_status, detail=command.detail)
        repo.add(order)

    @handle(RetryPayment)
    def retry(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.retry_payment(command.new_intent_id, command.gateway_status)
        repo.add(order)


def ensure_gateway_customer(customer: Customer, gateway: PaymentGateway) -> str:
    """Return the customer's gateway id, registering them with the gateway on first use."""
    if customer.gateway_customer_id:
        return customer.gateway_customer_id

    gateway_customer_id = gateway.create_customer(
        email=customer.email,
        name=customer.full_name,
        metadata={"user_id": str(customer.id)},
    )
    # A concurrent request may have linked first; the stored id wins
    return current_domain.process(
        LinkGatewayCustomer(customer_id=str(customer.id), gateway_customer_id=gateway_customer_id),
        asynchronous=False,
    )


def _new_intent(order: Order, gateway: PaymentGateway):
    customer = current_domain.repository_for(Customer).get(order.customer_id)
    return gateway.create_intent(
        amount=order.pricing.total,
        currency=order.pricing.currency,
        customer_id=ensure_gateway_customer(customer, gateway),
        metadata={
            "order_id": str(order.id),
            "order_number": order.order_number,
            "user_id": str(order.customer_id),
        },
    )


def _intent_envelope(order: Order, intent) -> dict:
    return {
        "client_secret": intent.client_secret,
        "payment_intent_id": intent.intent_id,
        "amount": order.pricing.total,
        "currency": order.pricing.currency,
    }


def create_payment_intent(order_id, caller, gateway: PaymentGateway | None = None) -> dict:
    """Open a gateway intent for the order total. Only the owning customer may pay."""
    gateway = gateway or get_gateway()
    order = load_order(order_id)
    if str(order.customer_id) != str(caller.id):
        raise Forbidden("Only the customer who placed the order can pay for it")
    order.assert_awaiting_payment()

    intent = _new_intent(order, gateway)
    current_domain.process(
        AttachPaymentIntent(order_id=str(order.id), intent_id=intent.intent_id, gateway_status=intent.status),
        asynchronous=False,
    )
    logger.info("Payment intent created", order_id=str(order.id), intent_id=intent.intent_id, amount=order.pricing.total)
    return _intent_envelope(order, intent)


def confirm_payment_intent(order_id, caller, payment_method_id, gateway: PaymentGateway | None = None) -> dict:
    """Submit a payment method against the order's current intent.

    ``requires_action`` is reported back with its next-action payload; a
    success completes the payment right away and a decline records the
    failure before the rejection is re-raised to the caller.
    """
    gateway = gateway or get_gateway()
    order = load_order_for(order_id, caller)
    if not order.payment_intent_id:
        raise ValidationError({"payment_intent_id": ["Create a payment intent before confirming it"]})

    try:
        intent = gateway.confirm_intent(order.payment_intent_id, payment_method_id)
    except GatewayRejected as exc:
        current_domain.process(
            RecordConfirmation(order_id=str(order.id), gateway_status="failed", detail=exc.message),
            asynchronous=False,
        )
        current_domain.process(
            RecordPaymentFailure(
                order_id=str(order.id),
                failure_code=exc.code,
                failure_reason=exc.message,
                retryable=exc.retryable,
            ),
            asynchronous=False,
        )
        logger.info("Payment declined", order_id=str(order.id), code=exc.code)
        raise

    current_domain.process(
        RecordConfirmation(order_id=str(order.id), gateway_status=intent.status, detail=intent.failure_reason),
        asynchronous=False,
    )
    if intent.status == "succeeded":
        current_domain.process(
            RecordPaymentSuccess(order_id=str(order.id), transaction_id=intent.intent_id, amount=order.pricing.total),
            asynchronous=False,
        )
    elif intent.status == "requires_action":
        current_domain.process(
            RecordActionRequired(
                order_id=str(order.id),
                next_action=json.dumps(intent.next_action or {}),
                client_secret=intent.client_secret,
            ),
            asynchronous=False,
        )

    return {
        "status": intent.status,
        "payment_intent_id": intent.intent_id,
        "requires_action": intent.status == "requires_action",
        "next_action": intent.next_action,
        "client_secret": intent.client_secret,
    }


def retry_payment(order_id, caller, gateway: PaymentGateway | None = None) -> dict:
    """Replace a failed or cancelled intent with a brand-new one."""
    gateway = gateway or get_gateway()
    order = load_order_for(order_id, caller)
    order.assert_retryable()

    intent = _new_intent(order, gateway)
    current_domain.process(
        RetryPayment(order_id=str(order.id), new_intent_id=intent.intent_id, gateway_status=intent.status),
        asynchronous=False,
    )
    logger.info("Payment retried", order_id=str(order.id), intent_id=intent.intent_id)
    return _intent_envelope(order, intent)
