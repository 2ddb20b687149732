"""FastAPI endpoints for payments."""

import os

from fastapi import APIRouter, Depends, Header, Request

from shoestore.errors import Forbidden, StoreError
from shoestore.identity.api.dependencies import current_customer, staff_member
from shoestore.identity.customer.customer import Customer
from shoestore.ordering.order.lifecycle import load_order_for
from shoestore.ordering.order.order import Order
from shoestore.payments.api.schemas import (
    ConfigureGatewayRequest,
    ConfirmIntentRequest,
    ConfirmIntentResponse,
    CreateIntentRequest,
    GatewayConfigResponse,
    IntentResponse,
    PaymentAttemptSchema,
    PaymentResponse,
    RefundRequest,
    RefundSchema,
    WebhookResponse,
)
from shoestore.payments.gateway import get_gateway
from shoestore.payments.gateway.fake_adapter import FakeGateway
from shoestore.payments.payment.intent import confirm_payment_intent, create_payment_intent, retry_payment
from shoestore.payments.payment.refund import refund_payment
from shoestore.payments.payment.webhook import process_webhook

payment_router = APIRouter(prefix="/payments", tags=["payments"])


def payment_response(order: Order) -> PaymentResponse:
    payment = order.payment
    return PaymentResponse(
        order_id=str(order.id),
        order_number=order.order_number,
        order_status=order.status,
        status=order.payment_status,
        method=payment.method if payment else None,
        payment_intent_id=order.payment_intent_id,
        transaction_id=payment.transaction_id if payment else None,
        failure_code=payment.failure_code if payment else None,
        failure_reason=payment.failure_reason if payment else None,
        paid_at=payment.paid_at if payment else None,
        amount=order.pricing.total,
        currency=order.pricing.currency,
        refunded_amount=(payment.refunded_amount or 0.0) if payment else 0.0,
        refundable_amount=order.refundable_amount,
        attempts=[
            PaymentAttemptSchema(
                intent_id=a.intent_id,
                action=a.action,
                status=a.status,
                amount=a.amount,
                detail=a.detail,
                attempted_at=a.attempted_at,
            )
            for a in sorted(order.payment_attempts, key=lambda a: a.attempted_at)
        ],
        refunds=[
            RefundSchema(refund_id=r.refund_id, amount=r.amount, reason=r.reason, refunded_at=r.refunded_at)
            for r in order.refunds
        ],
    )


@payment_router.post("/create-intent", response_model=IntentResponse)
async def create_intent(body: CreateIntentRequest, customer: Customer = Depends(current_customer)) -> IntentResponse:
    """Open a payment intent for one of the caller's orders."""
    return IntentResponse(**create_payment_intent(body.order_id, customer))


@payment_router.post("/confirm-intent", response_model=ConfirmIntentResponse)
async def confirm_intent(
    body: ConfirmIntentRequest,
    customer: Customer = Depends(current_customer),
) -> ConfirmIntentResponse:
    return ConfirmIntentResponse(**confirm_payment_intent(body.order_id, customer, body.payment_method_id))


@payment_router.post("/webhook", response_model=WebhookResponse)
async def webhook(request: Request, stripe_signature: str = Header(default="")) -> WebhookResponse:
    """Gateway callback. The signature is checked against the raw, unparsed body."""
    payload = await request.body()
    process_webhook(payload, stripe_signature)
    return WebhookResponse(received=True)


@payment_router.post("/{order_id}/refund", response_model=PaymentResponse)
async def refund(order_id: str, body: RefundRequest, staff: Customer = Depends(staff_member)) -> PaymentResponse:
    order = refund_payment(order_id, staff, amount=body.amount, reason=body.reason)
    return payment_response(order)


@payment_router.post("/{order_id}/retry", response_model=IntentResponse)
async def retry(order_id: str, customer: Customer = Depends(current_customer)) -> IntentResponse:
    """Start over with a new intent after a failed or cancelled payment."""
    return IntentResponse(**retry_payment(order_id, customer))


@payment_router.get("/{order_id}", response_model=PaymentResponse)
async def payment_status(order_id: str, customer: Customer = Depends(current_customer)) -> PaymentResponse:
    return payment_response(load_order_for(order_id, customer))


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
async def configure_gateway(
    body: ConfigureGatewayRequest,
    staff: Customer = Depends(staff_member),
) -> GatewayConfigResponse:
    """Switch the fake gateway's behaviour for manual testing (never in production)."""
    if os.environ.get("PROTEAN_ENV") == "production":
        raise Forbidden("Gateway configuration is not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise StoreError("Gateway configuration is only available for the fake gateway")

    gateway.configure(body.outcome, failure_code=body.failure_code, failure_reason=body.failure_reason)
    return GatewayConfigResponse(gateway=type(gateway).__name__, outcome=gateway.outcome)
