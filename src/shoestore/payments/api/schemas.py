"""Pydantic request/response schemas for the payments API."""

from datetime import datetime

from pydantic import BaseModel, Field


class CreateIntentRequest(BaseModel):
    order_id: str


class ConfirmIntentRequest(BaseModel):
    order_id: str
    payment_method_id: str

    model_config = {
        "json_schema_extra": {"examples": [{"order_id": "4f1c...", "payment_method_id": "pm_card_visa"}]}
    }


class RefundRequest(BaseModel):
    amount: float | None = Field(default=None, gt=0)
    reason: str | None = Field(default=None, max_length=500)


class ConfigureGatewayRequest(BaseModel):
    outcome: str = "succeed"  # succeed, decline, require_action, timeout
    failure_code: str | None = None
    failure_reason: str | None = None


class IntentResponse(BaseModel):
    client_secret: str | None = None
    payment_intent_id: str
    amount: float
    currency: str


class ConfirmIntentResponse(BaseModel):
    status: str
    payment_intent_id: str
    requires_action: bool = False
    next_action: dict | None = None
    client_secret: str | None = None


class WebhookResponse(BaseModel):
    received: bool = True


class PaymentAttemptSchema(BaseModel):
    intent_id: str | None = None
    action: str
    status: str
    amount: float
    detail: str | None = None
    attempted_at: datetime


class RefundSchema(BaseModel):
    refund_id: str
    amount: float
    reason: str | None = None
    refunded_at: datetime


class PaymentResponse(BaseModel):
    order_id: str
    order_number: str
    order_status: str
    status: str
    method: str | None = None
    payment_intent_id: str | None = None
    transaction_id: str | None = None
    failure_code: str | None = None
    failure_reason: str | None = None
    paid_at: datetime | None = None
    amount: float
    currency: str
    refunded_amount: float = 0.0
    refundable_amount: float = 0.0
    attempts: list[PaymentAttemptSchema] = []
    refunds: list[RefundSchema] = []


class GatewayConfigResponse(BaseModel):
    gateway: str
    outcome: str
