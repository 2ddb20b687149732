"""Pydantic request/response schemas for the customer API."""

from typing import Literal

from pydantic import BaseModel, Field


class RegisterCustomerRequest(BaseModel):
    email: str = Field(min_length=3, max_length=254)
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    phone: str | None = None


class RegisterStaffRequest(RegisterCustomerRequest):
    role: Literal["staff", "admin"] = "staff"


class PushSubscriptionKeys(BaseModel):
    p256dh: str
    auth: str


class PushSubscriptionRequest(BaseModel):
    endpoint: str = Field(min_length=1)
    keys: PushSubscriptionKeys


class CustomerIdResponse(BaseModel):
    customer_id: str


class CustomerResponse(BaseModel):
    customer_id: str
    email: str
    first_name: str
    last_name: str
    role: str
    has_push_subscription: bool


class StatusResponse(BaseModel):
    status: str = "ok"
