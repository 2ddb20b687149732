"""Pydantic request/response schemas for the notifications API."""

from datetime import datetime

from pydantic import BaseModel


class DeliverySchema(BaseModel):
    channel: str
    status: str
    error: str | None = None
    sent_at: datetime | None = None


class NotificationResponse(BaseModel):
    notification_id: str
    notification_type: str
    title: str
    message: str
    priority: str
    data: dict = {}
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime
    deliveries: list[DeliverySchema] = []


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]
    total: int


class UnreadCountResponse(BaseModel):
    unread: int


class MarkedResponse(BaseModel):
    marked: int


class UpdatePreferencesRequest(BaseModel):
    email: bool | None = None
    push: bool | None = None
    sms: bool | None = None
    realtime: bool | None = None


class SubscriptionChangeRequest(BaseModel):
    notification_type: str


class PreferencesResponse(BaseModel):
    email: bool
    push: bool
    sms: bool
    realtime: bool
    in_app: bool = True
    unsubscribed_types: list[str] = []
