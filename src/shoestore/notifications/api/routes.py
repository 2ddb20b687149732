"""FastAPI endpoints for the caller's inbox, preferences and live notification stream."""

import asyncio
import json

from fastapi import APIRouter, Depends, WebSocket, status
from protean.utils.globals import current_domain

from shoestore.domain import shoestore
from shoestore.errors import Forbidden
from shoestore.identity.api.dependencies import current_customer, resolve_customer
from shoestore.identity.customer.customer import Customer
from shoestore.notifications.api.schemas import (
    DeliverySchema,
    MarkedResponse,
    NotificationListResponse,
    NotificationResponse,
    PreferencesResponse,
    SubscriptionChangeRequest,
    UnreadCountResponse,
    UpdatePreferencesRequest,
)
from shoestore.notifications.channel import get_channel
from shoestore.notifications.channel.realtime import WebSocketConnection
from shoestore.notifications.notification.inbox import (
    MarkAllNotificationsRead,
    MarkNotificationRead,
    inbox,
    unread_count,
)
from shoestore.notifications.notification.notification import Notification
from shoestore.notifications.preference.management import (
    ResubscribeToType,
    UnsubscribeFromType,
    UpdatePreferences,
    preferences_for,
)
from shoestore.notifications.preference.preference import NotificationPreference

notification_router = APIRouter(prefix="/notifications", tags=["notifications"])


def _to_response(notification: Notification) -> NotificationResponse:
    return NotificationResponse(
        notification_id=str(notification.id),
        notification_type=notification.notification_type,
        title=notification.title,
        message=notification.message,
        priority=notification.priority,
        data=notification.payload,
        is_read=notification.is_read,
        read_at=notification.read_at,
        created_at=notification.created_at,
        deliveries=[
            DeliverySchema(channel=d.channel, status=d.status, error=d.error, sent_at=d.sent_at)
            for d in notification.deliveries
        ],
    )


def _preferences_response(customer: Customer) -> PreferencesResponse:
    preference = preferences_for(customer.id) or NotificationPreference.create_default(customer.id)
    return PreferencesResponse(
        email=preference.email_enabled,
        push=preference.push_enabled,
        sms=preference.sms_enabled,
        realtime=preference.realtime_enabled,
        unsubscribed_types=json.loads(preference.unsubscribed_types or "[]"),
    )


@notification_router.get("", response_model=NotificationListResponse)
async def list_notifications(
    unread_only: bool = False,
    customer: Customer = Depends(current_customer),
) -> NotificationListResponse:
    """The caller's notifications, newest first."""
    items = inbox(customer.id, unread_only=unread_only)
    return NotificationListResponse(notifications=[_to_response(n) for n in items], total=len(items))


@notification_router.get("/unread-count", response_model=UnreadCountResponse)
async def count_unread(customer: Customer = Depends(current_customer)) -> UnreadCountResponse:
    return UnreadCountResponse(unread=unread_count(customer.id))


@notification_router.put("/read-all", response_model=MarkedResponse)
async def mark_all_read(customer: Customer = Depends(current_customer)) -> MarkedResponse:
    marked = current_domain.process(MarkAllNotificationsRead(recipient_id=str(customer.id)), asynchronous=False)
    return MarkedResponse(marked=marked or 0)


@notification_router.put("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(notification_id: str, customer: Customer = Depends(current_customer)) -> NotificationResponse:
    current_domain.process(
        MarkNotificationRead(notification_id=notification_id, reader_id=str(customer.id)),
        asynchronous=False,
    )
    return _to_response(current_domain.repository_for(Notification).get(notification_id))


@notification_router.get("/preferences", response_model=PreferencesResponse)
async def get_preferences(customer: Customer = Depends(current_customer)) -> PreferencesResponse:
    return _preferences_response(customer)


@notification_router.put("/preferences", response_model=PreferencesResponse)
async def update_preferences(
    body: UpdatePreferencesRequest,
    customer: Customer = Depends(current_customer),
) -> PreferencesResponse:
    current_domain.process(
        UpdatePreferences(customer_id=str(customer.id), **body.model_dump()),
        asynchronous=False,
    )
    return _preferences_response(customer)


@notification_router.post("/preferences/unsubscribe", response_model=PreferencesResponse)
async def unsubscribe(
    body: SubscriptionChangeRequest,
    customer: Customer = Depends(current_customer),
) -> PreferencesResponse:
    current_domain.process(
        UnsubscribeFromType(customer_id=str(customer.id), notification_type=body.notification_type),
        asynchronous=False,
    )
    return _preferences_response(customer)


@notification_router.post("/preferences/resubscribe", response_model=PreferencesResponse)
async def resubscribe(
    body: SubscriptionChangeRequest,
    customer: Customer = Depends(current_customer),
) -> PreferencesResponse:
    current_domain.process(
        ResubscribeToType(customer_id=str(customer.id), notification_type=body.notification_type),
        asynchronous=False,
    )
    return _preferences_response(customer)


@notification_router.websocket("/stream")
async def notification_stream(websocket: WebSocket) -> None:
    """Live notifications for the caller, one JSON message per notification."""
    # HTTP middleware does not run for sockets
    with shoestore.domain_context():
        try:
            customer = resolve_customer(websocket.headers.get("x-user-id", ""))
        except Forbidden:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

    registry = get_channel("realtime")
    connection = WebSocketConnection(asyncio.get_running_loop())
    registry.register(customer.id, connection)
    try:
        await websocket.accept()
        await connection.pump(websocket)
    finally:
        registry.deregister(customer.id, connection)
