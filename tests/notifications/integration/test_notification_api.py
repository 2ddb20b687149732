"""Integration tests for the inbox, preference and live stream endpoints."""

import pytest
from fastapi import WebSocketDisconnect

from shoestore.notifications.notification.sending import notify

ORDER_DATA = {"order_id": "o-1", "order_number": "ORD-1", "item_count": 1, "total": "135.59", "currency": "USD"}


class TestInbox:
    def test_lists_own_notifications(self, client, auth, customer, register, order):
        other = register(email="bob@example.com", first_name="Bob", last_name="B")

        mine = client.get("/notifications", headers=auth(customer)).json()
        theirs = client.get("/notifications", headers=auth(other)).json()

        assert mine["total"] == 1
        assert mine["notifications"][0]["notification_type"] == "order_placed"
        assert {d["channel"] for d in mine["notifications"][0]["deliveries"]} == {"email", "in_app", "realtime"}
        assert theirs["total"] == 0

    def test_read_flow(self, client, auth, customer, order):
        assert client.get("/notifications/unread-count", headers=auth(customer)).json() == {"unread": 1}

        notification_id = client.get("/notifications", headers=auth(customer)).json()["notifications"][0][
            "notification_id"
        ]
        read = client.put(f"/notifications/{notification_id}/read", headers=auth(customer))

        assert read.status_code == 200
        assert read.json()["is_read"] is True
        assert client.get("/notifications?unread_only=true", headers=auth(customer)).json()["total"] == 0

    def test_cannot_read_someone_elses(self, client, auth, customer, register, order):
        other = register(email="bob@example.com", first_name="Bob", last_name="B")
        notification_id = client.get("/notifications", headers=auth(customer)).json()["notifications"][0][
            "notification_id"
        ]

        response = client.put(f"/notifications/{notification_id}/read", headers=auth(other))

        assert response.status_code == 403
        assert response.json()["error"]["kind"] == "Forbidden"

    def test_read_all(self, client, auth, customer, staff, order):
        client.put(f"/orders/{order.id}/status", json={"status": "confirmed"}, headers=auth(staff))

        response = client.put("/notifications/read-all", headers=auth(customer))

        assert response.json() == {"marked": 2}
        assert client.get("/notifications/unread-count", headers=auth(customer)).json() == {"unread": 0}

    def test_requires_caller(self, client):
        assert client.get("/notifications").status_code == 403


class TestPreferences:
    def test_defaults(self, client, auth, customer):
        body = client.get("/notifications/preferences", headers=auth(customer)).json()
        assert body == {
            "email": True,
            "push": True,
            "sms": False,
            "realtime": True,
            "in_app": True,
            "unsubscribed_types": [],
        }

    def test_switch_off_email(self, client, auth, customer, runner, address):
        response = client.put("/notifications/preferences", json={"email": False}, headers=auth(customer))
        assert response.json()["email"] is False

        client.post(
            "/orders",
            json={
                "items": [{"product_id": str(runner.id), "size": "10", "color": "Black", "quantity": 1}],
                "shipping_address": address,
                "shipping_method": "standard",
            },
            headers=auth(customer),
        )

        placed = client.get("/notifications", headers=auth(customer)).json()["notifications"][0]
        assert "email" not in {d["channel"] for d in placed["deliveries"]}

    def test_empty_update_is_rejected(self, client, auth, customer):
        response = client.put("/notifications/preferences", json={}, headers=auth(customer))
        assert response.status_code == 400

    def test_unsubscribe_and_resubscribe(self, client, auth, customer):
        unsubscribed = client.post(
            "/notifications/preferences/unsubscribe",
            json={"notification_type": "order_status_update"},
            headers=auth(customer),
        ).json()
        assert unsubscribed["unsubscribed_types"] == ["order_status_update"]

        resubscribed = client.post(
            "/notifications/preferences/resubscribe",
            json={"notification_type": "order_status_update"},
            headers=auth(customer),
        ).json()
        assert resubscribed["unsubscribed_types"] == []

    def test_unknown_type(self, client, auth, customer):
        response = client.post(
            "/notifications/preferences/unsubscribe",
            json={"notification_type": "birthday_card"},
            headers=auth(customer),
        )
        assert response.status_code == 400


class TestLiveStream:
    def test_connection_is_registered_while_open(self, client, auth, customer, realtime):
        with client.websocket_connect("/notifications/stream", headers=auth(customer)):
            assert realtime.is_online(customer.id) is True

        assert realtime.is_online(customer.id) is False

    def test_notifications_arrive_on_the_socket(self, client, auth, customer):
        with client.websocket_connect("/notifications/stream", headers=auth(customer)) as socket:
            notification = notify(customer.id, "order_placed", ORDER_DATA)
            message = socket.receive_json()

        assert notification.outcome_for("realtime") == "sent"
        assert message["event"] == "notification"
        assert message["data"]["type"] == "order_placed"
        assert message["data"]["data"]["order_number"] == "ORD-1"

    def test_only_the_recipient_hears_it(self, client, auth, customer, register, realtime):
        other = register(email="bob@example.com", first_name="Bob", last_name="B")

        with client.websocket_connect("/notifications/stream", headers=auth(other)):
            notification = notify(customer.id, "order_placed", ORDER_DATA)
            assert realtime.is_online(other.id) is True

        assert notification.outcome_for("realtime") == "failed"

    def test_unknown_caller_is_refused(self, client, realtime):
        with pytest.raises(WebSocketDisconnect):
            with client.websocket_connect("/notifications/stream", headers={"X-User-Id": "nobody"}):
                pass
