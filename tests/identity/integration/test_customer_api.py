"""Integration tests for the customer endpoints."""

from protean.utils.globals import current_domain

from shoestore.identity.customer.customer import Customer


class TestRegistration:
    def test_register(self, client):
        response = client.post(
            "/customers",
            json={"email": "linus@example.com", "first_name": "Linus", "last_name": "T"},
        )
        assert response.status_code == 201
        customer = current_domain.repository_for(Customer).get(response.json()["customer_id"])
        assert customer.role == "customer"

    def test_duplicate_email(self, client, customer):
        response = client.post(
            "/customers",
            json={"email": customer.email.upper(), "first_name": "Ada", "last_name": "Again"},
        )
        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "ValidationError"

    def test_only_admins_create_staff(self, client, staff, admin, auth):
        body = {"email": "new@example.com", "first_name": "New", "last_name": "Hire", "role": "staff"}

        assert client.post("/customers/staff", json=body, headers=auth(staff)).status_code == 403

        response = client.post("/customers/staff", json=body, headers=auth(admin))
        assert response.status_code == 201


class TestMe:
    def test_unknown_user_is_forbidden(self, client):
        response = client.get("/customers/me", headers={"X-User-Id": "nobody"})
        assert response.status_code == 403

    def test_push_subscription_round_trip(self, client, customer, auth):
        response = client.put(
            "/customers/me/push-subscription",
            json={"endpoint": "https://push.example/sub", "keys": {"p256dh": "pk", "auth": "ak"}},
            headers=auth(customer),
        )
        assert response.status_code == 200
        assert client.get("/customers/me", headers=auth(customer)).json()["has_push_subscription"] is True

        client.delete("/customers/me/push-subscription", headers=auth(customer))
        assert client.get("/customers/me", headers=auth(customer)).json()["has_push_subscription"] is False
