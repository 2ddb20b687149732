"""Customer aggregate (CQRS): a shopper or a member of staff.

Holds what the order, payment and notification workflows need to know about
a person: contact details, role, the payment gateway's customer id and the
browser push subscription used for web push.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, String, ValueObject

from shoestore.domain import shoestore
from shoestore.identity.customer.events import (
    CustomerRegistered,
    GatewayCustomerLinked,
    PushSubscriptionCleared,
    PushSubscriptionSet,
)


class Role(Enum):
    CUSTOMER = "customer"
    STAFF = "staff"
    ADMIN = "admin"


STAFF_ROLES = (Role.STAFF.value, Role.ADMIN.value)


@shoestore.value_object(part_of="Customer")
class PushSubscription:
    """A browser's web-push endpoint and its encryption keys."""

    endpoint = String(required=True, max_length=1000)
    p256dh = String(required=True, max_length=255)
    auth = String(required=True, max_length=255)


@shoestore.aggregate
class Customer:
    email = String(required=True, max_length=254)
    first_name = String(required=True, max_length=100)
    last_name = String(required=True, max_length=100)
    phone = String(max_length=30)
    role = String(choices=Role, default=Role.CUSTOMER.value)
    is_active = Boolean(default=True)
    gateway_customer_id = String(max_length=255)
    push_subscription = ValueObject(PushSubscription)
    registered_at = DateTime()

    @classmethod
    def register(cls, email, first_name, last_name, phone=None, role=Role.CUSTOMER.value):
        if "@" not in (email or ""):
            raise ValidationError({"email": ["A valid email address is required"]})

        now = datetime.now(UTC)
        customer = cls(
            email=email.strip().lower(),
            first_name=first_name,
            last_name=last_name,
            phone=phone,
            role=role,
            is_active=True,
            registered_at=now,
        )
        customer.raise_(
            CustomerRegistered(
                customer_id=customer.id,
                email=customer.email,
                role=role,
                registered_at=now,
            )
        )
        return customer

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    def link_gateway_customer(self, gateway_customer_id):
        """Remember the gateway's id for this customer. Linking twice keeps the first id."""
        if self.gateway_customer_id:
            return False
        self.gateway_customer_id = gateway_customer_id
        self.raise_(
            GatewayCustomerLinked(
                customer_id=self.id,
                gateway_customer_id=gateway_customer_id,
            )
        )
        return True

    def set_push_subscription(self, endpoint, p256dh, auth):
        self.push_subscription = PushSubscription(endpoint=endpoint, p256dh=p256dh, auth=auth)
        self.raise_(PushSubscriptionSet(customer_id=self.id, endpoint=endpoint))

    def clear_push_subscription(self, reason="unsubscribed"):
        if self.push_subscription is None:
            return
        endpoint = self.push_subscription.endpoint
        self.push_subscription = None
        self.raise_(PushSubscriptionCleared(customer_id=self.id, endpoint=endpoint, reason=reason))
