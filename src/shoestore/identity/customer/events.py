"""Domain events for the Customer aggregate."""

from protean.fields import DateTime, Identifier, String

from shoestore.domain import shoestore


@shoestore.event(part_of="Customer")
class CustomerRegistered:
    __version__ = 1

    customer_id = Identifier(required=True)
    email = String(required=True)
    role = String(required=True)
    registered_at = DateTime(required=True)


@shoestore.event(part_of="Customer")
class GatewayCustomerLinked:
    """The payment gateway now knows this customer."""

    __version__ = 1

    customer_id = Identifier(required=True)
    gateway_customer_id = String(required=True)


@shoestore.event(part_of="Customer")
class PushSubscriptionSet:
    __version__ = 1

    customer_id = Identifier(required=True)
    endpoint = String(required=True)


@shoestore.event(part_of="Customer")
class PushSubscriptionCleared:
    """The push subscription was removed by the customer or found to be gone."""

    __version__ = 1

    customer_id = Identifier(required=True)
    endpoint = String(required=True)
    reason = String()
