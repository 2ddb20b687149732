"""Customer registration and device management: commands and handler."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from shoestore.domain import shoestore
from shoestore.identity.customer.customer import Customer, Role


@shoestore.command(part_of="Customer")
class RegisterCustomer:
    email = String(required=True, max_length=254)
    first_name = String(required=True, max_length=100)
    last_name = String(required=True, max_length=100)
    phone = String(max_length=30)
    role = String(max_length=20, default=Role.CUSTOMER.value)


@shoestore.command(part_of="Customer")
class SetPushSubscription:
    customer_id = Identifier(required=True)
    endpoint = String(required=True, max_length=1000)
    p256dh = String(required=True, max_length=255)
    auth = String(required=True, max_length=255)


@shoestore.command(part_of="Customer")
class ClearPushSubscription:
    customer_id = Identifier(required=True)
    reason = String(max_length=50, default="unsubscribed")


@shoestore.command(part_of="Customer")
class LinkGatewayCustomer:
    customer_id = Identifier(required=True)
    gateway_customer_id = String(required=True, max_length=255)


@shoestore.command_handler(part_of=Customer)
class CustomerHandler:
    @handle(RegisterCustomer)
    def register(self, command):
        repo = current_domain.repository_for(Customer)
        email = command.email.strip().lower()
        if repo._dao.query.filter(email=email).all().items:
            raise ValidationError({"email": ["A customer with this email already exists"]})

        customer = Customer.register(
            email=email,
            first_name=command.first_name,
            last_name=command.last_name,
            phone=command.phone,
            role=command.role or Role.CUSTOMER.value,
        )
        repo.add(customer)
        return str(customer.id)

    @handle(SetPushSubscription)
    def set_push_subscription(self, command):
        repo = current_domain.repository_for(Customer)
        customer = repo.get(command.customer_id)
        customer.set_push_subscription(command.endpoint, command.p256dh, command.auth)
        repo.add(customer)

    @handle(ClearPushSubscription)
    def clear_push_subscription(self, command):
        repo = current_domain.repository_for(Customer)
        customer = repo.get(command.customer_id)
        customer.clear_push_subscription(reason=command.reason or "unsubscribed")
        repo.add(customer)

    @handle(LinkGatewayCustomer)
    def link_gateway_customer(self, command):
        repo = current_domain.repository_for(Customer)
        customer = repo.get(command.customer_id)
        if customer.link_gateway_customer(command.gateway_customer_id):
            repo.add(customer)
        return customer.gateway_customer_id
