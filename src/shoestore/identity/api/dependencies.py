"""FastAPI dependencies that resolve the calling customer.

Authentication happens upstream; by the time a request reaches the store the
gateway has put the authenticated customer id in ``X-User-Id``.
"""

from fastapi import Depends, Header
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from shoestore.errors import Forbidden
from shoestore.identity.customer.customer import Customer
from shoestore.utils.logging import add_context


def resolve_customer(user_id: str) -> Customer:
    """Load the active customer behind ``user_id`` or raise Forbidden."""
    if not user_id:
        raise Forbidden("Authentication required")
    try:
        customer = current_domain.repository_for(Customer).get(user_id)
    except ObjectNotFoundError as exc:
        raise Forbidden("Authentication required") from exc
    if not customer.is_active:
        raise Forbidden("Account is disabled")
    return customer


async def current_customer(x_user_id: str = Header(default="")) -> Customer:
    customer = resolve_customer(x_user_id)
    add_context(user_id=str(customer.id))
    return customer


async def staff_member(customer: Customer = Depends(current_customer)) -> Customer:
    if not customer.is_staff:
        raise Forbidden("Staff or admin role required")
    return customer
