"""FastAPI endpoints for customers."""

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from shoestore.errors import Forbidden
from shoestore.identity.api.dependencies import current_customer, staff_member
from shoestore.identity.api.schemas import (
    CustomerIdResponse,
    CustomerResponse,
    PushSubscriptionRequest,
    RegisterCustomerRequest,
    RegisterStaffRequest,
    StatusResponse,
)
from shoestore.identity.customer.customer import Customer, Role
from shoestore.identity.customer.registration import (
    ClearPushSubscription,
    RegisterCustomer,
    SetPushSubscription,
)

router = APIRouter(prefix="/customers", tags=["customers"])


def _to_response(customer: Customer) -> CustomerResponse:
    return CustomerResponse(
        customer_id=str(customer.id),
        email=customer.email,
        first_name=customer.first_name,
        last_name=customer.last_name,
        role=customer.role,
        has_push_subscription=customer.push_subscription is not None,
    )


@router.post("", status_code=201, response_model=CustomerIdResponse)
async def register_customer(body: RegisterCustomerRequest) -> CustomerIdResponse:
    command = RegisterCustomer(
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
    )
    result = current_domain.process(command, asynchronous=False)
    return CustomerIdResponse(customer_id=result)


@router.post("/staff", status_code=201, response_model=CustomerIdResponse)
async def register_staff(body: RegisterStaffRequest, caller: Customer = Depends(staff_member)) -> CustomerIdResponse:
    """Admins create staff and admin accounts."""
    if caller.role != Role.ADMIN.value:
        raise Forbidden("Admin role required")

    command = RegisterCustomer(
        email=body.email,
        first_name=body.first_name,
        last_name=body.last_name,
        phone=body.phone,
        role=body.role,
    )
    result = current_domain.process(command, asynchronous=False)
    return CustomerIdResponse(customer_id=result)


@router.get("/me", response_model=CustomerResponse)
async def me(customer: Customer = Depends(current_customer)) -> CustomerResponse:
    return _to_response(customer)


@router.put("/me/push-subscription", response_model=StatusResponse)
async def set_push_subscription(
    body: PushSubscriptionRequest,
    customer: Customer = Depends(current_customer),
) -> StatusResponse:
    command = SetPushSubscription(
        customer_id=str(customer.id),
        endpoint=body.endpoint,
        p256dh=body.keys.p256dh,
        auth=body.keys.auth,
    )
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@router.delete("/me/push-subscription", response_model=StatusResponse)
async def clear_push_subscription(customer: Customer = Depends(current_customer)) -> StatusResponse:
    current_domain.process(ClearPushSubscription(customer_id=str(customer.id)), asynchronous=False)
    return StatusResponse()
