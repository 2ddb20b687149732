"""Order lifecycle: cancellation and staff status updates.

Both paths can cancel an order, and a full refund can end it early. Either
way the order's reserved stock goes back, using exactly the quantities
recorded on its line items. The status change is committed first and the
stock released afterwards, so a rejected cancellation never touches stock.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from shoestore.catalogue.product.reservation import ReservedLine, StockReservation
from shoestore.domain import shoestore
from shoestore.errors import Forbidden, NotFound
from shoestore.ordering.order.order import Order, OrderStatus

logger = structlog.get_logger(__name__)


@shoestore.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(max_length=500)
    cancelled_by = String(max_length=50)
    by_staff = Boolean(default=False)


@shoestore.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    note = String(max_length=500)
    changed_by = String(max_length=50)
    tracking = Text()  # JSON: carrier, tracking_number, tracking_url


@shoestore.command_handler(part_of=Order)
class OrderLifecycleHandler:
    @handle(CancelOrder)
    def cancel(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        held_stock = order.holds_stock
        order.cancel(reason=command.reason, cancelled_by=command.cancelled_by, by_staff=command.by_staff)
        repo.add(order)
        return order.reserved_lines() if held_stock else []

    @handle(UpdateOrderStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        held_stock = order.holds_stock
        tracking = json.loads(command.tracking) if command.tracking else None
        order.update_status(command.status, note=command.note, changed_by=command.changed_by, tracking=tracking)
        repo.add(order)

        if command.status == OrderStatus.CANCELLED.value and held_stock:
            return order.reserved_lines()
        return []


def load_order(order_id) -> Order:
    try:
        return current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError as exc:
        raise NotFound(f"Order {order_id} not found", order_id=str(order_id)) from exc


def load_order_for(order_id, caller) -> Order:
    """Load an order the caller may see: their own, or any order for staff."""
    order = load_order(order_id)
    if not caller.is_staff and str(order.customer_id) != str(caller.id):
        raise Forbidden("Order belongs to another customer")
    return order


def _release(order_id, lines: list[dict], reservation: StockReservation):
    if not lines:
        return
    reservation.release(
        [
            ReservedLine(
                product_id=line["product_id"],
                variant_id=line["variant_id"],
                sku=line["sku"],
                size=line["size"],
                color=line["color"],
                quantity=line["quantity"],
                remaining=0,
            )
            for line in lines
        ]
    )
    logger.info("Released stock held by order", order_id=str(order_id), lines=len(lines))


def release_freed_stock(before: Order, reservation: StockReservation | None = None) -> Order:
    """Reload the order and put back stock it held in ``before`` but no longer holds.

    Used after payment outcomes: a full refund of an order that never shipped
    moves it to refunded, and its units go back on sale.
    """
    after = load_order(before.id)
    if before.holds_stock and not after.holds_stock:
        _release(after.id, after.reserved_lines(), reservation or StockReservation())
    return after


def cancel_order(order_id, caller, reason=None, reservation: StockReservation | None = None) -> Order:
    order = load_order_for(order_id, caller)
    command = CancelOrder(
        order_id=str(order.id),
        reason=reason,
        cancelled_by=caller.role,
        by_staff=caller.is_staff,
    )
    lines = current_domain.process(command, asynchronous=False)
    _release(order.id, lines, reservation or StockReservation())
    return load_order(order.id)


def update_order_status(
    order_id,
    caller,
    status,
    note=None,
    tracking: dict | None = None,
    reservation: StockReservation | None = None,
) -> Order:
    if not caller.is_staff:
        raise Forbidden("Staff or admin role required")

    order = load_order(order_id)
    command = UpdateOrderStatus(
        order_id=str(order.id),
        status=status,
        note=note,
        changed_by=caller.role,
        tracking=json.dumps(tracking) if tracking else None,
    )
    lines = current_domain.process(command, asynchronous=False)
    _release(order.id, lines, reservation or StockReservation())
    return load_order(order.id)
