"""Gateway outcomes applied to an order's payment: commands and handler.

Each command carries one thing the gateway told us (a confirmation, a
decline, a refund). The handler returns whether the order actually changed;
an outcome the order already reflects is a no-op and raises no event, which
keeps webhook redelivery harmless.
"""

import json

import structlog
from protean import handle
from protean.fields import Boolean, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from shoestore.domain import shoestore
from shoestore.ordering.order.order import Order

logger = structlog.get_logger(__name__)


@shoestore.command(part_of="Order")
class RecordPaymentSuccess:
    order_id = Identifier(required=True)
    transaction_id = String(max_length=255)
    amount = Float()


@shoestore.command(part_of="Order")
class RecordPaymentFailure:
    order_id = Identifier(required=True)
    failure_code = String(max_length=100)
    failure_reason = String(max_length=500)
    retryable = Boolean(default=True)


@shoestore.command(part_of="Order")
class RecordPaymentCancellation:
    order_id = Identifier(required=True)


@shoestore.command(part_of="Order")
class RecordActionRequired:
    order_id = Identifier(required=True)
    next_action = Text()  # JSON: gateway next-action payload
    client_secret = String(max_length=255)


@shoestore.command(part_of="Order")
class RecordRefund:
    order_id = Identifier(required=True)
    refund_id = String(required=True, max_length=255)
    amount = Float(required=True)
    reason = String(max_length=500)


@shoestore.command(part_of="Order")
class RecordDispute:
    order_id = Identifier(required=True)
    dispute_id = String(required=True, max_length=255)
    amount = Float(required=True)
    reason = String(max_length=255)


@shoestore.command_handler(part_of=Order)
class PaymentOutcomeHandler:
    def _apply(self, order_id, change):
        repo = current_domain.repository_for(Order)
        order = repo.get(order_id)
        changed = change(order)
        if changed:
            repo.add(order)
        return changed

    @handle(RecordPaymentSuccess)
    def record_success(self, command):
        def succeed(order):
            changed = order.mark_payment_succeeded(transaction_id=command.transaction_id, amount=command.amount)
            if changed and order.is_cancelled:
                logger.warning(
                    "Payment captured for a cancelled order, refund required",
                    order_id=str(order.id),
                    order_number=order.order_number,
                    transaction_id=command.transaction_id,
                    amount=command.amount,
                )
            return changed

        return self._apply(command.order_id, succeed)

    @handle(RecordPaymentFailure)
    def record_failure(self, command):
        return self._apply(
            command.order_id,
            lambda order: order.mark_payment_failed(
                failure_code=command.failure_code,
                failure_reason=command.failure_reason,
                retryable=command.retryable,
            ),
        )

    @handle(RecordPaymentCancellation)
    def record_cancellation(self, command):
        return self._apply(command.order_id, lambda order: order.mark_payment_cancelled())

    @handle(RecordActionRequired)
    def record_action_required(self, command):
        next_action = json.loads(command.next_action) if command.next_action else {}
        return self._apply(
            command.order_id,
            lambda order: order.request_payment_action(next_action, client_secret=command.client_secret),
        )

    @handle(RecordRefund)
    def record_refund(self, command):
        return self._apply(
            command.order_id,
            lambda order: order.record_refund(command.refund_id, command.amount, reason=command.reason),
        )

    @handle(RecordDispute)
    def record_dispute(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_dispute(command.dispute_id, command.amount, reason=command.reason)
        # Nothing on the order changes; persisting publishes the event
        repo.add(order)
        return True
