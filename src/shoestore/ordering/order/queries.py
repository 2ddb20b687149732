"""Read-side helpers over orders."""

from protean.utils.globals import current_domain

from shoestore.ordering.order.order import Order


def _newest_first(orders):
    return sorted(orders, key=lambda o: o.created_at, reverse=True)


def orders_for_customer(customer_id, status=None) -> list[Order]:
    filters = {"customer_id": str(customer_id)}
    if status:
        filters["status"] = status
    return _newest_first(current_domain.repository_for(Order)._dao.query.filter(**filters).all().items)


def all_orders(status=None) -> list[Order]:
    query = current_domain.repository_for(Order)._dao.query
    if status:
        query = query.filter(status=status)
    return _newest_first(query.all().items)


def find_by_intent(intent_id) -> Order | None:
    """Find the order whose current payment intent is ``intent_id``."""
    if not intent_id:
        return None
    orders = current_domain.repository_for(Order)._dao.query.filter(payment_intent_id=intent_id).all().items
    return orders[0] if orders else None
