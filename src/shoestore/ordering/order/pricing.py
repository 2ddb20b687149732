"""Order pricing: subtotal, shipping, tax and total.

Rates come from the ``[custom]`` table of the domain config so they can be
changed per environment; the defaults below apply when a key is missing.
Every amount is rounded to cents as soon as it is computed.
"""

from dataclasses import dataclass
from enum import Enum

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain


class ShippingMethod(Enum):
    STANDARD = "standard"
    EXPRESS = "express"
    OVERNIGHT = "overnight"


DEFAULT_SHIPPING_RATES = {
    ShippingMethod.STANDARD.value: 5.99,
    ShippingMethod.EXPRESS.value: 12.99,
    ShippingMethod.OVERNIGHT.value: 24.99,
}
DEFAULT_TAX_RATE = 0.08
DEFAULT_FREE_UNITS = 5
DEFAULT_EXTRA_UNIT_COST = 2.0


@dataclass(frozen=True)
class PricedLine:
    unit_price: float
    quantity: int

    @property
    def total(self) -> float:
        return round(self.unit_price * self.quantity, 2)


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: float
    shipping_cost: float
    tax: float
    discount: float
    total: float


def _settings() -> dict:
    return current_domain.config.get("custom", {}) or {}


def shipping_cost(units: int, method: str) -> float:
    """Flat rate per method plus a surcharge for every pair beyond the free allowance."""
    settings = _settings()
    rates = {**DEFAULT_SHIPPING_RATES, **(settings.get("shipping_rates") or {})}
    if method not in rates:
        raise ValidationError({"shipping_method": [f"Unknown shipping method {method}"]})

    free_units = settings.get("free_units_per_shipment", DEFAULT_FREE_UNITS)
    extra_cost = settings.get("extra_unit_shipping_cost", DEFAULT_EXTRA_UNIT_COST)
    surcharge = max(0, units - free_units) * extra_cost
    return round(rates[method] + surcharge, 2)


def tax_for(subtotal: float) -> float:
    rate = _settings().get("tax_rate", DEFAULT_TAX_RATE)
    return round(subtotal * rate, 2)


def price_order(lines: list[PricedLine], method: str, discount: float = 0.0) -> PriceBreakdown:
    subtotal = round(sum(line.total for line in lines), 2)
    units = sum(line.quantity for line in lines)
    shipping = shipping_cost(units, method)
    tax = tax_for(subtotal)
    discount = round(min(max(discount, 0.0), subtotal), 2)
    total = round(subtotal + shipping + tax - discount, 2)
    return PriceBreakdown(
        subtotal=subtotal,
        shipping_cost=shipping,
        tax=tax,
        discount=discount,
        total=total,
    )
