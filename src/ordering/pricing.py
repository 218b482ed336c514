"""Order totals calculator.

Pure functions, no I/O. All arithmetic is done in ``Decimal`` and every
intermediate amount (line total, subtotal, tax, shipping, total) is
rounded half away from zero (``ROUND_HALF_UP``) to cents, so recomputing
the same items always yields the same figures to the penny.
"""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value) -> Decimal:
    """Convert an int, float, str or Decimal to a 2-place Decimal."""
    if not isinstance(value, Decimal):
        # str() keeps 0.1 as 0.1 instead of its binary expansion
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricingPolicy:
    tax_rate: Decimal = Decimal("0.10")
    free_shipping_threshold: Decimal = Decimal("100.00")
    flat_shipping_fee: Decimal = Decimal("10.00")

    def __post_init__(self):
        if self.tax_rate < 0:
            raise ValueError("tax_rate must not be negative")
        if self.flat_shipping_fee < 0:
            raise ValueError("flat_shipping_fee must not be negative")


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    tax: Decimal
    shipping: Decimal
    total: Decimal

    def as_floats(self) -> dict:
        return {
            "sub_total": float(self.subtotal),
            "tax_amount": float(self.tax),
            "shipping_cost": float(self.shipping),
            "total_amount": float(self.total),
        }


def _field(item, name, default=None):
    if isinstance(item, Mapping):
        return item.get(name, default)
    return getattr(item, name, default)


def line_total(quantity: int, unit_price, discount=0) -> Decimal:
    """quantity x unit_price less the line discount, never below zero."""
    gross = to_money(Decimal(quantity) * to_money(unit_price))
    net = gross - to_money(discount or 0)
    return max(net, ZERO)


def shipping_for(subtotal: Decimal, policy: PricingPolicy) -> Decimal:
    """Free above the threshold; a subtotal exactly at the threshold pays the fee."""
    if subtotal > policy.free_shipping_threshold:
        return ZERO
    return to_money(policy.flat_shipping_fee)


def compute_totals(items: Iterable, policy: PricingPolicy | None = None) -> Totals:
    """Compute subtotal, tax, shipping and total for order lines.

    ``items`` may be mappings or objects exposing ``quantity`` and
    ``unit_price`` (and optionally ``discount``).
    """
    policy = policy or PricingPolicy()

    subtotal = ZERO
    for item in items:
        subtotal += line_total(_field(item, "quantity"), _field(item, "unit_price"), _field(item, "discount", 0))
    subtotal = to_money(subtotal)

    tax = to_money(subtotal * policy.tax_rate)
    shipping = shipping_for(subtotal, policy)
    total = to_money(subtotal + tax + shipping)

    return Totals(subtotal=subtotal, tax=tax, shipping=shipping, total=total)
