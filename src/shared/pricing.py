"""Pricing calculator shared by the cart preview and the checkout summary.

Pure functions only, so both views always agree and can recompute on every
render. Amounts are computed in ``Decimal`` and rounded half-up to cents
before being handed back as floats.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


@dataclass(frozen=True)
class PricingRules:
    free_shipping_threshold: float = 100.0
    flat_shipping_fee: float = 9.99
    tax_rate: float = 0.08

    @classmethod
    def from_settings(cls, settings) -> "PricingRules":
        return cls(
            free_shipping_threshold=settings.free_shipping_threshold,
            flat_shipping_fee=settings.flat_shipping_fee,
            tax_rate=settings.tax_rate,
        )


DEFAULT_RULES = PricingRules()


@dataclass(frozen=True)
class PriceBreakdown:
    subtotal: float
    shipping: float
    tax: float
    total: float


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def _shipping(subtotal: Decimal, rules: PricingRules) -> Decimal:
    if subtotal <= 0:
        return Decimal("0.00")
    if subtotal >= _money(rules.free_shipping_threshold):
        return Decimal("0.00")
    return _money(rules.flat_shipping_fee)


def _tax(subtotal: Decimal, rules: PricingRules) -> Decimal:
    return (subtotal * Decimal(str(rules.tax_rate))).quantize(CENT, rounding=ROUND_HALF_UP)


def shipping(subtotal: float, rules: PricingRules = DEFAULT_RULES) -> float:
    """Flat fee below the free-shipping threshold, free at or above it."""
    return float(_shipping(_money(subtotal), rules))


def tax(subtotal: float, rules: PricingRules = DEFAULT_RULES) -> float:
    return float(_tax(_money(subtotal), rules))


def total(subtotal: float, rules: PricingRules = DEFAULT_RULES) -> float:
    return summarize(subtotal, rules).total


def summarize(subtotal: float, rules: PricingRules = DEFAULT_RULES) -> PriceBreakdown:
    amount = _money(subtotal)
    shipping_cost = _shipping(amount, rules)
    tax_amount = _tax(amount, rules)
    return PriceBreakdown(
        subtotal=float(amount),
        shipping=float(shipping_cost),
        tax=float(tax_amount),
        total=float(amount + shipping_cost + tax_amount),
    )
