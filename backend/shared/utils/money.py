"""
Money helpers.

Amounts are Decimal end to end. Rounding to cents happens only when a
value leaves the service (API responses, CLI output).
"""

from decimal import Decimal, ROUND_HALF_UP

from shared.config.settings import settings

CENT = Decimal("0.01")
ZERO = Decimal("0")


def round_money(amount: Decimal) -> Decimal:
    """Round half up to 2 decimal places."""
    return Decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)


def compute_vat(subtotal: Decimal) -> Decimal:
    """VAT on a subtotal at the configured rate, unrounded."""
    return subtotal * settings.vat_rate


def money_equal(a: Decimal, b: Decimal) -> bool:
    """True when two amounts differ by less than the configured epsilon."""
    return abs(Decimal(a) - Decimal(b)) < settings.money_epsilon
