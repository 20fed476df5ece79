"""
Amount Handling Module

Coerces caller input into Decimal amounts in whole cents. The ledger is
single-denomination, so amounts are plain Decimals. NEVER uses float for
monetary values.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, getcontext
from typing import Optional, Union

# Set global decimal context for financial precision
getcontext().prec = 28

AMOUNT_PRECISION = 2
CENT = Decimal('0.1') ** AMOUNT_PRECISION
ZERO = Decimal('0').quantize(CENT)

AmountLike = Union[Decimal, int, str, float]


def quantize(amount: Decimal) -> Decimal:
    """Round an amount to cents"""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_amount(value: AmountLike) -> Optional[Decimal]:
    """
    Convert caller input into a Decimal with exactly two places

    Floats go through str() so 0.1 becomes Decimal('0.10') rather than its
    binary expansion. Input finer than a cent is rejected, never rounded.

    Returns:
        Decimal in cents, or None if the value is not a finite number or
        carries sub-cent digits
    """
    if isinstance(value, bool):
        return None
    if not isinstance(value, Decimal):
        try:
            value = Decimal(str(value))
        except (InvalidOperation, ValueError):
            return None
    if not value.is_finite():
        return None
    try:
        amount = quantize(value)
    except InvalidOperation:
        # More digits than the context precision holds
        return None
    if amount != value:
        return None
    return amount


def to_positive_amount(value: AmountLike) -> Optional[Decimal]:
    """Like to_amount, but None unless the amount is strictly positive"""
    amount = to_amount(value)
    if amount is None or amount <= ZERO:
        return None
    return amount


def format_amount(amount: Decimal) -> str:
    """Format for display and logs"""
    return f"{quantize(amount):,.{AMOUNT_PRECISION}f}"
