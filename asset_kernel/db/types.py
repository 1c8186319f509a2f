"""
Module: asset_kernel.db.types
Responsibility: Money precision constants and the single sanctioned rounding
    function for currency outputs.
Architecture position: Kernel > DB.  May be imported by every other layer.

Invariants enforced:
    - No floats anywhere.  All monetary amounts are Decimal.
    - round_money() is the ONLY rounding function applied to currency outputs,
      and it is applied at the point of output, never mid-calculation.
"""

from decimal import Decimal, ROUND_HALF_UP

# Currency outputs: 2 decimal places, half-up
CURRENCY_DECIMAL_PLACES = 2
DEFAULT_ROUNDING = ROUND_HALF_UP

ZERO = Decimal("0")


def round_money(
    value: Decimal,
    decimal_places: int = CURRENCY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to the given decimal places (half-up by default).

    Example:
        round_money(Decimal("10.555")) -> Decimal("10.56")
    """
    quantum = Decimal(1).scaleb(-decimal_places)
    return value.quantize(quantum, rounding=rounding)
