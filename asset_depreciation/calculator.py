"""
Monthly Depreciation Calculator (``asset_depreciation.calculator``).

Responsibility
--------------
Pure straight-line depreciation for one calendar month of one asset, plus
the point-in-time summary shown next to an asset's schedule.

Architecture position
---------------------
**Calculation layer** -- pure functions.  No I/O, no session, no clock,
no database access.  Called by ``DepreciationService``, the schedule
projector, and tests.

Invariants enforced
-------------------
* All numeric inputs and outputs use ``Decimal`` -- NEVER ``float``.
* Intermediate math stays at full precision; currency outputs are rounded
  with ``round_money`` (2 dp, half-up) at the point of output only.
* The period amount is capped at the remaining depreciable amount, so net
  book value never drops below salvage value.

Failure modes
-------------
* Non-positive cost, useful life, or depreciable amount -> ``None``.
* Depreciation start date after the period's last day -> ``None``.
* Nothing left to depreciate -> ``None``.
"""

from __future__ import annotations

import math
from datetime import date
from decimal import Decimal

from asset_kernel.db.types import ZERO, round_money
from asset_depreciation.config import FULLY_DEPRECIATED_EPSILON
from asset_depreciation.models import (
    AssetDepreciationState,
    DepreciationSummary,
    PeriodResult,
)
from asset_depreciation.periods import days_in_month, month_end, month_start

_ONE = Decimal("1")
_HUNDRED = Decimal("100")


def _is_depreciable(state: AssetDepreciationState) -> bool:
    return (
        state.acquisition_cost > 0
        and state.useful_life_months > 0
        and state.depreciable_amount > 0
    )


def monthly_amount(state: AssetDepreciationState) -> Decimal:
    """Full-month straight-line amount at full precision (0 when undefined)."""
    if state.useful_life_months <= 0 or state.depreciable_amount <= 0:
        return ZERO
    return state.depreciable_amount / Decimal(state.useful_life_months)


def pro_rata_factor(start: date, period_start: date, period_end: date) -> Decimal:
    """
    Fraction of the period the asset was in service.

    A start strictly inside the period counts the start day itself:
    starting on the 16th of a 30-day month gives 15/30.
    """
    if period_start < start <= period_end:
        total_days = days_in_month(period_start)
        return Decimal(total_days - start.day + 1) / Decimal(total_days)
    return _ONE


def compute_period(
    state: AssetDepreciationState,
    as_of: date,
    *,
    epsilon: Decimal = FULLY_DEPRECIATED_EPSILON,
) -> PeriodResult | None:
    """
    Depreciation for the calendar month containing ``as_of``.

    Preconditions:
        - ``state`` carries resolved salvage value and useful life.
    Postconditions:
        - ``amount`` <= remaining depreciable amount.
        - ``new_accumulated`` = accumulated + amount, rounded to 0.01.
        - ``is_fully_depreciated`` once new accumulated reaches the
          depreciable amount less ``epsilon``.
        - ``pro_rata_factor`` is returned unrounded.
    """
    if not _is_depreciable(state):
        return None

    depreciable = state.depreciable_amount
    monthly = depreciable / Decimal(state.useful_life_months)

    period_start = month_start(as_of)
    period_end = month_end(as_of)

    start = state.depreciation_start_date
    if start > period_end:
        return None
    factor = pro_rata_factor(start, period_start, period_end)

    remaining = depreciable - state.accumulated_depreciation
    if remaining <= 0:
        return None

    amount = min(monthly * factor, remaining)
    new_accumulated = state.accumulated_depreciation + amount

    return PeriodResult(
        amount=round_money(amount),
        period_start=period_start,
        period_end=period_end,
        new_accumulated=round_money(new_accumulated),
        new_net_book_value=round_money(state.acquisition_cost - new_accumulated),
        is_fully_depreciated=new_accumulated >= depreciable - epsilon,
        pro_rata_factor=factor,
    )


def summarize(
    state: AssetDepreciationState,
    *,
    epsilon: Decimal = FULLY_DEPRECIATED_EPSILON,
) -> DepreciationSummary:
    """Point-in-time depreciation position of an asset."""
    depreciable = max(ZERO, state.depreciable_amount)
    monthly = monthly_amount(state)
    accumulated = state.accumulated_depreciation
    remaining = depreciable - accumulated

    if monthly > 0 and remaining > 0:
        remaining_months = math.ceil(remaining / monthly)
    else:
        remaining_months = 0

    if depreciable > 0:
        percent = accumulated / depreciable * _HUNDRED
    else:
        percent = ZERO

    return DepreciationSummary(
        acquisition_cost=round_money(state.acquisition_cost),
        salvage_value=round_money(state.salvage_value),
        depreciable_amount=round_money(depreciable),
        useful_life_months=state.useful_life_months,
        monthly_depreciation=round_money(monthly),
        annual_depreciation=round_money(monthly * 12),
        accumulated_depreciation=round_money(accumulated),
        net_book_value=round_money(state.acquisition_cost - accumulated),
        remaining_months=remaining_months,
        percent_depreciated=round_money(percent),
        is_fully_depreciated=remaining <= epsilon,
    )


def months_elapsed(start: date, end: date) -> int:
    """Whole calendar months from ``start`` to ``end`` (negative if reversed)."""
    return (end.year - start.year) * 12 + (end.month - start.month)


def is_period_already_processed(
    period_end: date,
    last_period_end: date | None,
) -> bool:
    """True when the month of ``period_end`` is on or before the last posted month."""
    if last_period_end is None:
        return False
    return (last_period_end.year, last_period_end.month) >= (
        period_end.year,
        period_end.month,
    )
