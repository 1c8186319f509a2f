"""
Disposal Settlement Calculator (``asset_depreciation.disposal``).

Responsibility
--------------
Day-based depreciation for the partial span between the last posted
period and a disposal date, and the gain or loss on disposal
(``proceeds - final net book value``).

Architecture position
---------------------
**Calculation layer** -- pure functions, no I/O.  Used by
``DepreciationService.settle_disposal`` and ``preview_disposal``.

Invariants enforced
-------------------
* The span is inclusive of both endpoints.
* The daily rate divides the monthly amount by a fixed average month
  length (``AVERAGE_DAYS_PER_MONTH``), not the calendar length of the
  months spanned.
* The partial amount is capped at the remaining depreciable amount.
* ``gain_or_loss`` is computed from the rounded final net book value, so
  ``gain_or_loss == proceeds - final_net_book_value`` holds exactly on
  the returned values.

Failure modes
-------------
* Invalid cost / life / depreciable amount -> ``None``.
* Remaining depreciable within epsilon of zero -> ``None``.
* ``from_date`` after ``to_date`` -> ``None``.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from asset_kernel.db.types import ZERO, round_money
from asset_depreciation.config import AVERAGE_DAYS_PER_MONTH, FULLY_DEPRECIATED_EPSILON
from asset_depreciation.models import (
    AssetDepreciationState,
    DisposalSettlement,
    PartialDepreciation,
)


def compute_partial_depreciation(
    state: AssetDepreciationState,
    from_date: date,
    to_date: date,
    *,
    days_per_month: Decimal = AVERAGE_DAYS_PER_MONTH,
    epsilon: Decimal = FULLY_DEPRECIATED_EPSILON,
) -> PartialDepreciation | None:
    """
    Depreciation for ``from_date`` through ``to_date`` inclusive.

    Preconditions:
        - ``state`` carries resolved salvage value and useful life.
    Postconditions:
        - ``days`` = (to_date - from_date) + 1.
        - ``amount`` <= remaining depreciable amount.
        - ``daily_rate`` is rounded to 0.01 for display only; ``amount`` is
          computed from the unrounded rate.
    """
    if (
        state.acquisition_cost <= 0
        or state.useful_life_months <= 0
        or state.depreciable_amount <= 0
    ):
        return None

    remaining = state.remaining_depreciable
    if remaining <= epsilon:
        return None
    if from_date > to_date:
        return None

    days = (to_date - from_date).days + 1
    monthly = state.depreciable_amount / Decimal(state.useful_life_months)
    daily_rate = monthly / days_per_month

    amount = min(daily_rate * Decimal(days), remaining)
    new_accumulated = state.accumulated_depreciation + amount

    return PartialDepreciation(
        days=days,
        amount=round_money(amount),
        new_accumulated=round_money(new_accumulated),
        new_net_book_value=round_money(state.acquisition_cost - new_accumulated),
        daily_rate=round_money(daily_rate),
        period_start=from_date,
        period_end=to_date,
    )


def disposal_gain_loss(proceeds: Decimal, net_book_value: Decimal) -> Decimal:
    """Positive = gain on disposal, negative = loss."""
    return round_money(proceeds - net_book_value)


def compute_disposal(
    state: AssetDepreciationState,
    from_date: date,
    to_date: date,
    proceeds: Decimal,
    *,
    days_per_month: Decimal = AVERAGE_DAYS_PER_MONTH,
    epsilon: Decimal = FULLY_DEPRECIATED_EPSILON,
) -> DisposalSettlement | None:
    """
    Settle a mid-period disposal on ``to_date``.

    Returns None under the same conditions as
    ``compute_partial_depreciation``.  Proceeds of zero (scrapped, donated)
    yield a loss equal to the final net book value.
    """
    partial = compute_partial_depreciation(
        state,
        from_date,
        to_date,
        days_per_month=days_per_month,
        epsilon=epsilon,
    )
    if partial is None:
        return None

    return DisposalSettlement(
        disposal_date=to_date,
        proceeds=round_money(proceeds),
        final_depreciation_amount=partial.amount,
        final_accumulated_depreciation=partial.new_accumulated,
        final_net_book_value=partial.new_net_book_value,
        gain_or_loss=disposal_gain_loss(proceeds, partial.new_net_book_value),
        days=partial.days,
        daily_rate=partial.daily_rate,
        period_start=partial.period_start,
    )


def settle_without_depreciation(
    state: AssetDepreciationState,
    disposal_date: date,
    proceeds: Decimal,
) -> DisposalSettlement:
    """
    Settlement for an asset with nothing left to depreciate on ``disposal_date``.

    Net book value stays where the ledger left it.
    """
    net_book_value = round_money(state.net_book_value)
    return DisposalSettlement(
        disposal_date=disposal_date,
        proceeds=round_money(proceeds),
        final_depreciation_amount=ZERO,
        final_accumulated_depreciation=round_money(state.accumulated_depreciation),
        final_net_book_value=net_book_value,
        gain_or_loss=disposal_gain_loss(proceeds, net_book_value),
    )
