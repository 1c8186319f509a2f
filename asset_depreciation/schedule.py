"""
Schedule Projector.

Walks the monthly calculator forward from the depreciation start date to
answer "what will this asset's book value be in month N" without touching
persisted state.  A pure function of its input: calling it twice with the
same state yields the same tuple.
"""

from __future__ import annotations

from decimal import Decimal

from asset_kernel.logging_config import get_logger
from asset_depreciation.calculator import compute_period
from asset_depreciation.config import FULLY_DEPRECIATED_EPSILON, MAX_SCHEDULE_PERIODS
from asset_depreciation.models import AssetDepreciationState, PeriodResult
from asset_depreciation.periods import next_month_start

logger = get_logger("depreciation.schedule")


def project(
    state: AssetDepreciationState,
    max_periods: int = MAX_SCHEDULE_PERIODS,
    *,
    epsilon: Decimal = FULLY_DEPRECIATED_EPSILON,
) -> tuple[PeriodResult, ...]:
    """
    Project every remaining period from ``state.depreciation_start_date``.

    Accumulated depreciation is carried forward from ``state``; each step
    feeds the rounded ``new_accumulated`` of the previous period into the
    next, exactly as posting would.  Stops when the calculator returns
    None, the asset becomes fully depreciated, or ``max_periods`` is hit.
    """
    periods: list[PeriodResult] = []
    current = state
    as_of = state.depreciation_start_date

    while len(periods) < max_periods:
        result = compute_period(current, as_of, epsilon=epsilon)
        if result is None:
            break
        periods.append(result)
        if result.is_fully_depreciated:
            break
        current = current.with_accumulated(result.new_accumulated)
        as_of = next_month_start(as_of)
    else:
        logger.warning(
            "schedule_projection_truncated",
            extra={
                "max_periods": max_periods,
                "start_date": state.depreciation_start_date,
                "accumulated_after": str(current.accumulated_depreciation),
            },
        )

    return tuple(periods)
