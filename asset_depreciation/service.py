"""
Depreciation Run Orchestrator (``asset_depreciation.service``).

Responsibility
--------------
The stateful layer of the engine.  For one asset, or every eligible asset
of a tenant, decides whether a period is due, invokes the monthly
calculator, and persists the ledger record together with the asset's new
running totals.  Also owns category assignment, schedule projection,
disposal settlement, and ledger history paging.

Architecture position
---------------------
``DepreciationService`` is the public entry point.  It composes the pure
calculators (``calculator``, ``schedule``, ``disposal``), the read-only
``CategoryRegistry``, and a ``DepreciationStore`` for persistence.

Invariants enforced
-------------------
* At most one ledger record per ``(asset_id, period_end)``: a month-level
  pre-check on ``last_depreciation_period_end``, a ledger re-check right
  before the write, and the database unique constraint behind both.
* Ledger insert and asset update are one atomic unit.
* Each asset in a batch commits independently; one failure never aborts
  the batch.
* Cross-tenant lookups fail exactly like missing assets.

Failure modes
-------------
* Typed ``DepreciationEngineError``  -> ``FAILED`` result carrying the
  error's ``code`` and message; session rolled back.
* ``SQLAlchemyError``  -> ``FAILED`` result with code
  ``PERSISTENCE_FAILED``, logged with asset id and period end for replay.
* Any other exception re-raises from ``run_for_asset``; inside
  ``run_for_tenant`` it becomes a ``FAILED`` result with code
  ``UNHANDLED_EXCEPTION`` and the batch carries on.
* Expected no-ops (fully depreciated, already recorded, not started)  ->
  ``SKIPPED`` result with a reason string.
* ``assign_category``, ``get_schedule`` and ``get_ledger_records`` raise
  typed exceptions; ``assign_category`` rolls back first.

Usage::

    service = DepreciationService(session, clock=clock)
    result = service.run_for_asset(asset_id, tenant_id, as_of=date(2024, 1, 31))
    if result.is_skipped:
        print(result.reason)
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from enum import Enum
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from asset_kernel.db.types import ZERO, round_money
from asset_kernel.domain.clock import Clock, SystemClock
from asset_kernel.exceptions import (
    AssetAlreadyDisposedError,
    AssetNotFoundError,
    CategoryNotFoundError,
    DepreciationEngineError,
    DuplicateDepreciationPeriodError,
    InvalidAcquisitionCostError,
    InvalidDisposalDateError,
    InvalidDisposalProceedsError,
    InvalidSalvageValueError,
    InvalidUsefulLifeError,
    LedgerHistoryExistsError,
    NoCategoryAssignedError,
)
from asset_kernel.logging_config import LogContext, get_logger
from asset_depreciation.calculator import (
    compute_period,
    is_period_already_processed,
    summarize,
)
from asset_depreciation.categories import CategoryRegistry
from asset_depreciation.config import DepreciationConfig
from asset_depreciation.disposal import compute_disposal, settle_without_depreciation
from asset_depreciation.models import (
    Asset,
    AssetDepreciationState,
    AssetLifecycleState,
    AssetUpdate,
    CalculationType,
    CategoryAssignment,
    DepreciationCategory,
    DepreciationLedgerRecord,
    DepreciationSummary,
    DisposalDetails,
    DisposalMethod,
    DisposalSettlement,
    PeriodResult,
    ResolvedDepreciationConfig,
    lifecycle_state,
)
from asset_depreciation.periods import month_end
from asset_depreciation.schedule import project
from asset_depreciation.store import DepreciationStore, SqlDepreciationStore

logger = get_logger("depreciation.service")

PERSISTENCE_FAILED = "PERSISTENCE_FAILED"
UNHANDLED_EXCEPTION = "UNHANDLED_EXCEPTION"

SKIP_FULLY_DEPRECIATED = "Asset is fully depreciated"
SKIP_NOTHING_CALCULATED = (
    "No depreciation calculated (may not have started or fully depreciated)"
)


def already_recorded_reason(period_end: date) -> str:
    return f"Depreciation already recorded for period ending {period_end.isoformat()}"


# =============================================================================
# Result types
# =============================================================================


class RunStatus(str, Enum):
    """Outcome of one engine operation."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class DepreciationRunResult:
    """
    Result of ``run_for_asset``.

    Exactly one of the three shapes:
        SUCCESS -- ``record_id``, ``period_end``, ``amount`` and the new
                   running totals are set.
        SKIPPED -- ``reason`` says why nothing was posted.
        FAILED  -- ``error_code`` and ``reason`` describe the failure.
    """

    status: RunStatus
    asset_id: UUID
    calculation_type: CalculationType = CalculationType.SCHEDULED
    period_end: date | None = None
    record_id: UUID | None = None
    amount: Decimal | None = None
    new_accumulated: Decimal | None = None
    new_net_book_value: Decimal | None = None
    is_fully_depreciated: bool = False
    reason: str | None = None
    error_code: str | None = None

    @property
    def is_success(self) -> bool:
        return self.status == RunStatus.SUCCESS

    @property
    def is_skipped(self) -> bool:
        return self.status == RunStatus.SKIPPED

    @property
    def is_failed(self) -> bool:
        return self.status == RunStatus.FAILED

    @classmethod
    def success(
        cls,
        asset_id: UUID,
        calculation_type: CalculationType,
        record: DepreciationLedgerRecord,
        is_fully_depreciated: bool,
    ) -> DepreciationRunResult:
        return cls(
            status=RunStatus.SUCCESS,
            asset_id=asset_id,
            calculation_type=calculation_type,
            period_end=record.period_end,
            record_id=record.id,
            amount=record.depreciation_amount,
            new_accumulated=record.accumulated_amount_after,
            new_net_book_value=record.net_book_value_after,
            is_fully_depreciated=is_fully_depreciated,
        )

    @classmethod
    def skipped(
        cls,
        asset_id: UUID,
        calculation_type: CalculationType,
        reason: str,
        period_end: date | None = None,
    ) -> DepreciationRunResult:
        return cls(
            status=RunStatus.SKIPPED,
            asset_id=asset_id,
            calculation_type=calculation_type,
            period_end=period_end,
            reason=reason,
        )

    @classmethod
    def failed(
        cls,
        asset_id: UUID,
        calculation_type: CalculationType,
        error_code: str,
        reason: str,
        period_end: date | None = None,
    ) -> DepreciationRunResult:
        return cls(
            status=RunStatus.FAILED,
            asset_id=asset_id,
            calculation_type=calculation_type,
            period_end=period_end,
            error_code=error_code,
            reason=reason,
        )


@dataclass(frozen=True)
class BatchRunSummary:
    """Aggregate of a tenant-wide run.  ``total == processed + skipped + failed``."""

    tenant_id: UUID
    as_of: date
    total: int
    processed: int
    skipped: int
    failed: int
    results: tuple[DepreciationRunResult, ...] = ()

    @property
    def all_succeeded(self) -> bool:
        return self.failed == 0


@dataclass(frozen=True)
class AssetSchedule:
    """Read-only projection: current summary plus every period from the start date."""

    asset_id: UUID
    summary: DepreciationSummary
    projected_periods: tuple[PeriodResult, ...]
    lifecycle_state: AssetLifecycleState | None = None

    @property
    def total_projected(self) -> Decimal:
        return sum((p.amount for p in self.projected_periods), ZERO)


@dataclass(frozen=True)
class DisposalResult:
    """Result of ``settle_disposal`` and ``preview_disposal``."""

    status: RunStatus
    asset_id: UUID
    settlement: DisposalSettlement | None = None
    current_net_book_value: Decimal | None = None
    disposal_method: DisposalMethod | None = None
    ledger_record_id: UUID | None = None
    reason: str | None = None
    error_code: str | None = None

    @property
    def is_success(self) -> bool:
        return self.status == RunStatus.SUCCESS


@dataclass(frozen=True)
class LedgerPage:
    """One page of an asset's posted ledger."""

    records: tuple[DepreciationLedgerRecord, ...]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.records) < self.total


@dataclass(frozen=True)
class _PreparedDisposal:
    asset: Asset
    settlement: DisposalSettlement
    disposal_method: DisposalMethod


# =============================================================================
# Service
# =============================================================================


class DepreciationService:
    """
    Runs, projects, and settles straight-line depreciation.

    Contract
    --------
    * ``run_for_asset`` and ``run_for_tenant`` never raise for per-asset
      problems; they return tagged results.
    * ``settle_disposal`` and ``preview_disposal`` return ``DisposalResult``.

    Guarantees
    ----------
    * With ``auto_commit=True`` (default) every successful write is
      committed before the method returns; failures are rolled back.
    * Clock, config, store and registry are injectable for deterministic
      testing.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        config: DepreciationConfig | None = None,
        store: DepreciationStore | None = None,
        registry: CategoryRegistry | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._config = config or DepreciationConfig.with_defaults()
        self._store = store or SqlDepreciationStore(session)
        self._registry = registry or CategoryRegistry(session)
        self._auto_commit = auto_commit

    @property
    def config(self) -> DepreciationConfig:
        return self._config

    # =========================================================================
    # Transaction helpers
    # =========================================================================

    def _commit(self) -> None:
        if self._auto_commit:
            self._session.commit()

    def _rollback(self) -> None:
        if self._auto_commit:
            self._session.rollback()

    # =========================================================================
    # Single-asset run
    # =========================================================================

    def run_for_asset(
        self,
        asset_id: UUID,
        tenant_id: UUID,
        calculation_type: CalculationType = CalculationType.SCHEDULED,
        actor_id: UUID | None = None,
        as_of: date | None = None,
    ) -> DepreciationRunResult:
        """
        Post depreciation for the calendar month containing ``as_of``.

        ``as_of`` defaults to the clock's date.  Safe to call repeatedly:
        a period that is already posted comes back ``SKIPPED``.
        """
        as_of = as_of or self._clock.today()
        period_end = month_end(as_of)

        with LogContext.bind(tenant_id=tenant_id, asset_id=asset_id, actor_id=actor_id):
            logger.info(
                "depreciation_run_started",
                extra={
                    "calculation_type": calculation_type.value,
                    "as_of": as_of,
                },
            )
            t0 = time.monotonic()

            try:
                result = self._run_for_asset(
                    asset_id, tenant_id, calculation_type, actor_id, as_of,
                )
            except DepreciationEngineError as exc:
                self._rollback()
                logger.warning(
                    "depreciation_run_failed",
                    extra={
                        "error_code": exc.code,
                        "reason": str(exc),
                        "period_end": period_end,
                    },
                )
                return DepreciationRunResult.failed(
                    asset_id, calculation_type, exc.code, str(exc), period_end,
                )
            except SQLAlchemyError as exc:
                self._rollback()
                logger.exception(
                    "depreciation_run_persistence_failed",
                    extra={
                        "period_end": period_end,
                        "calculation_type": calculation_type.value,
                    },
                )
                return DepreciationRunResult.failed(
                    asset_id,
                    calculation_type,
                    PERSISTENCE_FAILED,
                    f"Persistence failure: {type(exc).__name__}: {exc}",
                    period_end,
                )
            except Exception:
                self._rollback()
                raise

            if result.is_success:
                self._commit()
                logger.info(
                    "depreciation_posted",
                    extra={
                        "record_id": str(result.record_id),
                        "period_end": result.period_end,
                        "amount": str(result.amount),
                        "accumulated_after": str(result.new_accumulated),
                        "net_book_value_after": str(result.new_net_book_value),
                        "is_fully_depreciated": result.is_fully_depreciated,
                        "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                    },
                )
            else:
                logger.info(
                    "depreciation_skipped",
                    extra={"reason": result.reason, "period_end": result.period_end},
                )
            return result

    def _run_for_asset(
        self,
        asset_id: UUID,
        tenant_id: UUID,
        calculation_type: CalculationType,
        actor_id: UUID | None,
        as_of: date,
    ) -> DepreciationRunResult:
        asset, category = self._load(asset_id, tenant_id)

        if asset.is_disposed:
            raise AssetAlreadyDisposedError(str(asset_id))
        if asset.category_id is None or category is None:
            raise NoCategoryAssignedError(str(asset_id))

        if asset.is_fully_depreciated:
            return DepreciationRunResult.skipped(
                asset_id, calculation_type, SKIP_FULLY_DEPRECIATED,
            )

        resolved = self._resolve(asset, category, fallback_start_date=as_of)

        period_end = month_end(as_of)
        if is_period_already_processed(period_end, asset.last_depreciation_period_end):
            return DepreciationRunResult.skipped(
                asset_id, calculation_type, already_recorded_reason(period_end), period_end,
            )

        period = compute_period(
            resolved.to_state(),
            as_of,
            epsilon=self._config.fully_depreciated_epsilon,
        )
        if period is None:
            return DepreciationRunResult.skipped(
                asset_id, calculation_type, SKIP_NOTHING_CALCULATED, period_end,
            )

        if self._store.find_ledger_record(asset_id, period.period_end) is not None:
            return DepreciationRunResult.skipped(
                asset_id, calculation_type,
                already_recorded_reason(period.period_end), period.period_end,
            )

        record = DepreciationLedgerRecord(
            id=uuid4(),
            tenant_id=tenant_id,
            asset_id=asset_id,
            period_start=period.period_start,
            period_end=period.period_end,
            depreciation_amount=period.amount,
            accumulated_amount_after=period.new_accumulated,
            net_book_value_after=period.new_net_book_value,
            calculation_type=calculation_type,
            calculated_at=self._clock.now(),
            calculated_by_id=actor_id,
            notes=(
                f"Pro-rata factor {period.pro_rata_factor:.4f}"
                if period.pro_rata_factor != 1
                else None
            ),
        )
        update = AssetUpdate(
            accumulated_depreciation=period.new_accumulated,
            net_book_value=period.new_net_book_value,
            last_depreciation_period_end=period.period_end,
            is_fully_depreciated=period.is_fully_depreciated,
        )

        try:
            self._store.insert_ledger_record_and_update_asset(record, update)
        except DuplicateDepreciationPeriodError:
            return DepreciationRunResult.skipped(
                asset_id, calculation_type,
                already_recorded_reason(period.period_end), period.period_end,
            )

        return DepreciationRunResult.success(
            asset_id, calculation_type, record, period.is_fully_depreciated,
        )

    # =========================================================================
    # Batch run
    # =========================================================================

    def run_for_tenant(
        self,
        tenant_id: UUID,
        as_of: date | None = None,
        calculation_type: CalculationType = CalculationType.SCHEDULED,
        actor_id: UUID | None = None,
    ) -> BatchRunSummary:
        """
        Run every eligible asset of ``tenant_id`` sequentially.

        Interrupted batches are safe to re-run: posted assets skip.
        """
        as_of = as_of or self._clock.today()
        correlation_id = str(uuid4())

        with LogContext.bind(correlation_id=correlation_id, tenant_id=tenant_id):
            asset_ids = self._store.list_eligible_assets(tenant_id)
            logger.info(
                "depreciation_batch_started",
                extra={"as_of": as_of, "asset_count": len(asset_ids)},
            )
            t0 = time.monotonic()

            results: list[DepreciationRunResult] = []
            processed = skipped = failed = 0
            for asset_id in asset_ids:
                try:
                    result = self.run_for_asset(
                        asset_id,
                        tenant_id,
                        calculation_type=calculation_type,
                        actor_id=actor_id,
                        as_of=as_of,
                    )
                except Exception as exc:
                    # run_for_asset has already rolled back
                    logger.exception(
                        "depreciation_batch_item_failed",
                        extra={"asset_id": str(asset_id), "period_end": month_end(as_of)},
                    )
                    result = DepreciationRunResult.failed(
                        asset_id,
                        calculation_type,
                        UNHANDLED_EXCEPTION,
                        f"{type(exc).__name__}: {exc}",
                        month_end(as_of),
                    )
                results.append(result)
                if result.is_success:
                    processed += 1
                elif result.is_skipped:
                    skipped += 1
                else:
                    failed += 1

            summary = BatchRunSummary(
                tenant_id=tenant_id,
                as_of=as_of,
                total=len(asset_ids),
                processed=processed,
                skipped=skipped,
                failed=failed,
                results=tuple(results),
            )
            logger.info(
                "depreciation_batch_completed",
                extra={
                    "total": summary.total,
                    "processed": summary.processed,
                    "skipped": summary.skipped,
                    "failed": summary.failed,
                    "duration_ms": round((time.monotonic() - t0) * 1000, 2),
                },
            )
        return summary

    # =========================================================================
    # Category assignment
    # =========================================================================

    def assign_category(
        self,
        asset_id: UUID,
        tenant_id: UUID,
        category_id: UUID,
        overrides: CategoryAssignment | None = None,
        actor_id: UUID | None = None,
        force: bool = False,
    ) -> Asset:
        """
        Assign ``category_id`` to an asset and reset its depreciation state.

        Accumulated depreciation returns to zero, net book value to cost,
        and the last posted period and fully-depreciated flag are cleared.
        Assets with posted ledger rows are refused unless ``force`` is set
        (or the config allows it); their existing rows stay in the ledger.
        """
        overrides = overrides or CategoryAssignment()

        with LogContext.bind(tenant_id=tenant_id, asset_id=asset_id, actor_id=actor_id):
            try:
                asset, _ = self._load(asset_id, tenant_id)
                if asset.is_disposed:
                    raise AssetAlreadyDisposedError(str(asset_id))

                category = self._registry.get_by_id(tenant_id, category_id)
                if category is None:
                    raise CategoryNotFoundError(str(category_id))

                record_count = self._store.count_ledger_records(asset_id, tenant_id)
                if record_count and not (
                    force or self._config.allow_category_reassignment_with_history
                ):
                    raise LedgerHistoryExistsError(str(asset_id), record_count)

                self._validate_overrides(asset, overrides)

                start = (
                    overrides.depreciation_start_date
                    or asset.purchase_date
                    or self._clock.today()
                )
                updated = self._store.apply_category_assignment(
                    asset_id,
                    category_id,
                    salvage_value=overrides.salvage_value,
                    custom_useful_life_months=overrides.custom_useful_life_months,
                    depreciation_start_date=start,
                    actor_id=actor_id,
                )
            except Exception:
                self._rollback()
                raise

            self._commit()
            logger.info(
                "depreciation_category_assigned",
                extra={
                    "category_id": str(category_id),
                    "category_code": category.code,
                    "depreciation_start_date": start,
                    "previous_record_count": record_count,
                    "history_reset": record_count > 0,
                },
            )
            return updated

    @staticmethod
    def _validate_overrides(asset: Asset, overrides: CategoryAssignment) -> None:
        if overrides.custom_useful_life_months is not None and (
            overrides.custom_useful_life_months <= 0
        ):
            raise InvalidUsefulLifeError(str(asset.id), overrides.custom_useful_life_months)
        salvage = overrides.salvage_value
        if salvage is not None and (salvage < 0 or salvage >= asset.acquisition_cost):
            raise InvalidSalvageValueError(
                str(asset.id), str(salvage), str(asset.acquisition_cost),
            )

    # =========================================================================
    # Schedule
    # =========================================================================

    def get_schedule(self, asset_id: UUID, tenant_id: UUID) -> AssetSchedule:
        """
        Summary of the asset's current position and its full projected ledger.

        The projection always starts from the depreciation start date with
        nothing accumulated; the summary uses the posted totals.  Nothing
        is written.
        """
        asset, category = self._load(asset_id, tenant_id)
        if asset.category_id is None or category is None:
            raise NoCategoryAssignedError(str(asset_id))

        today = self._clock.today()
        resolved = ResolvedDepreciationConfig.resolve(asset, category, today)
        epsilon = self._config.fully_depreciated_epsilon

        summary = summarize(resolved.to_state(), epsilon=epsilon)
        periods = project(
            resolved.to_state(accumulated=ZERO),
            self._config.max_schedule_periods,
            epsilon=epsilon,
        )
        logger.debug(
            "depreciation_schedule_projected",
            extra={"asset_id": str(asset_id), "period_count": len(periods)},
        )
        return AssetSchedule(
            asset_id=asset_id,
            summary=summary,
            projected_periods=periods,
            lifecycle_state=lifecycle_state(asset, today),
        )

    # =========================================================================
    # Disposal
    # =========================================================================

    def preview_disposal(
        self,
        asset_id: UUID,
        tenant_id: UUID,
        disposal_date: date,
        proceeds: Decimal,
        disposal_method: DisposalMethod = DisposalMethod.SOLD,
    ) -> DisposalResult:
        """Compute the disposal settlement without writing anything."""
        try:
            prepared = self._prepare_disposal(
                asset_id, tenant_id, disposal_date, proceeds, disposal_method,
            )
        except DepreciationEngineError as exc:
            return DisposalResult(
                status=RunStatus.FAILED,
                asset_id=asset_id,
                disposal_method=disposal_method,
                reason=str(exc),
                error_code=exc.code,
            )
        return DisposalResult(
            status=RunStatus.SUCCESS,
            asset_id=asset_id,
            settlement=prepared.settlement,
            current_net_book_value=round_money(prepared.asset.net_book_value),
            disposal_method=disposal_method,
        )

    def settle_disposal(
        self,
        asset_id: UUID,
        tenant_id: UUID,
        disposal_date: date,
        proceeds: Decimal,
        disposal_method: DisposalMethod = DisposalMethod.SOLD,
        notes: str | None = None,
        actor_id: UUID | None = None,
    ) -> DisposalResult:
        """
        Post final depreciation through ``disposal_date`` and dispose the asset.

        A ``DISPOSAL`` ledger record is written only when there is something
        left to depreciate.  The asset ends ``DISPOSED`` and flagged fully
        depreciated, so no scheduled run touches it again.
        """
        with LogContext.bind(tenant_id=tenant_id, asset_id=asset_id, actor_id=actor_id):
            logger.info(
                "asset_disposal_started",
                extra={
                    "disposal_date": disposal_date,
                    "proceeds": str(proceeds),
                    "disposal_method": disposal_method.value,
                },
            )
            try:
                prepared = self._prepare_disposal(
                    asset_id, tenant_id, disposal_date, proceeds, disposal_method,
                )
                record_id = self._write_disposal(
                    prepared, tenant_id, notes, actor_id,
                )
            except DepreciationEngineError as exc:
                self._rollback()
                logger.warning(
                    "asset_disposal_failed",
                    extra={"error_code": exc.code, "reason": str(exc)},
                )
                return DisposalResult(
                    status=RunStatus.FAILED,
                    asset_id=asset_id,
                    disposal_method=disposal_method,
                    reason=str(exc),
                    error_code=exc.code,
                )
            except SQLAlchemyError as exc:
                self._rollback()
                logger.exception(
                    "asset_disposal_persistence_failed",
                    extra={"period_end": disposal_date},
                )
                return DisposalResult(
                    status=RunStatus.FAILED,
                    asset_id=asset_id,
                    disposal_method=disposal_method,
                    reason=f"Persistence failure: {type(exc).__name__}: {exc}",
                    error_code=PERSISTENCE_FAILED,
                )
            except Exception:
                self._rollback()
                raise

            self._commit()
            settlement = prepared.settlement
            logger.info(
                "asset_disposed",
                extra={
                    "ledger_record_id": str(record_id) if record_id else None,
                    "final_depreciation_amount": str(settlement.final_depreciation_amount),
                    "final_net_book_value": str(settlement.final_net_book_value),
                    "gain_or_loss": str(settlement.gain_or_loss),
                    "is_gain": settlement.is_gain,
                },
            )
            return DisposalResult(
                status=RunStatus.SUCCESS,
                asset_id=asset_id,
                settlement=settlement,
                current_net_book_value=round_money(prepared.asset.net_book_value),
                disposal_method=disposal_method,
                ledger_record_id=record_id,
            )

    def _prepare_disposal(
        self,
        asset_id: UUID,
        tenant_id: UUID,
        disposal_date: date,
        proceeds: Decimal,
        disposal_method: DisposalMethod,
    ) -> _PreparedDisposal:
        asset, category = self._load(asset_id, tenant_id)
        if asset.is_disposed:
            raise AssetAlreadyDisposedError(str(asset_id))

        if proceeds < 0 or (disposal_method == DisposalMethod.SOLD and proceeds <= 0):
            raise InvalidDisposalProceedsError(
                str(asset_id), str(proceeds), disposal_method.value,
            )
        if asset.purchase_date is not None and disposal_date < asset.purchase_date:
            raise InvalidDisposalDateError(
                str(asset_id), disposal_date.isoformat(),
                f"before purchase date {asset.purchase_date.isoformat()}",
            )
        last = asset.last_depreciation_period_end
        if last is not None and disposal_date < last:
            raise InvalidDisposalDateError(
                str(asset_id), disposal_date.isoformat(),
                f"before last depreciation period end {last.isoformat()}",
            )

        if asset.category_id is None or category is None:
            state = AssetDepreciationState(
                acquisition_cost=asset.acquisition_cost,
                salvage_value=ZERO,
                useful_life_months=0,
                depreciation_start_date=asset.purchase_date or disposal_date,
                accumulated_depreciation=asset.accumulated_depreciation,
            )
            settlement = settle_without_depreciation(state, disposal_date, proceeds)
        else:
            resolved = ResolvedDepreciationConfig.resolve(asset, category, disposal_date)
            state = resolved.to_state()
            from_date = (
                last + timedelta(days=1) if last is not None
                else resolved.depreciation_start_date
            )
            settlement = compute_disposal(
                state,
                from_date,
                disposal_date,
                proceeds,
                days_per_month=self._config.disposal_days_per_month,
                epsilon=self._config.fully_depreciated_epsilon,
            ) or settle_without_depreciation(state, disposal_date, proceeds)

        return _PreparedDisposal(
            asset=asset, settlement=settlement, disposal_method=disposal_method,
        )

    def _write_disposal(
        self,
        prepared: _PreparedDisposal,
        tenant_id: UUID,
        notes: str | None,
        actor_id: UUID | None,
    ) -> UUID | None:
        asset = prepared.asset
        settlement = prepared.settlement
        has_final_period = settlement.final_depreciation_amount > 0

        update = AssetUpdate(
            accumulated_depreciation=settlement.final_accumulated_depreciation,
            net_book_value=settlement.final_net_book_value,
            last_depreciation_period_end=(
                settlement.disposal_date if has_final_period
                else asset.last_depreciation_period_end
            ),
            is_fully_depreciated=True,
            disposal=DisposalDetails(
                disposal_date=settlement.disposal_date,
                disposal_method=prepared.disposal_method,
                proceeds=settlement.proceeds,
                net_book_value=settlement.final_net_book_value,
                gain_or_loss=settlement.gain_or_loss,
                notes=notes,
                disposed_by_id=actor_id,
            ),
        )

        if not has_final_period:
            self._store.apply_asset_update(asset.id, update)
            return None

        record = DepreciationLedgerRecord(
            id=uuid4(),
            tenant_id=tenant_id,
            asset_id=asset.id,
            period_start=settlement.period_start,
            period_end=settlement.disposal_date,
            depreciation_amount=settlement.final_depreciation_amount,
            accumulated_amount_after=settlement.final_accumulated_depreciation,
            net_book_value_after=settlement.final_net_book_value,
            calculation_type=CalculationType.DISPOSAL,
            calculated_at=self._clock.now(),
            calculated_by_id=actor_id,
            notes=(
                f"Final depreciation on {prepared.disposal_method.value} disposal "
                f"({settlement.days} days)"
            ),
        )
        self._store.insert_ledger_record_and_update_asset(record, update)
        return record.id

    # =========================================================================
    # Ledger history
    # =========================================================================

    def get_ledger_records(
        self,
        asset_id: UUID,
        tenant_id: UUID,
        limit: int | None = None,
        offset: int = 0,
        newest_first: bool = True,
    ) -> LedgerPage:
        """Page through an asset's posted ledger (newest first by default)."""
        if offset < 0:
            raise ValueError("offset must be >= 0")
        limit = limit or self._config.default_ledger_page_size
        limit = max(1, min(limit, self._config.max_ledger_page_size))

        self._load(asset_id, tenant_id)
        records = self._store.list_ledger_records(
            asset_id, tenant_id, limit=limit, offset=offset, newest_first=newest_first,
        )
        total = self._store.count_ledger_records(asset_id, tenant_id)
        return LedgerPage(
            records=tuple(records), total=total, limit=limit, offset=offset,
        )

    # =========================================================================
    # Internals
    # =========================================================================

    def _load(
        self,
        asset_id: UUID,
        tenant_id: UUID,
    ) -> tuple[Asset, DepreciationCategory | None]:
        found = self._store.find_asset_with_category(asset_id, tenant_id)
        if found is None:
            raise AssetNotFoundError(str(asset_id))
        return found

    @staticmethod
    def _resolve(
        asset: Asset,
        category: DepreciationCategory,
        fallback_start_date: date,
    ) -> ResolvedDepreciationConfig:
        resolved = ResolvedDepreciationConfig.resolve(asset, category, fallback_start_date)
        if resolved.useful_life_months <= 0:
            raise InvalidUsefulLifeError(str(asset.id), resolved.useful_life_months)
        if resolved.acquisition_cost <= 0:
            raise InvalidAcquisitionCostError(str(asset.id), str(resolved.acquisition_cost))
        if resolved.salvage_value < 0 or resolved.salvage_value >= resolved.acquisition_cost:
            raise InvalidSalvageValueError(
                str(asset.id),
                str(resolved.salvage_value),
                str(resolved.acquisition_cost),
            )
        return resolved
