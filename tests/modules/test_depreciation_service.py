"""
Tests for the depreciation run orchestrator.

Validates:
- Single-asset runs: full month, pro-rata first month, capped final month
- Idempotence: one ledger record per (asset, period end)
- Skip vs fail classification and error codes
- Tenant isolation
- Batch runs continue past failures and aggregate counts
- Schedule projection agrees with posted ledger
- Category assignment resets and history protection
- Ledger paging
"""

from __future__ import annotations

import inspect
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from asset_kernel.exceptions import (
    AssetAlreadyDisposedError,
    AssetNotFoundError,
    CategoryNotFoundError,
    InvalidSalvageValueError,
    InvalidUsefulLifeError,
    LedgerHistoryExistsError,
    NoCategoryAssignedError,
)
from asset_depreciation.config import DepreciationConfig
from asset_depreciation.models import (
    AssetLifecycleState,
    AssetStatus,
    CalculationType,
    CategoryAssignment,
    DisposalMethod,
)
from asset_depreciation.service import (
    PERSISTENCE_FAILED,
    SKIP_FULLY_DEPRECIATED,
    SKIP_NOTHING_CALCULATED,
    UNHANDLED_EXCEPTION,
    DepreciationService,
    RunStatus,
    already_recorded_reason,
)
from asset_depreciation.store import SqlDepreciationStore

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def equipment(create_category):
    """12-month category, no salvage."""
    return create_category()


@pytest.fixture
def asset_id(create_asset, equipment):
    """Cost 12000 from 2024-01-01: 1000.00 per month."""
    return create_asset(category_id=equipment.id)


# =============================================================================
# Structural Tests
# =============================================================================


class TestDepreciationServiceStructure:
    """Verify DepreciationService exposes the engine's operations."""

    def test_constructor_signature(self):
        params = list(inspect.signature(DepreciationService.__init__).parameters)
        for name in ("session", "clock", "config", "store", "registry", "auto_commit"):
            assert name in params

    def test_has_public_methods(self):
        expected = [
            "run_for_asset", "run_for_tenant", "assign_category", "get_schedule",
            "preview_disposal", "settle_disposal", "get_ledger_records",
        ]
        for method_name in expected:
            assert callable(getattr(DepreciationService, method_name))


# =============================================================================
# Single-asset runs
# =============================================================================


class TestRunForAsset:
    """run_for_asset against a real database."""

    def test_full_month_posts_thousand(self, depreciation_service, asset_id, tenant_id, load_asset):
        result = depreciation_service.run_for_asset(asset_id, tenant_id)

        assert result.status == RunStatus.SUCCESS
        assert result.is_success
        assert result.amount == Decimal("1000.00")
        assert result.period_end == date(2024, 1, 31)
        assert result.new_accumulated == Decimal("1000.00")
        assert result.new_net_book_value == Decimal("11000.00")
        assert result.is_fully_depreciated is False
        assert result.record_id is not None

        asset = load_asset(asset_id)
        assert asset.accumulated_depreciation == Decimal("1000.00")
        assert asset.net_book_value == Decimal("11000.00")
        assert asset.last_depreciation_period_end == date(2024, 1, 31)

    def test_mid_month_start_is_pro_rated(
        self, depreciation_service, create_asset, equipment, tenant_id,
    ):
        asset_id = create_asset(category_id=equipment.id, purchase_date=date(2024, 4, 16))

        result = depreciation_service.run_for_asset(asset_id, tenant_id, as_of=date(2024, 4, 30))

        assert result.is_success
        assert result.amount == Decimal("500.00")

        page = depreciation_service.get_ledger_records(asset_id, tenant_id)
        assert page.records[0].period_start == date(2024, 4, 1)
        assert page.records[0].notes == "Pro-rata factor 0.5000"

    def test_final_month_capped_and_flagged(
        self, depreciation_service, create_asset, equipment, tenant_id, load_asset,
    ):
        asset_id = create_asset(
            category_id=equipment.id,
            accumulated_depreciation=Decimal("11500"),
            last_depreciation_period_end=date(2024, 11, 30),
        )

        result = depreciation_service.run_for_asset(asset_id, tenant_id, as_of=date(2024, 12, 15))

        assert result.amount == Decimal("500.00")
        assert result.new_net_book_value == Decimal("0.00")
        assert result.is_fully_depreciated is True
        assert load_asset(asset_id).is_fully_depreciated is True

        again = depreciation_service.run_for_asset(asset_id, tenant_id, as_of=date(2024, 12, 15))
        assert again.is_skipped
        assert again.reason == SKIP_FULLY_DEPRECIATED
        assert depreciation_service.get_ledger_records(asset_id, tenant_id).total == 1

    def test_second_run_same_period_skips(self, depreciation_service, asset_id, tenant_id):
        first = depreciation_service.run_for_asset(asset_id, tenant_id)
        second = depreciation_service.run_for_asset(asset_id, tenant_id, as_of=date(2024, 1, 31))

        assert first.is_success
        assert second.status == RunStatus.SKIPPED
        assert second.reason == already_recorded_reason(date(2024, 1, 31))
        assert second.reason == "Depreciation already recorded for period ending 2024-01-31"
        assert depreciation_service.get_ledger_records(asset_id, tenant_id).total == 1

    def test_earlier_period_after_later_skips(self, depreciation_service, asset_id, tenant_id):
        depreciation_service.run_for_asset(asset_id, tenant_id, as_of=date(2024, 2, 10))

        result = depreciation_service.run_for_asset(asset_id, tenant_id, as_of=date(2024, 1, 10))

        assert result.is_skipped
        assert result.reason == already_recorded_reason(date(2024, 1, 31))

    def test_not_started_skips(self, depreciation_service, create_asset, equipment, tenant_id):
        asset_id = create_asset(category_id=equipment.id, purchase_date=date(2024, 3, 1))

        result = depreciation_service.run_for_asset(asset_id, tenant_id)

        assert result.is_skipped
        assert result.reason == SKIP_NOTHING_CALCULATED
        assert depreciation_service.get_ledger_records(asset_id, tenant_id).total == 0

    def test_manual_run_records_type_and_actor(
        self, depreciation_service, asset_id, tenant_id, test_actor_id,
    ):
        result = depreciation_service.run_for_asset(
            asset_id, tenant_id,
            calculation_type=CalculationType.MANUAL,
            actor_id=test_actor_id,
        )

        assert result.calculation_type == CalculationType.MANUAL
        record = depreciation_service.get_ledger_records(asset_id, tenant_id).records[0]
        assert record.calculation_type == CalculationType.MANUAL
        assert record.calculated_by_id == test_actor_id
        assert record.notes is None

    def test_twelve_months_reach_full_depreciation(
        self, depreciation_service, asset_id, tenant_id, load_asset,
    ):
        results = [
            depreciation_service.run_for_asset(asset_id, tenant_id, as_of=date(2024, month, 1))
            for month in range(1, 13)
        ]

        assert all(r.is_success for r in results)
        assert sum(r.amount for r in results) == Decimal("12000.00")
        assert [r.is_fully_depreciated for r in results] == [False] * 11 + [True]

        asset = load_asset(asset_id)
        assert asset.net_book_value == Decimal("0.00")
        assert asset.is_fully_depreciated is True

        after = depreciation_service.run_for_asset(asset_id, tenant_id, as_of=date(2025, 1, 1))
        assert after.reason == SKIP_FULLY_DEPRECIATED

    def test_clock_drives_target_period(
        self, depreciation_service, deterministic_clock, asset_id, tenant_id,
    ):
        first = depreciation_service.run_for_asset(asset_id, tenant_id)
        deterministic_clock.move_to(date(2024, 2, 29))
        second = depreciation_service.run_for_asset(asset_id, tenant_id)
        deterministic_clock.advance(days=1)
        third = depreciation_service.run_for_asset(asset_id, tenant_id)

        assert [r.period_end for r in (first, second, third)] == [
            date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31),
        ]
        records = depreciation_service.get_ledger_records(asset_id, tenant_id).records
        assert records[0].calculated_at.date() == date(2024, 3, 1)

    def test_salvage_floor_respected(
        self, depreciation_service, create_category, create_asset, tenant_id,
    ):
        category = create_category(code="VEH", useful_life_years=1, salvage_value_percent=Decimal("10"))
        asset_id = create_asset(category_id=category.id, acquisition_cost=Decimal("10000"))

        results = [
            depreciation_service.run_for_asset(asset_id, tenant_id, as_of=date(2024, month, 1))
            for month in range(1, 13)
        ]

        assert results[0].amount == Decimal("750.00")
        assert results[-1].new_net_book_value == Decimal("1000.00")
        assert results[-1].is_fully_depreciated is True

    def test_run_logs_posted_event(self, depreciation_service, asset_id, tenant_id, captured_logs):
        depreciation_service.run_for_asset(asset_id, tenant_id)

        posted = [r for r in captured_logs() if r["message"] == "depreciation_posted"]
        assert len(posted) == 1
        assert posted[0]["asset_id"] == str(asset_id)
        assert posted[0]["tenant_id"] == str(tenant_id)
        assert posted[0]["amount"] == "1000.00"
        assert "duration_ms" in posted[0]


class TestRunForAssetFailures:
    """Typed failures come back as FAILED results with the error code."""

    def test_unknown_asset(self, depreciation_service, tenant_id):
        result = depreciation_service.run_for_asset(uuid4(), tenant_id)

        assert result.status == RunStatus.FAILED
        assert result.is_failed
        assert result.error_code == "ASSET_NOT_FOUND"

    def test_other_tenant_looks_missing(
        self, depreciation_service, create_asset, equipment, tenant_id, other_tenant_id,
    ):
        asset_id = create_asset(category_id=equipment.id, tenant=other_tenant_id)

        result = depreciation_service.run_for_asset(asset_id, tenant_id)

        assert result.error_code == "ASSET_NOT_FOUND"

    def test_no_category(self, depreciation_service, create_asset, tenant_id):
        result = depreciation_service.run_for_asset(create_asset(), tenant_id)

        assert result.is_failed
        assert result.error_code == "NO_CATEGORY"

    def test_disposed_asset(self, depreciation_service, create_asset, equipment, tenant_id):
        asset_id = create_asset(category_id=equipment.id, status=AssetStatus.DISPOSED)

        result = depreciation_service.run_for_asset(asset_id, tenant_id)

        assert result.error_code == "ASSET_DISPOSED"

    def test_salvage_at_cost(self, depreciation_service, create_asset, equipment, tenant_id):
        asset_id = create_asset(category_id=equipment.id, salvage_value=Decimal("12000"))

        result = depreciation_service.run_for_asset(asset_id, tenant_id)

        assert result.error_code == "INVALID_SALVAGE_VALUE"

    def test_zero_cost(self, depreciation_service, create_asset, equipment, tenant_id):
        asset_id = create_asset(category_id=equipment.id, acquisition_cost=Decimal("0"))

        result = depreciation_service.run_for_asset(asset_id, tenant_id)

        assert result.error_code == "INVALID_ACQUISITION_COST"

    def test_negative_custom_life(self, depreciation_service, create_asset, equipment, tenant_id):
        asset_id = create_asset(category_id=equipment.id, custom_useful_life_months=-6)

        result = depreciation_service.run_for_asset(asset_id, tenant_id)

        assert result.error_code == "INVALID_USEFUL_LIFE"

    def test_failure_logged(self, depreciation_service, create_asset, tenant_id, captured_logs):
        depreciation_service.run_for_asset(create_asset(), tenant_id)

        failed = [r for r in captured_logs() if r["message"] == "depreciation_run_failed"]
        assert failed[0]["error_code"] == "NO_CATEGORY"
        assert failed[0]["level"] == "WARNING"


# =============================================================================
# Batch runs
# =============================================================================


class TestRunForTenant:
    """run_for_tenant aggregates and never aborts on one failure."""

    def test_mixed_batch(self, depreciation_service, create_asset, equipment, tenant_id):
        good = create_asset(category_id=equipment.id)
        not_started = create_asset(category_id=equipment.id, purchase_date=date(2024, 6, 1))
        broken = create_asset(category_id=equipment.id, salvage_value=Decimal("20000"))
        create_asset()  # no category: not eligible
        create_asset(category_id=equipment.id, status=AssetStatus.DISPOSED)
        create_asset(category_id=equipment.id, is_fully_depreciated=True)

        summary = depreciation_service.run_for_tenant(tenant_id)

        assert summary.total == 3
        assert summary.processed == 1
        assert summary.skipped == 1
        assert summary.failed == 1
        assert summary.total == summary.processed + summary.skipped + summary.failed
        assert summary.all_succeeded is False
        assert summary.as_of == date(2024, 1, 15)

        by_asset = {r.asset_id: r for r in summary.results}
        assert by_asset[good].is_success
        assert by_asset[not_started].is_skipped
        assert by_asset[broken].error_code == "INVALID_SALVAGE_VALUE"

    def test_rerun_is_safe(self, depreciation_service, create_asset, equipment, tenant_id):
        ids = [create_asset(category_id=equipment.id) for _ in range(3)]

        first = depreciation_service.run_for_tenant(tenant_id, as_of=date(2024, 1, 31))
        second = depreciation_service.run_for_tenant(tenant_id, as_of=date(2024, 1, 31))

        assert first.processed == 3
        assert second.processed == 0
        assert second.skipped == 3
        for asset_id in ids:
            assert depreciation_service.get_ledger_records(asset_id, tenant_id).total == 1

    def test_other_tenants_untouched(
        self, depreciation_service, create_asset, create_category, tenant_id, other_tenant_id,
    ):
        theirs = create_category(tenant=other_tenant_id)
        create_asset(category_id=theirs.id, tenant=other_tenant_id)

        summary = depreciation_service.run_for_tenant(tenant_id)

        assert summary.total == 0
        assert summary.all_succeeded is True

    def test_batch_logs_share_correlation_id(
        self, depreciation_service, create_asset, equipment, tenant_id, captured_logs,
    ):
        create_asset(category_id=equipment.id)
        create_asset(category_id=equipment.id)

        depreciation_service.run_for_tenant(tenant_id)

        logs = captured_logs()
        completed = next(r for r in logs if r["message"] == "depreciation_batch_completed")
        assert completed["processed"] == 2
        posted = [r for r in logs if r["message"] == "depreciation_posted"]
        assert {r["correlation_id"] for r in posted} == {completed["correlation_id"]}


class _FailingWriteStore(SqlDepreciationStore):
    """Raises ``error`` on the ledger write for one asset; others write normally."""

    def __init__(self, session, failing_asset_id, error):
        super().__init__(session)
        self._failing_asset_id = failing_asset_id
        self._error = error

    def insert_ledger_record_and_update_asset(self, record, update):
        if record.asset_id == self._failing_asset_id:
            raise self._error
        super().insert_ledger_record_and_update_asset(record, update)


def _lost_connection():
    return OperationalError(
        "INSERT INTO depreciation_records", {}, Exception("server closed the connection"),
    )


class TestWriteFailures:
    """Errors from the ledger write are reported per asset."""

    @pytest.fixture
    def service_failing_on(self, session, deterministic_clock):
        def _build(asset_id, error):
            return DepreciationService(
                session,
                clock=deterministic_clock,
                store=_FailingWriteStore(session, asset_id, error),
            )

        return _build

    def test_persistence_failure_result(
        self, service_failing_on, asset_id, tenant_id, load_asset, captured_logs,
    ):
        service = service_failing_on(asset_id, _lost_connection())

        result = service.run_for_asset(asset_id, tenant_id, as_of=date(2024, 1, 31))

        assert result.is_failed
        assert result.error_code == PERSISTENCE_FAILED
        assert result.reason.startswith("Persistence failure: OperationalError")
        assert result.period_end == date(2024, 1, 31)
        assert load_asset(asset_id).accumulated_depreciation == Decimal("0")

        [logged] = [
            r for r in captured_logs() if r["message"] == "depreciation_run_persistence_failed"
        ]
        assert logged["level"] == "ERROR"
        assert logged["asset_id"] == str(asset_id)
        assert logged["period_end"] == "2024-01-31"
        assert logged["exc_type"] == "OperationalError"

    def test_persistence_failure_does_not_abort_batch(
        self, service_failing_on, create_asset, equipment, tenant_id,
    ):
        first = create_asset(category_id=equipment.id)
        broken = create_asset(category_id=equipment.id)
        last = create_asset(category_id=equipment.id)
        service = service_failing_on(broken, _lost_connection())

        summary = service.run_for_tenant(tenant_id, as_of=date(2024, 1, 31))

        assert (summary.total, summary.processed, summary.failed) == (3, 2, 1)
        by_asset = {r.asset_id: r for r in summary.results}
        assert by_asset[broken].error_code == PERSISTENCE_FAILED
        for posted in (first, last):
            assert by_asset[posted].is_success
            assert service.get_ledger_records(posted, tenant_id).total == 1
        assert service.get_ledger_records(broken, tenant_id).total == 0

    def test_unexpected_error_does_not_abort_batch(
        self, service_failing_on, create_asset, equipment, tenant_id, captured_logs,
    ):
        broken = create_asset(category_id=equipment.id)
        other = create_asset(category_id=equipment.id)
        service = service_failing_on(broken, RuntimeError("disk quota"))

        summary = service.run_for_tenant(tenant_id, as_of=date(2024, 1, 31))

        assert (summary.total, summary.processed, summary.failed) == (2, 1, 1)
        by_asset = {r.asset_id: r for r in summary.results}
        assert by_asset[broken].error_code == UNHANDLED_EXCEPTION
        assert by_asset[broken].reason == "RuntimeError: disk quota"
        assert by_asset[other].is_success
        assert any(
            r["message"] == "depreciation_batch_item_failed" and r["asset_id"] == str(broken)
            for r in captured_logs()
        )

    def test_unexpected_error_raises_from_single_run(
        self, service_failing_on, asset_id, tenant_id,
    ):
        service = service_failing_on(asset_id, RuntimeError("disk quota"))

        with pytest.raises(RuntimeError):
            service.run_for_asset(asset_id, tenant_id, as_of=date(2024, 1, 31))

    def test_disposal_persistence_failure(
        self, service_failing_on, asset_id, tenant_id, load_asset,
    ):
        service = service_failing_on(asset_id, _lost_connection())

        result = service.settle_disposal(
            asset_id, tenant_id, date(2024, 1, 20), Decimal("9000"),
            disposal_method=DisposalMethod.SOLD,
        )

        assert not result.is_success
        assert result.error_code == PERSISTENCE_FAILED
        asset = load_asset(asset_id)
        assert asset.status == AssetStatus.ACTIVE
        assert asset.disposal_date is None


# =============================================================================
# Schedule
# =============================================================================


class TestGetSchedule:
    """get_schedule is read-only and agrees with the posted ledger."""

    def test_projection_matches_posted_periods(self, depreciation_service, asset_id, tenant_id):
        posted = [
            depreciation_service.run_for_asset(asset_id, tenant_id, as_of=date(2024, m, 1))
            for m in (1, 2, 3)
        ]

        schedule = depreciation_service.get_schedule(asset_id, tenant_id)

        assert len(schedule.projected_periods) == 12
        assert schedule.total_projected == Decimal("12000.00")
        for result, period in zip(posted, schedule.projected_periods):
            assert result.period_end == period.period_end
            assert result.amount == period.amount
            assert result.new_accumulated == period.new_accumulated

        assert schedule.summary.accumulated_depreciation == Decimal("3000.00")
        assert schedule.summary.remaining_months == 9
        assert schedule.lifecycle_state == AssetLifecycleState.ACTIVE

    def test_schedule_writes_nothing(self, depreciation_service, asset_id, tenant_id, load_asset):
        depreciation_service.get_schedule(asset_id, tenant_id)

        assert depreciation_service.get_ledger_records(asset_id, tenant_id).total == 0
        assert load_asset(asset_id).accumulated_depreciation == Decimal("0")

    def test_not_started_state(self, depreciation_service, create_asset, equipment, tenant_id):
        asset_id = create_asset(category_id=equipment.id, purchase_date=date(2024, 5, 1))

        schedule = depreciation_service.get_schedule(asset_id, tenant_id)

        assert schedule.lifecycle_state == AssetLifecycleState.NOT_STARTED
        assert schedule.projected_periods[0].period_end == date(2024, 5, 31)

    def test_no_category_raises(self, depreciation_service, create_asset, tenant_id):
        with pytest.raises(NoCategoryAssignedError):
            depreciation_service.get_schedule(create_asset(), tenant_id)

    def test_unknown_asset_raises(self, depreciation_service, tenant_id):
        with pytest.raises(AssetNotFoundError):
            depreciation_service.get_schedule(uuid4(), tenant_id)


# =============================================================================
# Category assignment
# =============================================================================


class TestAssignCategory:
    """assign_category resets depreciation state."""

    def test_assign_resets_state(
        self, depreciation_service, create_asset, equipment, tenant_id, test_actor_id,
    ):
        asset_id = create_asset(
            purchase_date=date(2023, 6, 10),
            accumulated_depreciation=Decimal("400"),
        )

        asset = depreciation_service.assign_category(
            asset_id, tenant_id, equipment.id, actor_id=test_actor_id,
        )

        assert asset.category_id == equipment.id
        assert asset.accumulated_depreciation == Decimal("0")
        assert asset.net_book_value == Decimal("12000")
        assert asset.last_depreciation_period_end is None
        assert asset.is_fully_depreciated is False
        assert asset.depreciation_start_date == date(2023, 6, 10)

    def test_overrides_applied(self, depreciation_service, create_asset, equipment, tenant_id):
        asset_id = create_asset()

        asset = depreciation_service.assign_category(
            asset_id, tenant_id, equipment.id,
            overrides=CategoryAssignment(
                salvage_value=Decimal("2000"),
                custom_useful_life_months=20,
                depreciation_start_date=date(2024, 1, 1),
            ),
        )
        result = depreciation_service.run_for_asset(asset_id, tenant_id)

        assert asset.custom_useful_life_months == 20
        assert asset.salvage_value == Decimal("2000")
        assert result.amount == Decimal("500.00")

    def test_start_date_falls_back_to_today(
        self, depreciation_service, create_asset, equipment, tenant_id,
    ):
        asset_id = create_asset(purchase_date=None)

        asset = depreciation_service.assign_category(asset_id, tenant_id, equipment.id)

        assert asset.depreciation_start_date == date(2024, 1, 15)

    def test_history_blocks_reassignment(
        self, depreciation_service, asset_id, create_category, tenant_id, load_asset,
    ):
        depreciation_service.run_for_asset(asset_id, tenant_id)
        other = create_category(code="OTHER", useful_life_years=5)

        with pytest.raises(LedgerHistoryExistsError) as exc_info:
            depreciation_service.assign_category(asset_id, tenant_id, other.id)

        assert exc_info.value.code == "LEDGER_HISTORY_EXISTS"
        assert load_asset(asset_id).accumulated_depreciation == Decimal("1000.00")

    def test_force_keeps_ledger_rows(
        self, depreciation_service, asset_id, create_category, tenant_id,
    ):
        depreciation_service.run_for_asset(asset_id, tenant_id)
        other = create_category(code="OTHER", useful_life_years=5)

        asset = depreciation_service.assign_category(asset_id, tenant_id, other.id, force=True)

        assert asset.accumulated_depreciation == Decimal("0")
        assert depreciation_service.get_ledger_records(asset_id, tenant_id).total == 1

    def test_config_allows_reassignment(
        self, session, deterministic_clock, asset_id, create_category, tenant_id,
    ):
        service = DepreciationService(
            session,
            clock=deterministic_clock,
            config=DepreciationConfig(allow_category_reassignment_with_history=True),
        )
        service.run_for_asset(asset_id, tenant_id)
        other = create_category(code="OTHER", useful_life_years=5)

        asset = service.assign_category(asset_id, tenant_id, other.id)

        assert asset.category_id == other.id

    def test_other_tenants_category_rejected(
        self, depreciation_service, create_asset, create_category, tenant_id, other_tenant_id,
    ):
        theirs = create_category(tenant=other_tenant_id)

        with pytest.raises(CategoryNotFoundError):
            depreciation_service.assign_category(create_asset(), tenant_id, theirs.id)

    @pytest.mark.parametrize(
        "overrides,error",
        [
            (CategoryAssignment(custom_useful_life_months=0), InvalidUsefulLifeError),
            (CategoryAssignment(salvage_value=Decimal("-1")), InvalidSalvageValueError),
            (CategoryAssignment(salvage_value=Decimal("12000")), InvalidSalvageValueError),
        ],
    )
    def test_invalid_overrides(
        self, depreciation_service, create_asset, equipment, tenant_id, overrides, error,
    ):
        with pytest.raises(error):
            depreciation_service.assign_category(
                create_asset(), tenant_id, equipment.id, overrides=overrides,
            )

    def test_disposed_asset_rejected(self, depreciation_service, create_asset, equipment, tenant_id):
        asset_id = create_asset(status=AssetStatus.DISPOSED)

        with pytest.raises(AssetAlreadyDisposedError):
            depreciation_service.assign_category(asset_id, tenant_id, equipment.id)


# =============================================================================
# Ledger history
# =============================================================================


class TestGetLedgerRecords:
    """get_ledger_records pages newest-first."""

    @pytest.fixture
    def three_months(self, depreciation_service, asset_id, tenant_id):
        for month in (1, 2, 3):
            depreciation_service.run_for_asset(asset_id, tenant_id, as_of=date(2024, month, 1))
        return asset_id

    def test_newest_first_paging(self, depreciation_service, three_months, tenant_id):
        page = depreciation_service.get_ledger_records(three_months, tenant_id, limit=2)

        assert [r.period_end for r in page.records] == [date(2024, 3, 31), date(2024, 2, 29)]
        assert page.total == 3
        assert page.has_more is True

        rest = depreciation_service.get_ledger_records(three_months, tenant_id, limit=2, offset=2)
        assert [r.period_end for r in rest.records] == [date(2024, 1, 31)]
        assert rest.has_more is False

    def test_oldest_first(self, depreciation_service, three_months, tenant_id):
        page = depreciation_service.get_ledger_records(three_months, tenant_id, newest_first=False)

        assert [r.accumulated_amount_after for r in page.records] == [
            Decimal("1000.00"), Decimal("2000.00"), Decimal("3000.00"),
        ]

    def test_limit_clamped(self, depreciation_service, asset_id, tenant_id):
        assert depreciation_service.get_ledger_records(asset_id, tenant_id, limit=5000).limit == 200
        assert depreciation_service.get_ledger_records(asset_id, tenant_id).limit == 100

    def test_negative_offset(self, depreciation_service, asset_id, tenant_id):
        with pytest.raises(ValueError):
            depreciation_service.get_ledger_records(asset_id, tenant_id, offset=-1)

    def test_other_tenant_cannot_read(self, depreciation_service, three_months, other_tenant_id):
        with pytest.raises(AssetNotFoundError):
            depreciation_service.get_ledger_records(three_months, other_tenant_id)
