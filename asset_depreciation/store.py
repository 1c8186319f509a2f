"""
Depreciation Persistence (``asset_depreciation.store``).

Responsibility
--------------
The persistence contract the orchestrator depends on
(``DepreciationStore``) and its SQLAlchemy implementation
(``SqlDepreciationStore``).

Architecture position
---------------------
Sits between ``DepreciationService`` and the ORM models.  Speaks frozen
DTOs on both sides; ORM rows never leave this module.

Invariants enforced
-------------------
* Ledger insert and asset running-total update happen inside one
  SAVEPOINT: both persist or neither does.
* A second ledger row for the same ``(asset_id, period_end)`` is rejected
  by ``uq_depreciation_records_asset_period`` and surfaces as
  ``DuplicateDepreciationPeriodError``.
* Every asset lookup is tenant-scoped; a row owned by another tenant is
  indistinguishable from a missing one.

Failure modes
-------------
* Unique-constraint conflict on the ledger  -> ``DuplicateDepreciationPeriodError``
  (savepoint rolled back, outer transaction intact).
* Any other ``SQLAlchemyError``  -> propagates to the caller.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from asset_kernel.exceptions import AssetNotFoundError, DuplicateDepreciationPeriodError
from asset_kernel.logging_config import get_logger
from asset_depreciation.models import (
    Asset,
    AssetStatus,
    AssetUpdate,
    DepreciationCategory,
    DepreciationLedgerRecord,
)
from asset_depreciation.orm import (
    AssetModel,
    DepreciationCategoryModel,
    DepreciationRecordModel,
)

logger = get_logger("depreciation.store")

_PERIOD_CONSTRAINT = "uq_depreciation_records_asset_period"


class DepreciationStore(ABC):
    """Persistence operations consumed by the depreciation orchestrator."""

    @abstractmethod
    def find_asset_with_category(
        self,
        asset_id: UUID,
        tenant_id: UUID,
    ) -> tuple[Asset, DepreciationCategory | None] | None:
        """Asset plus its category (None if unassigned); None if not tenant-owned."""

    @abstractmethod
    def find_ledger_record(
        self,
        asset_id: UUID,
        period_end: date,
    ) -> DepreciationLedgerRecord | None:
        ...

    @abstractmethod
    def insert_ledger_record_and_update_asset(
        self,
        record: DepreciationLedgerRecord,
        update: AssetUpdate,
    ) -> None:
        """Atomically append ``record`` and apply ``update`` to its asset."""

    @abstractmethod
    def apply_asset_update(self, asset_id: UUID, update: AssetUpdate) -> None:
        """Apply running-total (and disposal) changes without a ledger row."""

    @abstractmethod
    def apply_category_assignment(
        self,
        asset_id: UUID,
        category_id: UUID,
        salvage_value: Decimal | None,
        custom_useful_life_months: int | None,
        depreciation_start_date: date,
        actor_id: UUID | None = None,
    ) -> Asset:
        """Point the asset at ``category_id`` and reset its depreciation state."""

    @abstractmethod
    def list_eligible_assets(self, tenant_id: UUID) -> list[UUID]:
        """Non-disposed, category-assigned, not fully depreciated assets."""

    @abstractmethod
    def list_ledger_records(
        self,
        asset_id: UUID,
        tenant_id: UUID,
        limit: int,
        offset: int = 0,
        newest_first: bool = True,
    ) -> list[DepreciationLedgerRecord]:
        ...

    @abstractmethod
    def count_ledger_records(self, asset_id: UUID, tenant_id: UUID) -> int:
        ...

    def has_ledger_history(self, asset_id: UUID, tenant_id: UUID) -> bool:
        return self.count_ledger_records(asset_id, tenant_id) > 0


def _is_period_conflict(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return (
        _PERIOD_CONSTRAINT in message
        or "depreciation_records.asset_id" in message
    )


class SqlDepreciationStore(DepreciationStore):
    """
    SQLAlchemy implementation of ``DepreciationStore``.

    Flushes only; the caller owns commit and rollback.
    """

    def __init__(self, session: Session):
        self._session = session

    def _get_asset_row(self, asset_id: UUID, tenant_id: UUID | None = None) -> AssetModel:
        row = self._session.get(AssetModel, asset_id)
        if row is None or (tenant_id is not None and row.tenant_id != tenant_id):
            raise AssetNotFoundError(str(asset_id))
        return row

    def find_asset_with_category(self, asset_id, tenant_id):
        row = self._session.get(AssetModel, asset_id)
        if row is None or row.tenant_id != tenant_id:
            return None
        category: DepreciationCategory | None = None
        if row.depreciation_category_id is not None:
            category_row = self._session.get(
                DepreciationCategoryModel, row.depreciation_category_id,
            )
            if category_row is not None:
                category = category_row.to_dto()
        return row.to_dto(), category

    def find_ledger_record(self, asset_id, period_end):
        row = self._session.execute(
            select(DepreciationRecordModel).where(
                DepreciationRecordModel.asset_id == asset_id,
                DepreciationRecordModel.period_end == period_end,
            )
        ).scalar_one_or_none()
        return row.to_dto() if row is not None else None

    def insert_ledger_record_and_update_asset(self, record, update):
        asset_row = self._get_asset_row(record.asset_id, record.tenant_id)
        try:
            with self._session.begin_nested():
                self._session.add(DepreciationRecordModel.from_dto(record))
                self._apply(asset_row, update, record.calculated_by_id)
        except IntegrityError as exc:
            if not _is_period_conflict(exc):
                raise
            logger.warning(
                "ledger_period_conflict",
                extra={
                    "asset_id": str(record.asset_id),
                    "period_end": record.period_end,
                },
            )
            raise DuplicateDepreciationPeriodError(
                str(record.asset_id), record.period_end.isoformat(),
            ) from exc

        logger.debug(
            "ledger_record_inserted",
            extra={
                "record_id": str(record.id),
                "asset_id": str(record.asset_id),
                "period_end": record.period_end,
                "calculation_type": record.calculation_type.value,
            },
        )

    def apply_asset_update(self, asset_id, update):
        asset_row = self._get_asset_row(asset_id)
        actor_id = update.disposal.disposed_by_id if update.disposal else None
        with self._session.begin_nested():
            self._apply(asset_row, update, actor_id)

    def apply_category_assignment(
        self,
        asset_id,
        category_id,
        salvage_value,
        custom_useful_life_months,
        depreciation_start_date,
        actor_id=None,
    ):
        row = self._get_asset_row(asset_id)
        row.depreciation_category_id = category_id
        if salvage_value is not None:
            row.salvage_value = salvage_value
        row.custom_useful_life_months = custom_useful_life_months
        row.depreciation_start_date = depreciation_start_date
        row.accumulated_depreciation = Decimal("0")
        row.net_book_value = row.acquisition_cost
        row.last_depreciation_period_end = None
        row.is_fully_depreciated = False
        row.updated_by_id = actor_id
        self._session.flush()
        return row.to_dto()

    def list_eligible_assets(self, tenant_id):
        stmt = (
            select(AssetModel.id)
            .where(
                AssetModel.tenant_id == tenant_id,
                AssetModel.depreciation_category_id.is_not(None),
                AssetModel.is_fully_depreciated.is_(False),
                AssetModel.status != AssetStatus.DISPOSED.value,
            )
            .order_by(AssetModel.created_at, AssetModel.id)
        )
        return list(self._session.execute(stmt).scalars())

    def list_ledger_records(
        self,
        asset_id,
        tenant_id,
        limit,
        offset=0,
        newest_first=True,
    ):
        order = (
            DepreciationRecordModel.period_end.desc()
            if newest_first
            else DepreciationRecordModel.period_end.asc()
        )
        stmt = (
            select(DepreciationRecordModel)
            .where(
                DepreciationRecordModel.asset_id == asset_id,
                DepreciationRecordModel.tenant_id == tenant_id,
            )
            .order_by(order)
            .limit(limit)
            .offset(offset)
        )
        return [row.to_dto() for row in self._session.execute(stmt).scalars()]

    def count_ledger_records(self, asset_id, tenant_id):
        return self._session.execute(
            select(func.count(DepreciationRecordModel.id)).where(
                DepreciationRecordModel.asset_id == asset_id,
                DepreciationRecordModel.tenant_id == tenant_id,
            )
        ).scalar_one()

    @staticmethod
    def _apply(row: AssetModel, update: AssetUpdate, actor_id: UUID | None) -> None:
        row.accumulated_depreciation = update.accumulated_depreciation
        row.net_book_value = update.net_book_value
        row.last_depreciation_period_end = update.last_depreciation_period_end
        row.is_fully_depreciated = update.is_fully_depreciated
        row.updated_by_id = actor_id

        disposal = update.disposal
        if disposal is not None:
            row.status = AssetStatus.DISPOSED.value
            row.disposal_date = disposal.disposal_date
            row.disposal_method = disposal.disposal_method.value
            row.disposal_proceeds = disposal.proceeds
            row.disposal_net_book_value = disposal.net_book_value
            row.disposal_gain_loss = disposal.gain_or_loss
            row.disposal_notes = disposal.notes
            row.disposed_by_id = disposal.disposed_by_id
