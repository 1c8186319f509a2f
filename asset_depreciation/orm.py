"""
Depreciation ORM Models (``asset_depreciation.orm``).

Responsibility
--------------
SQLAlchemy persistence models for depreciation categories, the depreciation
slice of asset records, and the append-only depreciation ledger.  Maps the
frozen domain dataclasses from ``models.py`` to database tables.

Invariants enforced
-------------------
* ``uq_depreciation_records_asset_period`` -- at most one ledger row per
  (asset_id, period_end).  This is what makes concurrent "run now"
  requests safe: the second writer hits the constraint.
* Ledger rows are append-only (``register_append_only``).
* ``uq_depreciation_categories_tenant_code`` -- category codes are unique
  per tenant.
"""

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from asset_kernel.db.base import TenantScopedBase
from asset_kernel.db.immutability import register_append_only


# ---------------------------------------------------------------------------
# DepreciationCategoryModel
# ---------------------------------------------------------------------------

class DepreciationCategoryModel(TenantScopedBase):
    """
    ORM model for ``DepreciationCategory``.

    Table: ``depreciation_categories``
    """

    __tablename__ = "depreciation_categories"

    code: Mapped[str] = mapped_column(String(50))
    name: Mapped[str] = mapped_column(String(200))
    annual_rate_percent: Mapped[Decimal]
    useful_life_years: Mapped[int]
    salvage_value_percent: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    asset_classification: Mapped[str | None] = mapped_column(
        String(100), nullable=True,
    )
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True)

    assets: Mapped[list["AssetModel"]] = relationship(back_populates="category")

    __table_args__ = (
        UniqueConstraint(
            "tenant_id", "code", name="uq_depreciation_categories_tenant_code",
        ),
        Index("idx_depreciation_categories_tenant_id", "tenant_id"),
    )

    def to_dto(self):
        from asset_depreciation.models import DepreciationCategory
        return DepreciationCategory(
            id=self.id,
            tenant_id=self.tenant_id,
            code=self.code,
            name=self.name,
            annual_rate_percent=self.annual_rate_percent,
            useful_life_years=self.useful_life_years,
            salvage_value_percent=self.salvage_value_percent,
            asset_classification=self.asset_classification,
            description=self.description,
            is_active=self.is_active,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID | None = None) -> "DepreciationCategoryModel":
        return cls(
            id=dto.id,
            tenant_id=dto.tenant_id,
            code=dto.code,
            name=dto.name,
            annual_rate_percent=dto.annual_rate_percent,
            useful_life_years=dto.useful_life_years,
            salvage_value_percent=dto.salvage_value_percent,
            asset_classification=dto.asset_classification,
            description=dto.description,
            is_active=dto.is_active,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<DepreciationCategoryModel(id={self.id!r}, code={self.code!r}, "
            f"rate={self.annual_rate_percent!r})>"
        )


# ---------------------------------------------------------------------------
# AssetModel
# ---------------------------------------------------------------------------

class AssetModel(TenantScopedBase):
    """
    ORM model for the depreciation-relevant columns of an asset record.

    Table: ``assets``
    """

    __tablename__ = "assets"

    asset_tag: Mapped[str | None] = mapped_column(String(100), nullable=True)
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    acquisition_cost: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    purchase_date: Mapped[date | None]
    status: Mapped[str] = mapped_column(String(20), default="ACTIVE")

    depreciation_category_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("depreciation_categories.id"), nullable=True,
    )
    salvage_value: Mapped[Decimal | None]
    custom_useful_life_months: Mapped[int | None]
    depreciation_start_date: Mapped[date | None]
    accumulated_depreciation: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    net_book_value: Mapped[Decimal] = mapped_column(default=Decimal("0"))
    last_depreciation_period_end: Mapped[date | None]
    is_fully_depreciated: Mapped[bool] = mapped_column(default=False)

    disposal_date: Mapped[date | None]
    disposal_method: Mapped[str | None] = mapped_column(String(20), nullable=True)
    disposal_proceeds: Mapped[Decimal | None]
    disposal_net_book_value: Mapped[Decimal | None]
    disposal_gain_loss: Mapped[Decimal | None]
    disposal_notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    disposed_by_id: Mapped[UUID | None]

    category: Mapped["DepreciationCategoryModel | None"] = relationship(
        back_populates="assets",
    )
    depreciation_records: Mapped[list["DepreciationRecordModel"]] = relationship(
        back_populates="asset",
    )

    __table_args__ = (
        Index("idx_assets_tenant_status", "tenant_id", "status"),
        Index("idx_assets_depreciation_category_id", "depreciation_category_id"),
    )

    def to_dto(self):
        from asset_depreciation.models import Asset, AssetStatus, DisposalMethod
        return Asset(
            id=self.id,
            tenant_id=self.tenant_id,
            acquisition_cost=self.acquisition_cost,
            asset_tag=self.asset_tag,
            description=self.description,
            purchase_date=self.purchase_date,
            status=AssetStatus(self.status),
            category_id=self.depreciation_category_id,
            salvage_value=self.salvage_value,
            custom_useful_life_months=self.custom_useful_life_months,
            depreciation_start_date=self.depreciation_start_date,
            accumulated_depreciation=self.accumulated_depreciation,
            net_book_value=self.net_book_value,
            last_depreciation_period_end=self.last_depreciation_period_end,
            is_fully_depreciated=self.is_fully_depreciated,
            disposal_date=self.disposal_date,
            disposal_method=(
                DisposalMethod(self.disposal_method) if self.disposal_method else None
            ),
            disposal_proceeds=self.disposal_proceeds,
            disposal_net_book_value=self.disposal_net_book_value,
            disposal_gain_loss=self.disposal_gain_loss,
        )

    @classmethod
    def from_dto(cls, dto, created_by_id: UUID | None = None) -> "AssetModel":
        return cls(
            id=dto.id,
            tenant_id=dto.tenant_id,
            asset_tag=dto.asset_tag,
            description=dto.description,
            acquisition_cost=dto.acquisition_cost,
            purchase_date=dto.purchase_date,
            status=dto.status.value,
            depreciation_category_id=dto.category_id,
            salvage_value=dto.salvage_value,
            custom_useful_life_months=dto.custom_useful_life_months,
            depreciation_start_date=dto.depreciation_start_date,
            accumulated_depreciation=dto.accumulated_depreciation,
            net_book_value=dto.net_book_value,
            last_depreciation_period_end=dto.last_depreciation_period_end,
            is_fully_depreciated=dto.is_fully_depreciated,
            created_by_id=created_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<AssetModel(id={self.id!r}, asset_tag={self.asset_tag!r}, "
            f"status={self.status!r})>"
        )


# ---------------------------------------------------------------------------
# DepreciationRecordModel
# ---------------------------------------------------------------------------

class DepreciationRecordModel(TenantScopedBase):
    """
    ORM model for ``DepreciationLedgerRecord`` -- one posted period.

    Table: ``depreciation_records``
    """

    __tablename__ = "depreciation_records"

    asset_id: Mapped[UUID] = mapped_column(ForeignKey("assets.id"))
    period_start: Mapped[date]
    period_end: Mapped[date]
    depreciation_amount: Mapped[Decimal]
    accumulated_amount_after: Mapped[Decimal]
    net_book_value_after: Mapped[Decimal]
    calculation_type: Mapped[str] = mapped_column(String(20))
    calculated_at: Mapped[datetime]
    calculated_by_id: Mapped[UUID | None]
    notes: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    asset: Mapped["AssetModel"] = relationship(
        back_populates="depreciation_records",
    )

    __table_args__ = (
        UniqueConstraint(
            "asset_id", "period_end", name="uq_depreciation_records_asset_period",
        ),
        Index("idx_depreciation_records_tenant_asset", "tenant_id", "asset_id"),
    )

    def to_dto(self):
        from asset_depreciation.models import CalculationType, DepreciationLedgerRecord
        return DepreciationLedgerRecord(
            id=self.id,
            tenant_id=self.tenant_id,
            asset_id=self.asset_id,
            period_start=self.period_start,
            period_end=self.period_end,
            depreciation_amount=self.depreciation_amount,
            accumulated_amount_after=self.accumulated_amount_after,
            net_book_value_after=self.net_book_value_after,
            calculation_type=CalculationType(self.calculation_type),
            calculated_at=self.calculated_at,
            calculated_by_id=self.calculated_by_id,
            notes=self.notes,
        )

    @classmethod
    def from_dto(cls, dto) -> "DepreciationRecordModel":
        return cls(
            id=dto.id,
            tenant_id=dto.tenant_id,
            asset_id=dto.asset_id,
            period_start=dto.period_start,
            period_end=dto.period_end,
            depreciation_amount=dto.depreciation_amount,
            accumulated_amount_after=dto.accumulated_amount_after,
            net_book_value_after=dto.net_book_value_after,
            calculation_type=dto.calculation_type.value,
            calculated_at=dto.calculated_at,
            calculated_by_id=dto.calculated_by_id,
            notes=dto.notes,
            created_by_id=dto.calculated_by_id,
        )

    def __repr__(self) -> str:
        return (
            f"<DepreciationRecordModel(asset_id={self.asset_id!r}, "
            f"period_end={self.period_end!r}, amount={self.depreciation_amount!r})>"
        )


register_append_only(DepreciationRecordModel, "DepreciationRecord")
