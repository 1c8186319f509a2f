"""
Depreciation Domain Models.

The nouns of the engine: categories, asset depreciation state, period
results, ledger records, and disposal settlements.  All frozen; all money
is ``Decimal``.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from asset_kernel.db.types import ZERO, round_money
from asset_depreciation.periods import month_end


class AssetStatus(str, Enum):
    """Asset record status as far as the engine is concerned."""
    ACTIVE = "ACTIVE"
    DISPOSED = "DISPOSED"


class AssetLifecycleState(str, Enum):
    """Depreciation state machine for a category-assigned asset."""
    NOT_STARTED = "NOT_STARTED"
    ACTIVE = "ACTIVE"
    FULLY_DEPRECIATED = "FULLY_DEPRECIATED"  # terminal
    DISPOSED = "DISPOSED"  # terminal


class CalculationType(str, Enum):
    """How a ledger record came to be."""
    SCHEDULED = "SCHEDULED"
    MANUAL = "MANUAL"
    DISPOSAL = "DISPOSAL"


class DisposalMethod(str, Enum):
    """Ways an asset leaves the books."""
    SOLD = "SOLD"  # requires proceeds > 0
    SCRAPPED = "SCRAPPED"
    DONATED = "DONATED"
    WRITTEN_OFF = "WRITTEN_OFF"  # theft, loss, obsolescence
    TRADED_IN = "TRADED_IN"


@dataclass(frozen=True)
class DepreciationCategory:
    """A tenant-owned straight-line depreciation policy."""
    id: UUID
    tenant_id: UUID
    code: str
    name: str
    annual_rate_percent: Decimal
    useful_life_years: int
    salvage_value_percent: Decimal = Decimal("0")
    asset_classification: str | None = None
    description: str | None = None
    is_active: bool = True

    @property
    def useful_life_months(self) -> int:
        return self.useful_life_years * 12


@dataclass(frozen=True)
class Asset:
    """The slice of an asset record the engine reads and writes."""
    id: UUID
    tenant_id: UUID
    acquisition_cost: Decimal
    asset_tag: str | None = None
    description: str | None = None
    purchase_date: date | None = None
    status: AssetStatus = AssetStatus.ACTIVE
    category_id: UUID | None = None
    salvage_value: Decimal | None = None
    custom_useful_life_months: int | None = None
    depreciation_start_date: date | None = None
    accumulated_depreciation: Decimal = Decimal("0")
    net_book_value: Decimal = Decimal("0")
    last_depreciation_period_end: date | None = None
    is_fully_depreciated: bool = False
    disposal_date: date | None = None
    disposal_method: DisposalMethod | None = None
    disposal_proceeds: Decimal | None = None
    disposal_net_book_value: Decimal | None = None
    disposal_gain_loss: Decimal | None = None

    @property
    def is_disposed(self) -> bool:
        return self.status == AssetStatus.DISPOSED


@dataclass(frozen=True)
class AssetDepreciationState:
    """
    Calculator input: everything a pure depreciation function needs.

    ``salvage_value`` and ``useful_life_months`` are already resolved
    (override-if-present-else-category-default).
    """
    acquisition_cost: Decimal
    salvage_value: Decimal
    useful_life_months: int
    depreciation_start_date: date
    accumulated_depreciation: Decimal = Decimal("0")

    @property
    def depreciable_amount(self) -> Decimal:
        return self.acquisition_cost - self.salvage_value

    @property
    def remaining_depreciable(self) -> Decimal:
        return self.depreciable_amount - self.accumulated_depreciation

    @property
    def net_book_value(self) -> Decimal:
        return self.acquisition_cost - self.accumulated_depreciation

    def with_accumulated(self, accumulated: Decimal) -> "AssetDepreciationState":
        return AssetDepreciationState(
            acquisition_cost=self.acquisition_cost,
            salvage_value=self.salvage_value,
            useful_life_months=self.useful_life_months,
            depreciation_start_date=self.depreciation_start_date,
            accumulated_depreciation=accumulated,
        )


@dataclass(frozen=True)
class ResolvedDepreciationConfig:
    """
    Asset overrides layered over category defaults, built once per run.

    Nothing downstream null-coalesces: every field here is final.
    """
    asset_id: UUID
    category_id: UUID
    category_code: str
    acquisition_cost: Decimal
    salvage_value: Decimal
    useful_life_months: int
    depreciation_start_date: date
    accumulated_depreciation: Decimal
    uses_custom_useful_life: bool = False
    uses_custom_salvage_value: bool = False

    @classmethod
    def resolve(
        cls,
        asset: Asset,
        category: DepreciationCategory,
        fallback_start_date: date,
    ) -> "ResolvedDepreciationConfig":
        custom_life = asset.custom_useful_life_months
        uses_custom_life = bool(custom_life)
        useful_life_months = custom_life if uses_custom_life else category.useful_life_months

        uses_custom_salvage = asset.salvage_value is not None
        if uses_custom_salvage:
            salvage_value = asset.salvage_value
        else:
            salvage_value = round_money(
                asset.acquisition_cost * category.salvage_value_percent / Decimal("100")
            )

        start = (
            asset.depreciation_start_date
            or asset.purchase_date
            or fallback_start_date
        )

        return cls(
            asset_id=asset.id,
            category_id=category.id,
            category_code=category.code,
            acquisition_cost=asset.acquisition_cost,
            salvage_value=salvage_value,
            useful_life_months=useful_life_months,
            depreciation_start_date=start,
            accumulated_depreciation=asset.accumulated_depreciation or ZERO,
            uses_custom_useful_life=uses_custom_life,
            uses_custom_salvage_value=uses_custom_salvage,
        )

    def to_state(self, accumulated: Decimal | None = None) -> AssetDepreciationState:
        return AssetDepreciationState(
            acquisition_cost=self.acquisition_cost,
            salvage_value=self.salvage_value,
            useful_life_months=self.useful_life_months,
            depreciation_start_date=self.depreciation_start_date,
            accumulated_depreciation=(
                self.accumulated_depreciation if accumulated is None else accumulated
            ),
        )


@dataclass(frozen=True)
class PeriodResult:
    """One calendar month of straight-line depreciation."""
    amount: Decimal
    period_start: date
    period_end: date
    new_accumulated: Decimal
    new_net_book_value: Decimal
    is_fully_depreciated: bool
    pro_rata_factor: Decimal  # 1 for a full month


@dataclass(frozen=True)
class DepreciationSummary:
    """Point-in-time overview of an asset's depreciation position."""
    acquisition_cost: Decimal
    salvage_value: Decimal
    depreciable_amount: Decimal
    useful_life_months: int
    monthly_depreciation: Decimal
    annual_depreciation: Decimal
    accumulated_depreciation: Decimal
    net_book_value: Decimal
    remaining_months: int
    percent_depreciated: Decimal
    is_fully_depreciated: bool


@dataclass(frozen=True)
class PartialDepreciation:
    """Day-based depreciation for a span shorter than a posted period."""
    days: int
    amount: Decimal
    new_accumulated: Decimal
    new_net_book_value: Decimal
    daily_rate: Decimal
    period_start: date
    period_end: date


@dataclass(frozen=True)
class DisposalSettlement:
    """Final depreciation and gain/loss when an asset leaves the books."""
    disposal_date: date
    proceeds: Decimal
    final_depreciation_amount: Decimal
    final_accumulated_depreciation: Decimal
    final_net_book_value: Decimal
    gain_or_loss: Decimal  # positive = gain, negative = loss
    days: int = 0
    daily_rate: Decimal = Decimal("0")
    period_start: date | None = None

    @property
    def is_gain(self) -> bool:
        return self.gain_or_loss >= 0


@dataclass(frozen=True)
class DepreciationLedgerRecord:
    """Immutable, append-only ledger row.  One per (asset_id, period_end)."""
    id: UUID
    tenant_id: UUID
    asset_id: UUID
    period_start: date
    period_end: date
    depreciation_amount: Decimal
    accumulated_amount_after: Decimal
    net_book_value_after: Decimal
    calculation_type: CalculationType
    calculated_at: datetime
    calculated_by_id: UUID | None = None
    notes: str | None = None


@dataclass(frozen=True)
class DisposalDetails:
    """Disposal fields written onto the asset together with the final totals."""
    disposal_date: date
    disposal_method: DisposalMethod
    proceeds: Decimal
    net_book_value: Decimal
    gain_or_loss: Decimal
    notes: str | None = None
    disposed_by_id: UUID | None = None


@dataclass(frozen=True)
class AssetUpdate:
    """Running-total changes applied to an asset in the same unit as a ledger insert."""
    accumulated_depreciation: Decimal
    net_book_value: Decimal
    last_depreciation_period_end: date | None
    is_fully_depreciated: bool
    disposal: DisposalDetails | None = None


@dataclass(frozen=True)
class CategoryAssignment:
    """Optional overrides supplied when a category is assigned to an asset."""
    salvage_value: Decimal | None = None
    custom_useful_life_months: int | None = None
    depreciation_start_date: date | None = None


def lifecycle_state(asset: Asset, as_of: date) -> AssetLifecycleState | None:
    """
    Where ``asset`` sits in the depreciation state machine on ``as_of``.

    Returns None for assets without a category: they never enter the machine.
    """
    if asset.category_id is None:
        return None
    if asset.is_disposed:
        return AssetLifecycleState.DISPOSED
    if asset.is_fully_depreciated:
        return AssetLifecycleState.FULLY_DEPRECIATED
    start = asset.depreciation_start_date or asset.purchase_date
    if (
        asset.last_depreciation_period_end is None
        and start is not None
        and start > month_end(as_of)
    ):
        return AssetLifecycleState.NOT_STARTED
    return AssetLifecycleState.ACTIVE
