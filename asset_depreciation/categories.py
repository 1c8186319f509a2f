"""
Depreciation Category Registry (``asset_depreciation.categories``).

Responsibility
--------------
Tenant-owned straight-line rate tables: annual rate <-> useful life
conversions, the default tax-authority rate table, a read-only registry
consulted during depreciation runs, and the category CRUD service.

Architecture position
---------------------
``CategoryRegistry`` is injected into ``DepreciationService`` as a
read-only dependency; it never writes.  ``CategoryService`` is the only
writer of ``depreciation_categories``.

Invariants enforced
-------------------
* Category codes are unique per tenant.
* Rate and useful life are both positive once persisted; whichever one
  the caller omits is derived from the other.
* A category cannot be deleted while any asset references it.
* Rate changes never touch posted ledger rows; they apply to periods
  calculated after the change is committed.

Failure modes
-------------
* Unknown or cross-tenant category id  -> ``CategoryNotFoundError``.
* Duplicate code  -> ``DuplicateCategoryCodeError``.
* Non-positive rate / life  -> ``InvalidCategoryError``.
* Delete while referenced  -> ``CategoryInUseError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence
from uuid import UUID, uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from asset_kernel.db.types import ZERO, round_money
from asset_kernel.exceptions import (
    CategoryInUseError,
    CategoryNotFoundError,
    DuplicateCategoryCodeError,
    InvalidCategoryError,
)
from asset_kernel.logging_config import LogContext, get_logger
from asset_depreciation.models import DepreciationCategory
from asset_depreciation.orm import AssetModel, DepreciationCategoryModel

logger = get_logger("depreciation.categories")

_HUNDRED = Decimal("100")


# ---------------------------------------------------------------------------
# Rate <-> useful life conversions
# ---------------------------------------------------------------------------

def annual_rate_from_useful_life(years: int | Decimal) -> Decimal:
    """
    Straight-line annual rate (percent) for a useful life in years.

    Returns ``Decimal("0")`` for non-positive input; callers must check
    before dividing by the result.
    """
    if years is None or years <= 0:
        return ZERO
    return round_money(_HUNDRED / Decimal(years))


def useful_life_from_annual_rate(rate: Decimal) -> int:
    """
    Useful life in whole years for an annual rate, rounded half-up.

    Returns 0 for non-positive input.
    """
    if rate is None or rate <= 0:
        return 0
    return int((_HUNDRED / Decimal(rate)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


# ---------------------------------------------------------------------------
# Default rate table
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class TaxCategoryDefault:
    """One row of the default rate table used to seed a tenant."""
    code: str
    name: str
    annual_rate_percent: Decimal
    useful_life_years: int
    description: str


# Qatar Tax Authority depreciation rates
DEFAULT_TAX_CATEGORIES: tuple[TaxCategoryDefault, ...] = (
    TaxCategoryDefault(
        code="MACHINERY",
        name="Machinery & Equipment",
        annual_rate_percent=Decimal("15"),
        useful_life_years=7,
        description="Industrial machinery, manufacturing equipment",
    ),
    TaxCategoryDefault(
        code="VEHICLES",
        name="Vehicles",
        annual_rate_percent=Decimal("20"),
        useful_life_years=5,
        description="Cars, trucks, motorcycles, and other vehicles",
    ),
    TaxCategoryDefault(
        code="FURNITURE",
        name="Furniture & Office Equipment",
        annual_rate_percent=Decimal("15"),
        useful_life_years=7,
        description="Office furniture, fixtures, and fittings",
    ),
    TaxCategoryDefault(
        code="COMPUTERS",
        name="Computers & IT Equipment",
        annual_rate_percent=Decimal("33.33"),
        useful_life_years=3,
        description="Computers, laptops, servers, and IT hardware",
    ),
    TaxCategoryDefault(
        code="ELECTRICAL",
        name="Electrical Equipment",
        annual_rate_percent=Decimal("20"),
        useful_life_years=5,
        description="Electrical appliances and equipment",
    ),
)


@dataclass(frozen=True)
class CategorySeedResult:
    """Outcome of seeding one default category."""
    code: str
    status: str  # "created" | "exists"


# ---------------------------------------------------------------------------
# Read-only registry
# ---------------------------------------------------------------------------

class CategoryRegistry:
    """
    Read-only, tenant-scoped category lookups.

    Returns frozen ``DepreciationCategory`` DTOs; callers never see ORM rows.
    """

    def __init__(self, session: Session):
        self._session = session

    def get(self, tenant_id: UUID, code: str) -> DepreciationCategory | None:
        row = self._session.execute(
            select(DepreciationCategoryModel).where(
                DepreciationCategoryModel.tenant_id == tenant_id,
                DepreciationCategoryModel.code == code,
            )
        ).scalar_one_or_none()
        return row.to_dto() if row is not None else None

    def get_by_id(self, tenant_id: UUID, category_id: UUID) -> DepreciationCategory | None:
        row = self._session.get(DepreciationCategoryModel, category_id)
        if row is None or row.tenant_id != tenant_id:
            return None
        return row.to_dto()

    def list(
        self,
        tenant_id: UUID,
        active_only: bool = True,
    ) -> list[DepreciationCategory]:
        stmt = select(DepreciationCategoryModel).where(
            DepreciationCategoryModel.tenant_id == tenant_id,
        )
        if active_only:
            stmt = stmt.where(DepreciationCategoryModel.is_active.is_(True))
        stmt = stmt.order_by(DepreciationCategoryModel.name)
        return [row.to_dto() for row in self._session.execute(stmt).scalars()]


# ---------------------------------------------------------------------------
# CRUD service
# ---------------------------------------------------------------------------

_UPDATABLE_FIELDS = frozenset({
    "name",
    "annual_rate_percent",
    "useful_life_years",
    "salvage_value_percent",
    "asset_classification",
    "description",
    "is_active",
})


def _resolve_rate_and_life(
    code: str,
    annual_rate_percent: Decimal | None,
    useful_life_years: int | None,
) -> tuple[Decimal, int]:
    if annual_rate_percent is None and useful_life_years is None:
        raise InvalidCategoryError(code, "annual rate or useful life is required")

    if annual_rate_percent is None:
        annual_rate_percent = annual_rate_from_useful_life(useful_life_years)
    elif useful_life_years is None:
        useful_life_years = useful_life_from_annual_rate(annual_rate_percent)

    if annual_rate_percent <= 0:
        raise InvalidCategoryError(code, "annual rate must be > 0")
    if useful_life_years <= 0:
        raise InvalidCategoryError(code, "useful life must be > 0")
    return Decimal(annual_rate_percent), int(useful_life_years)


class CategoryService:
    """
    Create, update, delete and seed depreciation categories.

    Contract
    --------
    * Each mutating method owns its transaction boundary: commit on
      success, rollback and re-raise on failure.
    * Returns frozen ``DepreciationCategory`` DTOs.
    """

    def __init__(self, session: Session):
        self._session = session
        self._registry = CategoryRegistry(session)

    @property
    def registry(self) -> CategoryRegistry:
        return self._registry

    def list_categories(
        self,
        tenant_id: UUID,
        active_only: bool = True,
    ) -> list[DepreciationCategory]:
        return self._registry.list(tenant_id, active_only=active_only)

    def create_category(
        self,
        tenant_id: UUID,
        code: str,
        name: str,
        annual_rate_percent: Decimal | None = None,
        useful_life_years: int | None = None,
        salvage_value_percent: Decimal = ZERO,
        asset_classification: str | None = None,
        description: str | None = None,
        actor_id: UUID | None = None,
    ) -> DepreciationCategory:
        """Create a category, deriving the missing one of rate / useful life."""
        rate, life = _resolve_rate_and_life(code, annual_rate_percent, useful_life_years)
        if salvage_value_percent < 0 or salvage_value_percent >= _HUNDRED:
            raise InvalidCategoryError(code, "salvage value percent must be in [0, 100)")

        if self._registry.get(tenant_id, code) is not None:
            raise DuplicateCategoryCodeError(code)

        dto = DepreciationCategory(
            id=uuid4(),
            tenant_id=tenant_id,
            code=code,
            name=name,
            annual_rate_percent=rate,
            useful_life_years=life,
            salvage_value_percent=salvage_value_percent,
            asset_classification=asset_classification,
            description=description,
        )
        try:
            self._session.add(
                DepreciationCategoryModel.from_dto(dto, created_by_id=actor_id)
            )
            self._session.flush()
        except IntegrityError:
            self._session.rollback()
            raise DuplicateCategoryCodeError(code)
        except Exception:
            self._session.rollback()
            raise

        self._session.commit()
        logger.info(
            "depreciation_category_created",
            extra={
                "tenant_id": str(tenant_id),
                "category_code": code,
                "annual_rate_percent": str(rate),
                "useful_life_years": life,
            },
        )
        return dto

    def update_category(
        self,
        tenant_id: UUID,
        category_id: UUID,
        actor_id: UUID | None = None,
        **changes,
    ) -> DepreciationCategory:
        """
        Update mutable fields of a category.

        Supplying only one of ``annual_rate_percent`` / ``useful_life_years``
        re-derives the other.  Posted ledger rows are unaffected.
        """
        unknown = set(changes) - _UPDATABLE_FIELDS
        if unknown:
            raise TypeError(f"Cannot update category fields: {sorted(unknown)}")

        row = self._get_row(tenant_id, category_id)

        if "salvage_value_percent" in changes:
            pct = changes["salvage_value_percent"]
            if pct < 0 or pct >= _HUNDRED:
                raise InvalidCategoryError(
                    row.code, "salvage value percent must be in [0, 100)",
                )

        rate_changed = "annual_rate_percent" in changes
        life_changed = "useful_life_years" in changes
        if rate_changed or life_changed:
            rate, life = _resolve_rate_and_life(
                row.code,
                changes.pop("annual_rate_percent", None),
                changes.pop("useful_life_years", None),
            )
            row.annual_rate_percent = rate
            row.useful_life_years = life

        for field_name, value in changes.items():
            setattr(row, field_name, value)
        row.updated_by_id = actor_id

        try:
            self._session.flush()
        except Exception:
            self._session.rollback()
            raise
        self._session.commit()

        logger.info(
            "depreciation_category_updated",
            extra={
                "tenant_id": str(tenant_id),
                "category_id": str(category_id),
                "category_code": row.code,
                "rate_or_life_changed": rate_changed or life_changed,
            },
        )
        return row.to_dto()

    def delete_category(self, tenant_id: UUID, category_id: UUID) -> None:
        """Delete a category no asset references."""
        row = self._get_row(tenant_id, category_id)

        asset_count = self._session.execute(
            select(func.count(AssetModel.id)).where(
                AssetModel.depreciation_category_id == category_id,
            )
        ).scalar_one()
        if asset_count:
            logger.warning(
                "depreciation_category_delete_rejected",
                extra={
                    "category_id": str(category_id),
                    "asset_count": asset_count,
                },
            )
            raise CategoryInUseError(str(category_id), asset_count)

        try:
            self._session.delete(row)
            self._session.flush()
        except Exception:
            self._session.rollback()
            raise
        self._session.commit()

        logger.info(
            "depreciation_category_deleted",
            extra={"tenant_id": str(tenant_id), "category_id": str(category_id)},
        )

    def seed_default_categories(
        self,
        tenant_id: UUID,
        actor_id: UUID | None = None,
        defaults: Sequence[TaxCategoryDefault] = DEFAULT_TAX_CATEGORIES,
    ) -> list[CategorySeedResult]:
        """Create any missing default categories; existing codes are left alone."""
        results: list[CategorySeedResult] = []
        with LogContext.bind(tenant_id=tenant_id, actor_id=actor_id):
            for default in defaults:
                if self._registry.get(tenant_id, default.code) is not None:
                    results.append(CategorySeedResult(default.code, "exists"))
                    continue
                self.create_category(
                    tenant_id=tenant_id,
                    code=default.code,
                    name=default.name,
                    annual_rate_percent=default.annual_rate_percent,
                    useful_life_years=default.useful_life_years,
                    description=default.description,
                    actor_id=actor_id,
                )
                results.append(CategorySeedResult(default.code, "created"))

            logger.info(
                "depreciation_categories_seeded",
                extra={
                    "created_count": sum(1 for r in results if r.status == "created"),
                    "existing_count": sum(1 for r in results if r.status == "exists"),
                },
            )
        return results

    def _get_row(self, tenant_id: UUID, category_id: UUID) -> DepreciationCategoryModel:
        row = self._session.get(DepreciationCategoryModel, category_id)
        if row is None or row.tenant_id != tenant_id:
            raise CategoryNotFoundError(str(category_id))
        return row
