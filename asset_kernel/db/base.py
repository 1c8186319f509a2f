"""
Module: asset_kernel.db.base
Responsibility: Declarative bases for the engine's ORM models.
Architecture position: Kernel > DB.  Lowest-level import target; MUST NOT
    import from asset_depreciation.

Invariants enforced:
    - Primary keys and every other UUID column are String(36), so one schema
      serves PostgreSQL and SQLite.
    - Money columns are Numeric(38, 9); rounding to cents happens in domain
      code, never in the column type.
    - Every depreciation table is tenant-scoped (TenantScopedBase).
"""

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import Date, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """UUID <-> 36-character string."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Declarative base: uuid4 primary key plus the shared type map."""

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        date: Date,
        UUID: UUIDString(),
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Adds audit columns.

    The actor columns are nullable because scheduled depreciation runs have
    no human actor.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        server_default=func.now(), onupdate=func.now(),
    )
    created_by_id: Mapped[UUID | None]
    updated_by_id: Mapped[UUID | None]


class TenantScopedBase(TrackedBase):
    """Rows owned by exactly one tenant.  Every lookup filters on tenant_id."""

    __abstract__ = True

    tenant_id: Mapped[UUID]
