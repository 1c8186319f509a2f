"""Database layer: declarative bases, engine/session management, money types."""

from asset_kernel.db.base import Base, TenantScopedBase, TrackedBase, UUIDString
from asset_kernel.db.types import ZERO, round_money

__all__ = ["Base", "TenantScopedBase", "TrackedBase", "UUIDString", "ZERO", "round_money"]
