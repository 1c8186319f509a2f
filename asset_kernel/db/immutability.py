"""
Module: asset_kernel.db.immutability
Responsibility: ORM event listeners that make ledger tables append-only.
Architecture position: Kernel > DB.  Models opt in via register_append_only();
    the kernel never imports asset_depreciation models directly.

Invariants enforced:
    - Rows of an append-only model can be INSERTed but never UPDATEd or
      DELETEd through the ORM.  Audit metadata (updated_at, updated_by_id)
      is the only exception.

Failure modes:
    - ImmutabilityViolationError raised from before_update / before_delete,
      which aborts the flush.
"""

from sqlalchemy import event, inspect

from asset_kernel.exceptions import ImmutabilityViolationError
from asset_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_FIELDS = frozenset({"updated_at", "updated_by_id"})


def _changed_fields(target) -> list[str]:
    state = inspect(target)
    changed = []
    for attr in state.attrs:
        if attr.key in _AUDIT_FIELDS:
            continue
        if attr.history.has_changes():
            changed.append(attr.key)
    return changed


def _make_update_guard(entity_type: str):
    def _check_update(mapper, connection, target):
        changed = _changed_fields(target)
        if not changed:
            return
        logger.error(
            "immutability_violation_blocked",
            extra={
                "entity_type": entity_type,
                "entity_id": str(target.id),
                "operation": "UPDATE",
                "fields": changed,
            },
        )
        raise ImmutabilityViolationError(
            entity_type=entity_type,
            entity_id=str(target.id),
            reason=f"Append-only record cannot be modified (fields: {', '.join(changed)})",
        )

    return _check_update


def _make_delete_guard(entity_type: str):
    def _check_delete(mapper, connection, target):
        logger.error(
            "immutability_violation_blocked",
            extra={
                "entity_type": entity_type,
                "entity_id": str(target.id),
                "operation": "DELETE",
            },
        )
        raise ImmutabilityViolationError(
            entity_type=entity_type,
            entity_id=str(target.id),
            reason="Append-only record cannot be deleted",
        )

    return _check_delete


_registered: set[type] = set()


def register_append_only(model: type, entity_type: str) -> None:
    """Install update/delete guards on ``model`` (idempotent)."""
    if model in _registered:
        return
    event.listen(model, "before_update", _make_update_guard(entity_type))
    event.listen(model, "before_delete", _make_delete_guard(entity_type))
    _registered.add(model)
