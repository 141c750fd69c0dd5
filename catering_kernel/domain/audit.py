"""
Audit Trail -- Append-only change records on entities and ledger lines.

Responsibility:
    Builds ``AuditEntry`` values, enforces the "reason required" rule for
    updates and deletes, computes field-level diffs, and is the only place
    an audit history tuple is extended.

Architecture position:
    Kernel > Domain -- pure.  Used by every command module.

Invariants enforced:
    - History only grows: ``append_entry`` returns ``history + (entry,)``.
    - Updated/deleted entries carry a non-empty, stripped reason.
    - ``diff_fields`` stores only fields whose value actually changed.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from catering_kernel.domain.clock import Clock
from catering_kernel.domain.models import Actor, AuditEntry, FieldChange
from catering_kernel.domain.values import AuditAction
from catering_kernel.exceptions import MissingReasonError

CHARGE_CREATED_REASON = "Charge Added: {charge_type}"
PAYMENT_CREATED_REASON = "Payment Added"
EXPENSE_CREATED_REASON = "Expense Added"
ADVANCE_CREATED_REASON = "Advance Payment Added"


def require_reason(reason: str | None, operation: str) -> str:
    """Return the stripped reason.

    Raises:
        MissingReasonError: If ``reason`` is None, empty or whitespace only.
    """
    if reason is None or not reason.strip():
        raise MissingReasonError(operation)
    return reason.strip()


def make_entry(
    actor: Actor,
    clock: Clock,
    action: AuditAction,
    reason: str,
    changes: Iterable[FieldChange] = (),
) -> AuditEntry:
    return AuditEntry(
        timestamp=clock.now(),
        actor_id=actor.actor_id,
        actor_name=actor.actor_name,
        action=action,
        reason=reason,
        changes=tuple(changes),
    )


def append_entry(history: tuple[AuditEntry, ...], entry: AuditEntry) -> tuple[AuditEntry, ...]:
    """The only sanctioned way to extend an audit history."""
    return tuple(history) + (entry,)


def _comparable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, str):
        return value
    if value is None:
        return None
    if isinstance(value, (Decimal, int)) and not isinstance(value, bool):
        return Decimal(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def diff_fields(
    before: Mapping[str, Any],
    after: Mapping[str, Any],
    fields: Iterable[str],
) -> tuple[FieldChange, ...]:
    """
    Field-level diff between two snapshots, in ``fields`` order.

    ``None`` and ``""`` compare equal for text fields so that clearing an
    absent note is not recorded as a change.  Numbers compare by value, so
    ``Decimal("100")`` and ``100`` are the same.
    """
    changes: list[FieldChange] = []
    for name in fields:
        old = before.get(name)
        new = after.get(name)
        old_cmp = _comparable(old)
        new_cmp = _comparable(new)
        if old_cmp in (None, "") and new_cmp in (None, ""):
            continue
        if old_cmp != new_cmp:
            changes.append(FieldChange(field=name, from_value=old, to_value=new))
    return tuple(changes)
