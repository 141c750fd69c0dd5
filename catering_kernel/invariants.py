"""
Ledger Invariants Contract.

These invariants are structural law for every Event and Client aggregate.
No configuration file or permission preset may override them.

This module exists solely to declare these invariants explicitly. The
enforcement is distributed across the domain commands (ledger, lifecycle),
the aggregator, and the document store.
"""

from enum import Enum, unique


@unique
class LedgerInvariant(str, Enum):
    """Non-configurable invariants enforced by the kernel.

    Each value names one structural guarantee that the kernel provides
    unconditionally.
    """

    AUDIT_APPEND_ONLY = "audit_append_only"
    """History lists only grow. Prior entries are never edited or removed.
    Enforced by ``domain.audit.append_entry``."""

    REASON_ON_CHANGE = "reason_on_change"
    """Updates, deletes, cancellations and lost transitions carry a
    non-empty reason. Enforced by ``domain.audit.require_reason``."""

    SOFT_DELETE_ONLY = "soft_delete_only"
    """Ledger entries are flagged ``is_deleted`` and never physically
    removed. Deleted entries contribute zero to every aggregate."""

    DERIVED_SPECIAL_AMOUNTS = "derived_special_amounts"
    """Reserved charge types take their amount from the charge calculator,
    never from caller input."""

    TERMINAL_LOCK = "terminal_lock"
    """Lost and cancelled events are finalized and reject ledger and menu
    mutations. Enforced by ``domain.lifecycle.assert_ledger_editable``."""

    PRICING_MODEL_EXCLUSIVITY = "pricing_model_exclusivity"
    """Fields not applicable to the pricing model are zero."""

    VERSIONED_WRITES = "versioned_writes"
    """Whole-document writes carry the version that was read; stale writes
    raise ConflictError. Enforced by the document store."""


# All invariants as a frozenset for programmatic checks.
ALL_LEDGER_INVARIANTS: frozenset[LedgerInvariant] = frozenset(LedgerInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_kernel_boundary.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "catering_services",
    "catering_config",
)
