"""
LedgerConfig schema.

Frozen dataclasses for the human-authored ledger configuration.  YAML is
parsed into these types by the loader; bridges turn them into the kernel's
own inputs (``LostReasonRule`` maps, ``AppPermissions`` snapshots).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# ---------------------------------------------------------------------------
# Lookup lists
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LostReasonDef:
    """A selectable reason for losing a lead."""

    code: str
    label: str
    requires_competitor: bool = False


@dataclass(frozen=True)
class CompetitorDef:
    """A competing caterer a lead can be lost to."""

    id: str
    name: str


# ---------------------------------------------------------------------------
# Roles
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class RolePresetDef:
    """Named permission preset.

    ``permissions`` is keyed by scope name (``financeCore``, ...,
    ``allowEventCancellation``) exactly as the permission resolver emits it.
    """

    name: str
    permissions: dict[str, Any] = field(default_factory=dict)
    description: str = ""


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class LedgerConfig:
    """The complete ledger configuration.  Sole runtime config artifact."""

    config_id: str
    version: int
    lost_reasons: tuple[LostReasonDef, ...] = ()
    competitors: tuple[CompetitorDef, ...] = ()
    payment_modes: tuple[str, ...] = ()
    expense_categories: tuple[str, ...] = ()
    charge_types: tuple[str, ...] = ()
    role_presets: tuple[RolePresetDef, ...] = ()
    checksum: str = ""

    def lost_reason(self, code: str) -> LostReasonDef | None:
        return next((r for r in self.lost_reasons if r.code == code), None)

    def competitor(self, competitor_id: str) -> CompetitorDef | None:
        return next((c for c in self.competitors if c.id == competitor_id), None)

    def role_preset(self, name: str) -> RolePresetDef | None:
        return next((r for r in self.role_presets if r.name == name), None)
