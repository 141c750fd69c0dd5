"""
Config -> Kernel bridges.

Functions that convert ``LedgerConfig`` artifacts into kernel inputs.  They
live here (the producer) because the kernel must never import
``catering_config``.

Usage:
    from catering_config.bridges import build_lost_reason_rules, resolve_permissions

    config = get_active_config()
    rules = build_lost_reason_rules(config)
    permissions = resolve_permissions(config, role="staff", role_id="accountant")
"""

from __future__ import annotations

from catering_config.schema import LedgerConfig
from catering_kernel.domain.commands import LostReasonRule
from catering_kernel.domain.permissions import AppPermissions

ADMIN_ROLE = "admin"
KITCHEN_ROLE = "kitchen"
STAFF_ROLE = "staff"


def build_lost_reason_rules(config: LedgerConfig) -> dict[str, LostReasonRule]:
    """Lost reasons keyed by code, as ``transition`` expects them."""
    return {
        r.code: LostReasonRule(
            code=r.code, label=r.label, requires_competitor=r.requires_competitor
        )
        for r in config.lost_reasons
    }


def build_competitor_names(config: LedgerConfig) -> dict[str, str]:
    """Competitor display names keyed by id."""
    return {c.id: c.name for c in config.competitors}


def resolve_permissions(
    config: LedgerConfig, role: str | None, role_id: str | None = None
) -> AppPermissions:
    """Resolve a user's role to a permission snapshot.

    ``admin`` and ``kitchen`` map to their presets; ``staff`` uses the
    preset named by ``role_id``.  A staff user without a matching preset,
    or any unknown role, gets no access.
    """
    if role == STAFF_ROLE:
        preset_name = role_id
    elif role in (ADMIN_ROLE, KITCHEN_ROLE):
        preset_name = role
    else:
        return AppPermissions.no_access()

    preset = config.role_preset(preset_name) if preset_name else None
    if preset is None:
        if role == ADMIN_ROLE:
            return AppPermissions.full_access()
        return AppPermissions.no_access()
    return AppPermissions.from_mapping(preset.permissions)
