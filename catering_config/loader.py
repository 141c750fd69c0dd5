"""
Configuration loader (``catering_config.loader``).

Responsibility
--------------
Reads the ledger YAML file and parses it into the frozen dataclasses of
``catering_config.schema``.  Runtime callers go through
``catering_config.get_active_config()`` instead of calling this directly.

Invariants enforced
-------------------
* Required keys raise ``KeyError``; malformed values raise ``ValueError``.
  There are no silent defaults for required fields.
* Codes in each lookup list are unique.
* ``compute_checksum`` is a deterministic SHA-256 over the parsed data.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any

import yaml

from catering_config.schema import (
    CompetitorDef,
    LedgerConfig,
    LostReasonDef,
    RolePresetDef,
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file and return its contents as a dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def _require_unique(kind: str, keys: list[str]) -> None:
    seen: set[str] = set()
    for key in keys:
        if key in seen:
            raise ValueError(f"Duplicate {kind} {key!r} in ledger configuration")
        seen.add(key)


def _string_list(data: dict[str, Any], key: str, kind: str) -> tuple[str, ...]:
    values = data.get(key) or []
    if not isinstance(values, list):
        raise ValueError(f"'{key}' must be a list, got {type(values).__name__}")
    result = tuple(str(v).strip() for v in values)
    _require_unique(kind, list(result))
    return result


def parse_lost_reason(data: dict[str, Any]) -> LostReasonDef:
    """Parse a LostReasonDef.  ``label`` defaults to the code."""
    code = str(data["code"]).strip()
    if not code:
        raise ValueError("Lost reason code must not be blank")
    return LostReasonDef(
        code=code,
        label=str(data.get("label") or code),
        requires_competitor=bool(data.get("requires_competitor", False)),
    )


def parse_competitor(data: dict[str, Any]) -> CompetitorDef:
    return CompetitorDef(id=str(data["id"]).strip(), name=str(data["name"]))


def parse_role_preset(name: str, data: dict[str, Any]) -> RolePresetDef:
    permissions = data.get("permissions") or {}
    if not isinstance(permissions, dict):
        raise ValueError(f"Role preset {name!r}: 'permissions' must be a mapping")
    return RolePresetDef(
        name=name,
        permissions=dict(permissions),
        description=str(data.get("description", "")),
    )


def parse_ledger_config(data: dict[str, Any]) -> LedgerConfig:
    """
    Parse a complete LedgerConfig from the YAML root mapping.

    Raises:
        KeyError: ``config_id`` or ``version`` is missing.
        ValueError: A list is malformed or holds duplicates.
    """
    lost_reasons = tuple(parse_lost_reason(r) for r in data.get("lost_reasons") or [])
    _require_unique("lost reason", [r.code for r in lost_reasons])

    competitors = tuple(parse_competitor(c) for c in data.get("competitors") or [])
    _require_unique("competitor", [c.id for c in competitors])

    presets_raw = data.get("role_presets") or {}
    if not isinstance(presets_raw, dict):
        raise ValueError("'role_presets' must be a mapping of name to preset")
    role_presets = tuple(
        parse_role_preset(str(name), preset or {})
        for name, preset in presets_raw.items()
    )

    return LedgerConfig(
        config_id=str(data["config_id"]),
        version=int(data["version"]),
        lost_reasons=lost_reasons,
        competitors=competitors,
        payment_modes=_string_list(data, "payment_modes", "payment mode"),
        expense_categories=_string_list(data, "expense_categories", "expense category"),
        charge_types=_string_list(data, "charge_types", "charge type"),
        role_presets=role_presets,
        checksum=compute_checksum(data),
    )


def load_ledger_config(path: Path) -> LedgerConfig:
    """Load and parse a ledger configuration file."""
    return parse_ledger_config(load_yaml_file(path))
