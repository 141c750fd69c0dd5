"""
catering_config -- single public entrypoint for ledger configuration.

Responsibility:
    Provides the only way to obtain configuration at runtime through
    ``get_active_config()``.  Returns a frozen ``LedgerConfig``: lost
    reasons, competitors, payment modes, expense categories, charge types
    and role permission presets.

Architecture position:
    Configuration.  This package sits above ``catering_kernel`` and below
    ``catering_services``.  The kernel must never import from
    ``catering_config``; ``bridges`` translates config into kernel inputs.

Failure modes:
    - ``FileNotFoundError`` -- the configuration file does not exist.
    - ``KeyError`` / ``ValueError`` -- schema validation failures.
    - ``yaml.YAMLError`` -- the file is not valid YAML.

Audit relevance:
    Every load emits a ``ledger_config_loaded`` log entry carrying the
    config id, version and checksum so that recorded lost reasons and
    permission decisions can be tied back to the exact file that governed
    them.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from catering_config.loader import load_ledger_config
from catering_config.schema import (
    CompetitorDef,
    LedgerConfig,
    LostReasonDef,
    RolePresetDef,
)

_logger = logging.getLogger("catering_kernel.config")

DEFAULT_CONFIG_PATH = Path(__file__).parent / "defaults" / "ledger.yaml"


def get_active_config(path: Path | None = None) -> LedgerConfig:
    """The only public configuration entrypoint.

    The default file is parsed once per process; an explicit ``path`` is
    always read fresh.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the configuration is malformed.
    """
    if path is None:
        return _load_default()
    return _load(Path(path))


@lru_cache(maxsize=1)
def _load_default() -> LedgerConfig:
    return _load(DEFAULT_CONFIG_PATH)


def _load(path: Path) -> LedgerConfig:
    config = load_ledger_config(path)
    _logger.info(
        "ledger_config_loaded",
        extra={
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "lost_reason_count": len(config.lost_reasons),
            "role_preset_count": len(config.role_presets),
        },
    )
    return config


def clear_config_cache() -> None:
    """Forget the cached default configuration (tests)."""
    _load_default.cache_clear()


__all__ = [
    "CompetitorDef",
    "DEFAULT_CONFIG_PATH",
    "LedgerConfig",
    "LostReasonDef",
    "RolePresetDef",
    "clear_config_cache",
    "get_active_config",
]
