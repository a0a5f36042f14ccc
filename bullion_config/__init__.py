"""
bullion_config -- single public entrypoint for ledger configuration.

Responsibility:
    ``get_active_settings()`` is the only way to obtain settings at
    runtime.  No other component reads the settings file or the
    environment.

Architecture position:
    Configuration sits above ``bullion_kernel`` and below ``bullion_api``.
    The kernel never imports from here; ``LedgerSettings.ledger_rules()``
    translates settings into the kernel's ``LedgerRules``.

Failure modes:
    - ``FileNotFoundError`` -- the settings file does not exist.
    - ``ValueError`` -- a key holds a malformed value.
    - ``yaml.YAMLError`` -- the file is not valid YAML.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from bullion_config.loader import load_yaml_file, parse_settings
from bullion_config.schema import (
    DatabaseSettings,
    LedgerSection,
    LedgerSettings,
    LoggingSettings,
    ToleranceSettings,
)

_logger = logging.getLogger("bullion_kernel.config")

DEFAULT_SETTINGS_PATH = Path(__file__).parent / "defaults" / "ledger.yaml"

DATABASE_URL_ENV = "DATABASE_URL"


def get_active_settings(path: Path | str | None = None) -> LedgerSettings:
    """
    The only public configuration entrypoint.

    Args:
        path: Settings file to load.  Defaults to the packaged
            ``defaults/ledger.yaml``.

    Returns:
        Frozen LedgerSettings.  ``DATABASE_URL`` in the environment
        overrides ``database.url``.
    """
    settings_path = Path(path) if path is not None else DEFAULT_SETTINGS_PATH
    data = load_yaml_file(settings_path)
    settings = parse_settings(
        data,
        source=str(settings_path),
        database_url=os.environ.get(DATABASE_URL_ENV),
    )

    _logger.info(
        "LEDGER_CONFIG_TRACE",
        extra={
            "trace_type": "LEDGER_CONFIG_TRACE",
            "source": settings.source,
            "weight_places": settings.ledger.weight_places,
            "cash_places": settings.ledger.cash_places,
            "tolerance": settings.ledger.tolerance.as_vector().to_dict(),
            "database_dialect": settings.database.url.split(":", 1)[0],
            "database_url_from_env": DATABASE_URL_ENV in os.environ,
        },
    )
    return settings


__all__ = [
    "DEFAULT_SETTINGS_PATH",
    "DatabaseSettings",
    "LedgerSection",
    "LedgerSettings",
    "LoggingSettings",
    "ToleranceSettings",
    "get_active_settings",
]
