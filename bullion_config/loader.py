"""
YAML loader for ledger settings.

Parses the settings file into the frozen dataclasses of
``bullion_config.schema``.  Malformed values raise; nothing is silently
defaulted except keys that are absent altogether.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from bullion_config.schema import (
    DatabaseSettings,
    LedgerSection,
    LedgerSettings,
    LoggingSettings,
    ToleranceSettings,
)

_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a YAML file as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"'{key}' must be a mapping, got {type(value).__name__}")
    return value


def parse_decimal(value: Any, key: str) -> Decimal:
    # YAML reads 0.005 as a float; go through str to keep the written digits
    if isinstance(value, bool):
        raise ValueError(f"'{key}' must be a number, got {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"'{key}' must be a number, got {value!r}") from e
    if not result.is_finite() or result < 0:
        raise ValueError(f"'{key}' must be a non-negative number, got {value!r}")
    return result


def parse_int(value: Any, key: str, minimum: int = 0) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"'{key}' must be an integer, got {value!r}")
    if value < minimum:
        raise ValueError(f"'{key}' must be >= {minimum}, got {value}")
    return value


def parse_tolerance(data: dict[str, Any]) -> ToleranceSettings:
    defaults = ToleranceSettings()
    return ToleranceSettings(
        gold=parse_decimal(data.get("gold", defaults.gold), "ledger.tolerance.gold"),
        silver=parse_decimal(data.get("silver", defaults.silver), "ledger.tolerance.silver"),
        cash=parse_decimal(data.get("cash", defaults.cash), "ledger.tolerance.cash"),
    )


def parse_ledger_section(data: dict[str, Any]) -> LedgerSection:
    defaults = LedgerSection()
    return LedgerSection(
        weight_places=parse_int(data.get("weight_places", defaults.weight_places), "ledger.weight_places"),
        cash_places=parse_int(data.get("cash_places", defaults.cash_places), "ledger.cash_places"),
        rate_places=parse_int(data.get("rate_places", defaults.rate_places), "ledger.rate_places"),
        tolerance=parse_tolerance(_section(data, "tolerance")),
    )


def parse_database_section(data: dict[str, Any], url_override: str | None = None) -> DatabaseSettings:
    defaults = DatabaseSettings()
    url = url_override or data.get("url", defaults.url)
    if not isinstance(url, str) or not url.strip():
        raise ValueError(f"'database.url' must be a non-empty string, got {url!r}")
    echo = data.get("echo", defaults.echo)
    if not isinstance(echo, bool):
        raise ValueError(f"'database.echo' must be true or false, got {echo!r}")
    return DatabaseSettings(
        url=url.strip(),
        echo=echo,
        pool_size=parse_int(data.get("pool_size", defaults.pool_size), "database.pool_size", 1),
        max_overflow=parse_int(data.get("max_overflow", defaults.max_overflow), "database.max_overflow"),
    )


def parse_logging_section(data: dict[str, Any]) -> LoggingSettings:
    level = str(data.get("level", LoggingSettings().level)).upper()
    if level not in _LOG_LEVELS:
        raise ValueError(f"'logging.level' must be one of {sorted(_LOG_LEVELS)}, got {level!r}")
    return LoggingSettings(level=level)


def parse_settings(
    data: dict[str, Any],
    source: str | None = None,
    database_url: str | None = None,
) -> LedgerSettings:
    """Build LedgerSettings from a parsed YAML mapping."""
    return LedgerSettings(
        ledger=parse_ledger_section(_section(data, "ledger")),
        database=parse_database_section(_section(data, "database"), database_url),
        logging=parse_logging_section(_section(data, "logging")),
        source=source,
    )
