"""
Settings schema.

The YAML file is parsed into these frozen dataclasses by the loader; the
rest of the system only ever sees a ``LedgerSettings``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from bullion_kernel.domain.rules import LedgerRules
from bullion_kernel.domain.values import AssetVector


@dataclass(frozen=True)
class ToleranceSettings:
    """Per-dimension settlement epsilon."""

    gold: Decimal = Decimal("0.005")
    silver: Decimal = Decimal("0.005")
    cash: Decimal = Decimal("1.00")

    def as_vector(self) -> AssetVector:
        return AssetVector(gold=self.gold, silver=self.silver, cash=self.cash)


@dataclass(frozen=True)
class LedgerSection:
    weight_places: int = 3
    cash_places: int = 2
    rate_places: int = 4
    tolerance: ToleranceSettings = field(default_factory=ToleranceSettings)


@dataclass(frozen=True)
class DatabaseSettings:
    url: str = "sqlite:///bullion_ledger.db"
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10

    def engine_options(self) -> dict[str, object]:
        return {
            "echo": self.echo,
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
        }


@dataclass(frozen=True)
class LoggingSettings:
    level: str = "INFO"


@dataclass(frozen=True)
class LedgerSettings:
    """Everything the ledger reads from configuration."""

    ledger: LedgerSection = field(default_factory=LedgerSection)
    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)
    source: str | None = None

    def ledger_rules(self) -> LedgerRules:
        """Translate the ledger section into the kernel's rules object."""
        return LedgerRules(
            weight_places=self.ledger.weight_places,
            cash_places=self.ledger.cash_places,
            rate_places=self.ledger.rate_places,
            tolerance=self.ledger.tolerance.as_vector(),
        )
