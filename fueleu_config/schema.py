"""
ComplianceConfig schema.

Frozen, typed form of a compliance configuration file.  The loader parses
YAML into these types; services receive a ComplianceConfig and never read
files or environment variables themselves.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

# ---------------------------------------------------------------------------
# Banking
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BankingConfig:
    """Defaults for banking deposits."""

    validity_years: int = 2
    max_capacity: Decimal | None = None  # None means unbounded


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings handed to Database.from_config."""

    url: str = "sqlite://"
    echo: bool = False
    pool_size: int = 10


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ComplianceConfig:
    """
    Complete compliance configuration.

    ``targets`` maps a reporting period (e.g. "2025") to the target GHG
    intensity in gCO2eq/MJ; periods without an entry use the default.
    """

    config_id: str
    version: int
    default_target_ghg_intensity: Decimal = Decimal("89.3368")
    energy_conversion_factor: Decimal = Decimal("41000")
    targets: tuple[tuple[str, Decimal], ...] = ()
    banking: BankingConfig = field(default_factory=BankingConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    checksum: str = ""

    def target_for(self, reporting_period: str | None) -> Decimal:
        """Target intensity for a reporting period."""
        if reporting_period is not None:
            for period, target in self.targets:
                if period == reporting_period:
                    return target
        return self.default_target_ghg_intensity
