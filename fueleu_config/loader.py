"""
Configuration Loader (``fueleu_config.loader``).

Responsibility
--------------
Loads a YAML configuration file and parses it into the frozen
``fueleu_config.schema`` dataclasses.  Runtime callers go through
``fueleu_config.get_active_config()`` rather than calling this directly.

Architecture position
---------------------
**Config layer** -- infrastructure tooling.  Depends only on the kernel's
exception types; no dependency on engines or services.

Invariants enforced
-------------------
* Every numeric value is parsed to a finite ``Decimal`` (never float).
* Malformed values raise ``ConfigurationError`` naming the offending key;
  no silent defaults for values that are present but wrong.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the
  parsed document.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong types or out-of-range values -> ``ConfigurationError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from fueleu_config.schema import BankingConfig, ComplianceConfig, DatabaseConfig
from fueleu_kernel.exceptions import ConfigurationError


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ConfigurationError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(str(path), "top level must be a mapping")
    return data


def parse_decimal(value: Any, key: str, allow_negative: bool = False) -> Decimal:
    """Parse a YAML scalar into a finite Decimal."""
    if isinstance(value, bool) or value is None:
        raise ConfigurationError(key, f"expected a number, got {value!r}")
    try:
        result = Decimal(str(value).strip())
    except InvalidOperation as e:
        raise ConfigurationError(key, f"expected a number, got {value!r}") from e
    if not result.is_finite():
        raise ConfigurationError(key, "must be finite")
    if not allow_negative and result < 0:
        raise ConfigurationError(key, "must not be negative")
    return result


def parse_positive_int(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigurationError(key, f"expected a positive integer, got {value!r}")
    return value


def parse_banking(data: dict[str, Any]) -> BankingConfig:
    """Parse the ``banking`` section."""
    if not isinstance(data, dict):
        raise ConfigurationError("banking", "must be a mapping")
    max_capacity = data.get("max_capacity")
    return BankingConfig(
        validity_years=parse_positive_int(
            data.get("validity_years", 2), "banking.validity_years"
        ),
        max_capacity=(
            parse_decimal(max_capacity, "banking.max_capacity")
            if max_capacity is not None
            else None
        ),
    )


def parse_database(data: dict[str, Any]) -> DatabaseConfig:
    """Parse the ``database`` section."""
    if not isinstance(data, dict):
        raise ConfigurationError("database", "must be a mapping")
    url = data.get("url", "sqlite://")
    if not isinstance(url, str) or not url.strip():
        raise ConfigurationError("database.url", "must be a non-empty string")
    echo = data.get("echo", False)
    if not isinstance(echo, bool):
        raise ConfigurationError("database.echo", f"expected a boolean, got {echo!r}")
    return DatabaseConfig(
        url=url.strip(),
        echo=echo,
        pool_size=parse_positive_int(data.get("pool_size", 10), "database.pool_size"),
    )


def parse_targets(data: dict[str, Any]) -> tuple[tuple[str, Decimal], ...]:
    """Parse ``targets`` into (period, intensity) pairs sorted by period."""
    if not isinstance(data, dict):
        raise ConfigurationError("targets", "must be a mapping of period to intensity")
    return tuple(
        (str(period), parse_decimal(value, f"targets.{period}"))
        for period, value in sorted(data.items(), key=lambda kv: str(kv[0]))
    )


def parse_config(data: dict[str, Any]) -> ComplianceConfig:
    """
    Parse a whole configuration document.

    Postconditions:
        - Returns a frozen ComplianceConfig whose checksum is
          ``compute_checksum(data)``.
    """
    compliance = data.get("compliance", {})
    if not isinstance(compliance, dict):
        raise ConfigurationError("compliance", "must be a mapping")

    version = data.get("version", 1)
    if isinstance(version, bool) or not isinstance(version, int):
        raise ConfigurationError("version", f"expected an integer, got {version!r}")

    return ComplianceConfig(
        config_id=str(data.get("config_id", "default")),
        version=version,
        default_target_ghg_intensity=parse_decimal(
            compliance.get("default_target_ghg_intensity", "89.3368"),
            "compliance.default_target_ghg_intensity",
        ),
        energy_conversion_factor=parse_decimal(
            compliance.get("energy_conversion_factor", "41000"),
            "compliance.energy_conversion_factor",
        ),
        targets=parse_targets(compliance.get("targets", {})),
        banking=parse_banking(data.get("banking", {})),
        database=parse_database(data.get("database", {})),
        checksum=compute_checksum(data),
    )


def load_config(path: Path) -> ComplianceConfig:
    """Load and parse one configuration file."""
    return parse_config(load_yaml_file(path))


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
