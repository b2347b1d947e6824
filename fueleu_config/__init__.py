"""
fueleu_config -- single public entrypoint for compliance configuration.

Responsibility:
    Provides the ONLY way to obtain configuration at runtime through
    ``get_active_config()``.  Services receive the returned
    ``ComplianceConfig`` by injection and never read files or environment
    variables themselves.

Architecture position:
    Configuration -- YAML-driven settings.  Sits above ``fueleu_kernel``
    and beside ``fueleu_engines``; consumed by ``fueleu_services``.  The
    kernel MUST NEVER import from ``fueleu_config``.

Invariants enforced:
    - Single entrypoint: all runtime config flows through
      ``get_active_config()``.
    - Deterministic checksum: the same YAML document always produces the
      same ``ComplianceConfig.checksum``.

Failure modes:
    - ``FileNotFoundError`` -- the selected configuration file is missing.
    - ``ConfigurationError`` -- a value is present but malformed.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``FUELEU_CONFIG_TRACE`` log entry containing the config_id, version,
    checksum and source path, tying each computed balance back to the
    targets that governed it.
"""

from __future__ import annotations

import os
from pathlib import Path

from fueleu_config.loader import compute_checksum, load_config
from fueleu_config.schema import BankingConfig, ComplianceConfig, DatabaseConfig
from fueleu_kernel.logging_config import get_logger

_logger = get_logger("config")

# Default configuration sets directory
_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"

# Environment variable naming an alternative configuration file
CONFIG_ENV_VAR = "FUELEU_CONFIG"


def get_active_config(config_path: Path | str | None = None) -> ComplianceConfig:
    """The ONLY public configuration entrypoint.

    Resolution order: the explicit ``config_path``, then the file named by
    the ``FUELEU_CONFIG`` environment variable, then the bundled
    ``sets/default.yaml``.

    Non-goals:
        - Does NOT cache; callers hold the returned config for as long as
          they need it.

    Raises:
        FileNotFoundError: If the resolved file does not exist.
        ConfigurationError: If a value is malformed.
    """
    if config_path is not None:
        path = Path(config_path)
    elif os.environ.get(CONFIG_ENV_VAR):
        path = Path(os.environ[CONFIG_ENV_VAR])
    else:
        path = _DEFAULT_CONFIG_PATH

    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    config = load_config(path)

    _logger.info(
        "FUELEU_CONFIG_TRACE",
        extra={
            "trace_type": "FUELEU_CONFIG_TRACE",
            "config_id": config.config_id,
            "config_version": config.version,
            "checksum": config.checksum,
            "source": str(path),
            "target_count": len(config.targets),
        },
    )
    return config


__all__ = [
    "BankingConfig",
    "CONFIG_ENV_VAR",
    "ComplianceConfig",
    "DatabaseConfig",
    "compute_checksum",
    "get_active_config",
]
