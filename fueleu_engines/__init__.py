"""
Module: fueleu_engines
Responsibility:
    Package entrypoint that re-exports the public symbols of the pure
    compliance engines.  This is the canonical import surface for
    fueleu_services and for callers that need a calculation without
    persistence.

Architecture position:
    Engines -- pure calculation layer.  No I/O apart from log records.
    May only import fueleu_kernel.domain, fueleu_kernel.exceptions and
    fueleu_kernel.logging_config (and sibling engine modules).
    MUST NOT import fueleu_services.

Invariants enforced:
    - Purity: engines never read the clock.  Dates are parameters;
      services supply "now" from their Clock.
    - Decimal-only arithmetic.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine invocation is traced via ``@traced_engine`` (see
    ``fueleu_engines.tracer``), emitting FUELEU_ENGINE_TRACE records.

Usage:
    from fueleu_engines import BalanceCalculator, BankingEngine, MetricsAggregator
    from fueleu_engines import pooling
"""

from fueleu_engines import pooling
from fueleu_engines.balance import (
    DEFAULT_ENERGY_CONVERSION_FACTOR,
    DEFAULT_TARGET_GHG_INTENSITY,
    BalanceCalculator,
    BalanceResult,
    ComparisonResult,
)
from fueleu_engines.banking import (
    DEFAULT_BANKING_VALIDITY_YEARS,
    ApplicationResult,
    BankingEngine,
    BankingResult,
    EntryConsumption,
    is_expired,
    total_unexpired,
)
from fueleu_engines.metrics import ComplianceMetrics, MetricsAggregator
from fueleu_engines.pooling import (
    ALLOWED_TRANSITIONS,
    ReconciliationResult,
    check_conservation,
    contribution_percent,
    create_pool,
    reconcile,
    transition_status,
)
from fueleu_engines.tracer import compute_input_fingerprint, traced_engine

__all__ = [
    "pooling",
    "DEFAULT_ENERGY_CONVERSION_FACTOR",
    "DEFAULT_TARGET_GHG_INTENSITY",
    "BalanceCalculator",
    "BalanceResult",
    "ComparisonResult",
    "DEFAULT_BANKING_VALIDITY_YEARS",
    "ApplicationResult",
    "BankingEngine",
    "BankingResult",
    "EntryConsumption",
    "is_expired",
    "total_unexpired",
    "ComplianceMetrics",
    "MetricsAggregator",
    "ALLOWED_TRANSITIONS",
    "ReconciliationResult",
    "check_conservation",
    "contribution_percent",
    "create_pool",
    "reconcile",
    "transition_status",
    "compute_input_fingerprint",
    "traced_engine",
]
