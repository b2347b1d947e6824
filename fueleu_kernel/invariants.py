"""
Kernel Invariants Contract.

These invariants are structural law for banked units and pools.  No
ComplianceConfig value may switch them off; configuration changes targets,
validity and capacity, never whether these rules apply.

This module exists solely to declare the invariants and the short codes
(B1..B8, P1..P6) used in ``# INVARIANT`` comments.  Enforcement is
distributed across the engines, the services, the repositories and the
database constraints on the models.
"""

from enum import Enum, unique


@unique
class BankingInvariant(str, Enum):
    """Guarantees for banked compliance units."""

    B1 = "positive_units_bounded_remaining"
    """units > 0 and 0 <= remaining_units <= units.  CHECK constraints on
    bank_entries plus the BankEntryInfo constructor."""

    B2 = "units_frozen"
    """units never changes after the deposit; only remaining_units
    decreases."""

    B3 = "expired_entries_retained"
    """Expired entries are kept for audit and never deleted."""

    B4 = "per_ship_serialization"
    """Bank and apply operations for one ship run under
    ``BankEntryRepository.lock(ship_id)``."""

    B5 = "expired_entries_unusable"
    """An entry with expiry_date < application_date is never consumed."""

    B6 = "earliest_expiry_first"
    """Consumption order is expiry_date, then banked_at, then id."""

    B7 = "application_conservation"
    """applied_units + remaining_deficit == deficit and no entry gives more
    than its remaining_units."""

    B8 = "capacity_counts_unexpired"
    """The capacity check counts unexpired remaining units only."""


@unique
class PoolInvariant(str, Enum):
    """Guarantees for pools and their members."""

    P1 = "allocation_within_total"
    """0 <= allocated_compliance_units <= total_compliance_units."""

    P2 = "valid_pool_window"
    """start_date < end_date and the trimmed name is non-empty."""

    P3 = "unique_membership"
    """A ship appears at most once in a pool."""

    P4 = "no_orphaned_members"
    """Deleting a pool deletes its members in the same write."""

    P5 = "counter_equals_member_sum"
    """allocated_compliance_units equals the sum of member allocations."""

    P6 = "legal_status_transitions"
    """Status changes follow pooling.ALLOWED_TRANSITIONS; CLOSED is
    terminal."""


# All invariants for programmatic checks.
ALL_KERNEL_INVARIANTS: frozenset[Enum] = frozenset(BankingInvariant) | frozenset(PoolInvariant)

# The kernel package may not import from these packages.
# This is enforced by tests/architecture/test_import_boundaries.py.
FORBIDDEN_KERNEL_IMPORTS: tuple[str, ...] = (
    "fueleu_engines",
    "fueleu_services",
    "fueleu_config",
)

# Engines stay pure: no services, config, persistence or ORM.
FORBIDDEN_ENGINE_IMPORTS: tuple[str, ...] = (
    "fueleu_services",
    "fueleu_config",
    "fueleu_kernel.models",
    "fueleu_kernel.db",
    "fueleu_kernel.repositories",
    "sqlalchemy",
)
