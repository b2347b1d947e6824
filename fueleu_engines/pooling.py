"""
fueleu_engines.pooling -- Pool construction, conservation and lifecycle rules.

Responsibility:
    Pure rules for compliance pools: building a new pool, computing a
    member's contribution percentage, checking that an allocation keeps the
    pool within its capacity, reconciling the allocated counter against the
    member rows, and validating status transitions.

Architecture position:
    Engines -- pure calculation layer.  No I/O beyond the per-call trace line.
    May only import fueleu_kernel.domain and fueleu_kernel.exceptions.
    Consumed by fueleu_services.pool_allocator.

Invariants enforced:
    P1 -- 0 <= allocated <= total after every accepted allocation.
    P2 -- start_date < end_date; trimmed name non-empty.
    P5 -- counter == sum(member allocations), checked by ``reconcile``.
    P6 -- Status transitions follow ALLOWED_TRANSITIONS; CLOSED is terminal.

Failure modes:
    - ValidationError on blank name or start_date >= end_date.
    - ConservationViolationError when an allocation would exceed the total.
    - ReconciliationMismatchError (a ConservationViolationError) when the
      counter and the member sum disagree.
    - InvalidPoolTransitionError on a disallowed status change.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from fueleu_engines.tracer import traced_engine
from fueleu_kernel.domain.dtos import PoolInfo, PoolMemberInfo, PoolStatus, PoolType
from fueleu_kernel.domain.values import (
    HUNDRED,
    ONE,
    ZERO,
    Numeric,
    ensure_aware,
    require_non_negative,
    to_enum,
)
from fueleu_kernel.exceptions import (
    ConservationViolationError,
    InvalidPoolTransitionError,
    ReconciliationMismatchError,
    ValidationError,
)

# INVARIANT P6
ALLOWED_TRANSITIONS: dict[PoolStatus, frozenset[PoolStatus]] = {
    PoolStatus.PENDING: frozenset(
        {PoolStatus.ACTIVE, PoolStatus.SUSPENDED, PoolStatus.CLOSED}
    ),
    PoolStatus.ACTIVE: frozenset({PoolStatus.SUSPENDED, PoolStatus.CLOSED}),
    PoolStatus.SUSPENDED: frozenset({PoolStatus.ACTIVE, PoolStatus.CLOSED}),
    PoolStatus.CLOSED: frozenset(),
}


@dataclass(frozen=True)
class ReconciliationResult:
    """Counter against member sum for one pool."""

    pool_id: UUID
    counter_units: Decimal
    member_sum: Decimal
    member_count: int

    @property
    def is_balanced(self) -> bool:
        return self.counter_units == self.member_sum

    @property
    def discrepancy(self) -> Decimal:
        return self.counter_units - self.member_sum


def validate_name(name: str) -> str:
    """Return the trimmed name, rejecting blank input."""
    trimmed = (name or "").strip()
    if not trimmed:
        raise ValidationError("name", name, "Pool name cannot be empty")
    return trimmed


def validate_dates(start_date: date, end_date: date) -> None:
    if start_date >= end_date:
        raise ValidationError(
            "start_date",
            start_date,
            f"Start date must be before end date ({end_date})",
        )


def _trim_description(description: str | None) -> str | None:
    if description is None:
        return None
    return description.strip()


@traced_engine(
    "pooling",
    "1.0",
    fingerprint_fields=("name", "pool_type", "start_date", "end_date"),
)
def create_pool(
    pool_id: UUID,
    name: str,
    pool_type: PoolType,
    start_date: date,
    end_date: date,
    created_at: datetime,
    description: str | None = None,
    total_compliance_units: Numeric = ZERO,
) -> PoolInfo:
    """
    Build a new PENDING pool with nothing allocated.

    Name and description are trimmed.  The total defaults to zero and is
    normally set later through an update.

    Raises:
        ValidationError: Blank name, start_date >= end_date, or a negative
            total.
    """
    validate_dates(start_date, end_date)
    trimmed_name = validate_name(name)
    total = require_non_negative(total_compliance_units, "total_compliance_units")
    created_at = ensure_aware(created_at)

    return PoolInfo(
        id=pool_id,
        name=trimmed_name,
        description=_trim_description(description),
        pool_type=to_enum(PoolType, pool_type, "pool_type"),
        status=PoolStatus.PENDING,
        start_date=start_date,
        end_date=end_date,
        total_compliance_units=total,
        allocated_compliance_units=ZERO,
        created_at=created_at,
        updated_at=created_at,
    )


def contribution_percent(units: Decimal, total: Decimal) -> Decimal:
    """
    Member allocation as a percentage of the pool total.

    A zero total is treated as 1, so a pool without capacity reports the
    raw unit count as its percentage.
    """
    denominator = total if total != ZERO else ONE
    return units / denominator * HUNDRED


def check_conservation(pool: PoolInfo, additional_units: Decimal) -> Decimal:
    """
    Return the pool's allocated total after adding ``additional_units``.

    Raises:
        ConservationViolationError: If the result would exceed the total.
    """
    new_allocated = pool.allocated_compliance_units + additional_units
    # INVARIANT P1
    if new_allocated > pool.total_compliance_units:
        raise ConservationViolationError(
            pool_id=str(pool.id),
            total_units=str(pool.total_compliance_units),
            allocated_units=str(pool.allocated_compliance_units),
            requested_units=str(additional_units),
        )
    return new_allocated


def reconcile(
    pool: PoolInfo,
    members: Iterable[PoolMemberInfo],
) -> ReconciliationResult:
    """
    Compare the pool counter with the sum of its member allocations.

    Does not log; PoolAllocator.reconcile_pool logs a mismatch at ERROR
    before re-raising it.

    Raises:
        ReconciliationMismatchError: If they differ.
    """
    allocations = [m.allocated_units for m in members]
    result = ReconciliationResult(
        pool_id=pool.id,
        counter_units=pool.allocated_compliance_units,
        member_sum=sum(allocations, ZERO),
        member_count=len(allocations),
    )
    # INVARIANT P5
    if not result.is_balanced:
        raise ReconciliationMismatchError(
            pool_id=str(pool.id),
            counter_units=str(result.counter_units),
            member_sum=str(result.member_sum),
        )
    return result


def transition_status(
    pool: PoolInfo,
    new_status: PoolStatus,
    updated_at: datetime,
) -> PoolInfo:
    """
    Return ``pool`` moved to ``new_status``.

    Setting the current status again is a no-op.

    Raises:
        InvalidPoolTransitionError: If the move is not allowed.
    """
    new_status = to_enum(PoolStatus, new_status, "status")
    if new_status == pool.status:
        return pool
    if new_status not in ALLOWED_TRANSITIONS[pool.status]:
        raise InvalidPoolTransitionError(
            pool_id=str(pool.id),
            from_status=pool.status.value,
            to_status=new_status.value,
        )
    return replace(pool, status=new_status, updated_at=ensure_aware(updated_at))
