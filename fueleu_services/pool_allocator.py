"""
fueleu_services.pool_allocator -- Pool membership and unit allocation.

Responsibility:
    Create and maintain compliance pools: add and remove member ships,
    allocate units to members, keep the pool's allocated counter equal to
    the sum of member allocations, and audit that equality on demand.
    Lifecycle edits (name, dates, capacity, status) and deletion also go
    through here.

Architecture position:
    Services -- stateful orchestration over engines + kernel ports.
    Composes the pure rules in fueleu_engines.pooling with a PoolRepository.
    With the SQL adapter it flushes inside the caller's transaction and
    never commits.

Invariants enforced:
    P1 -- allocated <= total: every allocation passes ``check_conservation``
          against the pool as read under the pool lock.
    P4 -- ``delete_pool`` removes the pool and its members in one write.
    P5 -- Member row and pool counter are written together
          (``PoolRepository.save_member`` / ``remove_member``).
    Derived contributions -- a capacity change rewrites every member's
          contribution in the same write as the new total.
    P6 -- Status changes follow ``pooling.ALLOWED_TRANSITIONS``.
    Serialization -- read-check-write for one pool always runs inside
          ``repository.lock(pool_id)``.

Failure modes:
    - PoolNotFoundError for an unknown pool.
    - ValidationError for negative units, blank names, bad date ranges, or a
      total below the allocated counter.
    - DuplicateMemberError when adding a ship that is already a member.
    - ConservationViolationError when an allocation would exceed the total
      (logged at WARNING).
    - ReconciliationMismatchError from ``reconcile_pool`` (logged at ERROR,
      never corrected automatically).

Audit relevance:
    Every membership and allocation change is logged with pool_id, ship_id,
    the units involved and the resulting counter.

Usage:
    with database.session_scope() as session:
        allocator = PoolAllocator(SqlPoolRepository(session))
        pool = allocator.create_pool(
            name="North Sea Fleet",
            pool_type=PoolType.FLEET,
            start_date=date(2025, 1, 1),
            end_date=date(2025, 12, 31),
            total_compliance_units=Decimal("100"),
        )
        allocator.add_member(pool.id, "IMO9876543", Decimal("30"))
"""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from fueleu_engines import pooling
from fueleu_engines.pooling import ReconciliationResult
from fueleu_kernel.domain.clock import Clock, SystemClock
from fueleu_kernel.domain.dtos import PoolInfo, PoolMemberInfo, PoolStatus, PoolType
from fueleu_kernel.domain.ports import PoolRepository
from fueleu_kernel.domain.values import ZERO, Numeric, require_non_negative, to_enum
from fueleu_kernel.exceptions import (
    ConservationViolationError,
    DuplicateMemberError,
    PoolNotFoundError,
    ReconciliationMismatchError,
    ValidationError,
)
from fueleu_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.pool_allocator")


class PoolAllocator:
    """
    Manages pools, their members and member allocations.

    Contract:
        Receives a PoolRepository by constructor injection.  All writes for
        one pool are serialized through ``repository.lock(pool_id)``.
    Guarantees:
        - After every successful call, the pool counter equals the sum of
          its member allocations and does not exceed the pool total.
        - Conservation failures abort the operation; nothing is clamped.
    Non-goals:
        - Does NOT commit; the caller owns the transaction.
        - Does NOT recompute the counter from members on read.
    """

    def __init__(
        self,
        repository: PoolRepository,
        clock: Clock | None = None,
    ):
        self._repository = repository
        self._clock = clock or SystemClock()

    # -----------------------------------------------------------------
    # Pool lifecycle
    # -----------------------------------------------------------------

    def create_pool(
        self,
        name: str,
        pool_type: PoolType,
        start_date: date,
        end_date: date,
        description: str | None = None,
        total_compliance_units: Numeric = ZERO,
    ) -> PoolInfo:
        """
        Create a PENDING pool with nothing allocated.

        Raises:
            ValidationError: Blank name, start_date >= end_date, or a
                negative total.
        """
        pool = pooling.create_pool(
            pool_id=uuid4(),
            name=name,
            pool_type=pool_type,
            start_date=start_date,
            end_date=end_date,
            created_at=self._clock.now(),
            description=description,
            total_compliance_units=total_compliance_units,
        )
        pool = self._repository.create(pool)

        logger.info("pool_created", extra={
            "pool_id": str(pool.id),
            "pool_name": pool.name,
            "pool_type": pool.pool_type.value,
            "start_date": pool.start_date.isoformat(),
            "end_date": pool.end_date.isoformat(),
            "total_compliance_units": str(pool.total_compliance_units),
        })
        return pool

    def get_pool(self, pool_id: UUID) -> PoolInfo:
        """Return the pool or raise PoolNotFoundError."""
        pool = self._repository.find_by_id(pool_id)
        if pool is None:
            raise PoolNotFoundError(str(pool_id))
        return pool

    def list_pools(self, status: PoolStatus | None = None) -> list[PoolInfo]:
        """Pools, newest first, optionally filtered by status."""
        if status is not None:
            status = to_enum(PoolStatus, status, "status")
        return self._repository.list_pools(status=status)

    def list_active_pools(self) -> list[PoolInfo]:
        return self._repository.list_pools(status=PoolStatus.ACTIVE)

    def list_pools_for_ship(self, ship_id: str) -> list[PoolInfo]:
        """Pools in which ``ship_id`` is a member, newest first."""
        return self._repository.list_pools_for_ship(ship_id)

    def get_members(self, pool_id: UUID) -> list[PoolMemberInfo]:
        """Members of a pool ordered by join time."""
        self.get_pool(pool_id)
        return self._repository.list_members(pool_id)

    def update_pool(
        self,
        pool_id: UUID,
        *,
        name: str | None = None,
        description: str | None = None,
        pool_type: PoolType | None = None,
        status: PoolStatus | None = None,
        start_date: date | None = None,
        end_date: date | None = None,
        total_compliance_units: Numeric | None = None,
    ) -> PoolInfo:
        """
        Change pool attributes.  Arguments left as None are unchanged.

        Raises:
            PoolNotFoundError: Unknown pool.
            ValidationError: Blank name, bad date range, or a total below
                the allocated counter.
            InvalidPoolTransitionError: Disallowed status change.
        """
        with LogContext.bind(pool_id=pool_id):
            with self._repository.lock(pool_id) as pool:
                if pool is None:
                    raise PoolNotFoundError(str(pool_id))

                now = self._clock.now()
                changes: dict[str, object] = {}
                if name is not None:
                    changes["name"] = pooling.validate_name(name)
                if description is not None:
                    changes["description"] = description.strip()
                if pool_type is not None:
                    changes["pool_type"] = to_enum(PoolType, pool_type, "pool_type")
                if start_date is not None or end_date is not None:
                    new_start = start_date if start_date is not None else pool.start_date
                    new_end = end_date if end_date is not None else pool.end_date
                    pooling.validate_dates(new_start, new_end)
                    changes["start_date"] = new_start
                    changes["end_date"] = new_end
                if total_compliance_units is not None:
                    total = require_non_negative(
                        total_compliance_units, "total_compliance_units"
                    )
                    # INVARIANT P1: capacity may not drop below what is allocated
                    if total < pool.allocated_compliance_units:
                        raise ValidationError(
                            "total_compliance_units",
                            total_compliance_units,
                            f"must not be below allocated units "
                            f"{pool.allocated_compliance_units}",
                        )
                    changes["total_compliance_units"] = total

                updated = pool
                if status is not None:
                    updated = pooling.transition_status(updated, status, now)
                updated = replace(updated, updated_at=now, **changes)
                if "total_compliance_units" in changes:
                    # contribution is derived from the total; rewrite it with the pool
                    members = [
                        replace(
                            member,
                            contribution=pooling.contribution_percent(
                                member.allocated_units, updated.total_compliance_units
                            ),
                        )
                        for member in self._repository.list_members(pool_id)
                    ]
                    self._repository.save_pool_and_members(updated, members)
                    updated = self._repository.find_by_id(pool_id)
                else:
                    updated = self._repository.update(updated)

            logger.info("pool_updated", extra={
                "changed_fields": sorted(changes) + (["status"] if status is not None else []),
                "status": updated.status.value,
                "total_compliance_units": str(updated.total_compliance_units),
            })
        return updated

    def delete_pool(self, pool_id: UUID) -> None:
        """
        Delete a pool together with all of its members.

        Raises:
            PoolNotFoundError: Unknown pool.
        """
        with LogContext.bind(pool_id=pool_id):
            with self._repository.lock(pool_id) as pool:
                if pool is None:
                    raise PoolNotFoundError(str(pool_id))
                member_count = len(self._repository.list_members(pool_id))
                # INVARIANT P4: members go in the same write
                self._repository.delete(pool_id)

            logger.info("pool_deleted", extra={
                "member_count": member_count,
                "allocated_compliance_units": str(pool.allocated_compliance_units),
            })

    # -----------------------------------------------------------------
    # Membership and allocation
    # -----------------------------------------------------------------

    def _check_conservation(self, pool: PoolInfo, ship_id: str, units: Decimal) -> Decimal:
        try:
            return pooling.check_conservation(pool, units)
        except ConservationViolationError:
            logger.warning("pool_conservation_violation", extra={
                "ship_id": ship_id,
                "requested_units": str(units),
                "allocated_compliance_units": str(pool.allocated_compliance_units),
                "total_compliance_units": str(pool.total_compliance_units),
            })
            raise

    def _add_member_locked(
        self,
        pool: PoolInfo,
        ship_id: str,
        units: Decimal,
    ) -> PoolMemberInfo:
        if self._repository.find_member(pool.id, ship_id) is not None:
            raise DuplicateMemberError(str(pool.id), ship_id)

        new_allocated = self._check_conservation(pool, ship_id, units)
        now = self._clock.now()
        member = PoolMemberInfo(
            id=uuid4(),
            pool_id=pool.id,
            ship_id=ship_id,
            allocated_units=units,
            contribution=pooling.contribution_percent(units, pool.total_compliance_units),
            joined_at=now,
        )
        updated_pool = replace(
            pool,
            allocated_compliance_units=new_allocated,
            updated_at=now,
        )
        # INVARIANT P5: member and counter in one write
        self._repository.save_member(updated_pool, member)

        logger.info("pool_member_added", extra={
            "units": str(units),
            "contribution": str(member.contribution),
            "allocated_compliance_units": str(new_allocated),
        })
        return member

    def add_member(self, pool_id: UUID, ship_id: str, units: Numeric) -> PoolMemberInfo:
        """
        Add ``ship_id`` to the pool with an initial allocation.

        Raises:
            PoolNotFoundError: Unknown pool.
            ValidationError: units < 0.
            DuplicateMemberError: The ship is already a member.
            ConservationViolationError: The pool total would be exceeded.
        """
        amount = require_non_negative(units, "units")
        with LogContext.bind(pool_id=pool_id, ship_id=ship_id):
            with self._repository.lock(pool_id) as pool:
                if pool is None:
                    raise PoolNotFoundError(str(pool_id))
                return self._add_member_locked(pool, ship_id, amount)

    def remove_member(self, pool_id: UUID, ship_id: str) -> PoolMemberInfo | None:
        """
        Remove ``ship_id`` from the pool, releasing its allocation.

        A ship that is not a member (or a pool that does not exist) is a
        no-op and returns None.  Otherwise the removed member is returned.
        """
        with LogContext.bind(pool_id=pool_id, ship_id=ship_id):
            with self._repository.lock(pool_id) as pool:
                if pool is None:
                    return None
                member = self._repository.find_member(pool_id, ship_id)
                if member is None:
                    return None

                new_allocated = pool.allocated_compliance_units - member.allocated_units
                updated_pool = replace(
                    pool,
                    allocated_compliance_units=new_allocated,
                    updated_at=self._clock.now(),
                )
                # INVARIANT P5: decrement and delete in one write
                self._repository.remove_member(updated_pool, member)

            logger.info("pool_member_removed", extra={
                "released_units": str(member.allocated_units),
                "allocated_compliance_units": str(new_allocated),
            })
        return member

    def allocate_units(self, pool_id: UUID, ship_id: str, units: Numeric) -> PoolMemberInfo:
        """
        Add ``units`` to a member's allocation, adding the ship if needed.

        Raises:
            PoolNotFoundError: Unknown pool.
            ValidationError: units < 0.
            ConservationViolationError: The pool total would be exceeded.
        """
        amount = require_non_negative(units, "units")
        with LogContext.bind(pool_id=pool_id, ship_id=ship_id):
            with self._repository.lock(pool_id) as pool:
                if pool is None:
                    raise PoolNotFoundError(str(pool_id))

                member = self._repository.find_member(pool_id, ship_id)
                if member is None:
                    return self._add_member_locked(pool, ship_id, amount)

                new_allocated = self._check_conservation(pool, ship_id, amount)
                member_units = member.allocated_units + amount
                updated_member = replace(
                    member,
                    allocated_units=member_units,
                    contribution=pooling.contribution_percent(
                        member_units, pool.total_compliance_units
                    ),
                )
                updated_pool = replace(
                    pool,
                    allocated_compliance_units=new_allocated,
                    updated_at=self._clock.now(),
                )
                self._repository.save_member(updated_pool, updated_member)

            logger.info("pool_units_allocated", extra={
                "units": str(amount),
                "member_allocated_units": str(member_units),
                "allocated_compliance_units": str(new_allocated),
            })
        return updated_member

    # -----------------------------------------------------------------
    # Audit
    # -----------------------------------------------------------------

    def get_total_allocated_units(self, pool_id: UUID) -> Decimal:
        """Sum of member allocations, read from the member rows."""
        return self._repository.sum_member_allocations(pool_id)

    def reconcile_pool(self, pool_id: UUID) -> ReconciliationResult:
        """
        Compare the pool counter with the sum of member allocations.

        Raises:
            PoolNotFoundError: Unknown pool.
            ReconciliationMismatchError: Counter and member sum differ.
        """
        with LogContext.bind(pool_id=pool_id):
            with self._repository.lock(pool_id) as pool:
                if pool is None:
                    raise PoolNotFoundError(str(pool_id))
                members = self._repository.list_members(pool_id)

            try:
                result = pooling.reconcile(pool, members)
            except ReconciliationMismatchError as exc:
                logger.error("pool_reconciliation_mismatch", extra={
                    "counter_units": exc.counter_units,
                    "member_sum": exc.member_sum,
                    "member_count": len(members),
                })
                raise

            logger.info("pool_reconciled", extra={
                "counter_units": str(result.counter_units),
                "member_count": result.member_count,
            })
        return result
