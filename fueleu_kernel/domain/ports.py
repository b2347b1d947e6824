"""
Ports -- Storage-agnostic repository interfaces.

Responsibility:
    Declares the capability set (find / create / update / delete / list,
    plus per-key locking) that the accounting services require from a
    persistence collaborator.  Services receive an implementation by
    constructor injection and never issue queries themselves.

Architecture position:
    Kernel > Domain -- pure interface declarations, zero I/O.
    Implemented by fueleu_kernel.repositories.sql (SQLAlchemy, inside the
    caller's transaction) and fueleu_kernel.repositories.memory (process
    local, thread-safe).

Invariants enforced:
    - Pool counter and member rows change together: ``save_member`` and
      ``remove_member`` each persist the member change and the pool's
      allocated counter as one write.
    - Serialization: ``PoolRepository.lock`` and ``BankEntryRepository.lock``
      hold an exclusive per-key lock for the duration of the ``with`` block
      (SQL adapters: until the enclosing transaction ends).

Failure modes:
    Adapters raise the kernel's typed exceptions for missing rows only where
    the method contract says so; lookups return None.
"""

from __future__ import annotations

from collections.abc import Sequence
from contextlib import AbstractContextManager
from datetime import datetime
from decimal import Decimal
from typing import Protocol
from uuid import UUID

from fueleu_kernel.domain.dtos import (
    BankEntryInfo,
    ComplianceRecordInfo,
    ComplianceStatus,
    PoolInfo,
    PoolMemberInfo,
    PoolStatus,
    RouteInfo,
)


class ComplianceRecordRepository(Protocol):
    """Persistence capability for compliance records."""

    def find_by_id(self, record_id: UUID) -> ComplianceRecordInfo | None: ...

    def list_records(
        self,
        ship_id: str | None = None,
        route_id: str | None = None,
        reporting_period: str | None = None,
        status: ComplianceStatus | None = None,
    ) -> list[ComplianceRecordInfo]:
        """Matching records, newest first."""
        ...

    def create(self, record: ComplianceRecordInfo) -> ComplianceRecordInfo: ...

    def update(self, record: ComplianceRecordInfo) -> ComplianceRecordInfo: ...

    def delete(self, record_id: UUID) -> None: ...


class BankEntryRepository(Protocol):
    """Persistence capability for banked-unit entries, keyed by ship."""

    def lock(self, ship_id: str) -> AbstractContextManager[None]:
        """Serialize banking operations for one ship."""
        ...

    def find_by_id(self, entry_id: UUID) -> BankEntryInfo | None: ...

    def list_entries(
        self,
        ship_id: str | None = None,
        expired: bool | None = None,
        as_of: datetime | None = None,
    ) -> list[BankEntryInfo]:
        """
        Matching entries, most recently banked first.

        ``expired`` filters on ``expiry_date < as_of`` (True) or
        ``expiry_date >= as_of`` (False); ``as_of`` is required with it.
        """
        ...

    def add(self, entry: BankEntryInfo) -> BankEntryInfo: ...

    def save_remaining(self, entries: Sequence[BankEntryInfo]) -> None:
        """Persist new ``remaining_units`` for already-stored entries."""
        ...


class PoolRepository(Protocol):
    """Persistence capability for pools and their members."""

    def lock(self, pool_id: UUID) -> AbstractContextManager[PoolInfo | None]:
        """
        Serialize writes to one pool.

        Yields the pool as read under the lock, or None if it does not exist.
        """
        ...

    def find_by_id(self, pool_id: UUID) -> PoolInfo | None: ...

    def list_pools(self, status: PoolStatus | None = None) -> list[PoolInfo]:
        """Matching pools, newest first."""
        ...

    def list_pools_for_ship(self, ship_id: str) -> list[PoolInfo]: ...

    def create(self, pool: PoolInfo) -> PoolInfo: ...

    def update(self, pool: PoolInfo) -> PoolInfo: ...

    def delete(self, pool_id: UUID) -> None:
        """Delete the pool and all of its members in one write."""
        ...

    def find_member(self, pool_id: UUID, ship_id: str) -> PoolMemberInfo | None: ...

    def list_members(self, pool_id: UUID) -> list[PoolMemberInfo]:
        """Members ordered by join time."""
        ...

    def save_member(self, pool: PoolInfo, member: PoolMemberInfo) -> None:
        """Insert or update ``member`` and persist ``pool``'s counter together."""
        ...

    def remove_member(self, pool: PoolInfo, member: PoolMemberInfo) -> None:
        """Delete ``member`` and persist ``pool``'s counter together."""
        ...

    def save_pool_and_members(self, pool: PoolInfo, members: Sequence[PoolMemberInfo]) -> None:
        """Persist ``pool`` and the given existing members in one write."""
        ...

    def sum_member_allocations(self, pool_id: UUID) -> Decimal: ...


class RouteRepository(Protocol):
    """Persistence capability for the route registry."""

    def find_by_id(self, route_id: UUID) -> RouteInfo | None: ...

    def list_routes(self) -> list[RouteInfo]:
        """All routes, newest first."""
        ...

    def find_by_ports(self, origin_port: str, destination_port: str) -> list[RouteInfo]:
        """Routes joining exactly these ports in this direction, newest first."""
        ...

    def create(self, route: RouteInfo) -> RouteInfo: ...

    def update(self, route: RouteInfo) -> RouteInfo: ...

    def delete(self, route_id: UUID) -> None: ...

    def exists(self, route_id: UUID) -> bool: ...
