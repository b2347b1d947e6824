"""
Memory repositories -- process-local adapters for the domain ports.

Responsibility:
    Dict-backed implementations of the repository ports for tests, tooling
    and single-process deployments.  Rows are stored as the frozen DTOs
    themselves, so nothing handed out can be mutated behind the store's back.

Architecture position:
    Kernel > Repositories -- imperative shell.
    May import from domain/ only.

Invariants enforced:
    - Per-key serialization: ``lock(key)`` holds a re-entrant lock dedicated
      to that pool or ship until the ``with`` block exits.  Writes issued
      inside the block are therefore atomic with respect to other holders
      of the same key.
    - P4: ``delete`` removes the pool and its members under the store lock.
    - P5: ``save_member`` / ``remove_member`` update the member and the pool
      counter under the store lock.  ``save_pool_and_members`` does the same for
      a pool and several members.

Failure modes:
    - Typed NotFound errors where the port contract requires an existing row.
"""

from __future__ import annotations

import threading
from collections import defaultdict
from collections.abc import Generator, Sequence
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
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
from fueleu_kernel.domain.values import ZERO, ensure_aware
from fueleu_kernel.exceptions import (
    BankEntryNotFoundError,
    ComplianceRecordNotFoundError,
    PoolMemberNotFoundError,
    PoolNotFoundError,
    RouteNotFoundError,
)


class _KeyedLocks:
    """Lazily created re-entrant lock per key."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[object, threading.RLock] = {}

    def get(self, key: object) -> threading.RLock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.RLock()
                self._locks[key] = lock
            return lock


class MemoryComplianceRecordRepository:
    """ComplianceRecordRepository held in a dict."""

    def __init__(self) -> None:
        self._store_lock = threading.RLock()
        self._records: dict[UUID, ComplianceRecordInfo] = {}

    def find_by_id(self, record_id: UUID) -> ComplianceRecordInfo | None:
        with self._store_lock:
            return self._records.get(record_id)

    def list_records(
        self,
        ship_id: str | None = None,
        route_id: str | None = None,
        reporting_period: str | None = None,
        status: ComplianceStatus | None = None,
    ) -> list[ComplianceRecordInfo]:
        with self._store_lock:
            records = list(self._records.values())
        matches = [
            r for r in records
            if (ship_id is None or r.ship_id == ship_id)
            and (route_id is None or r.route_id == route_id)
            and (reporting_period is None or r.reporting_period == reporting_period)
            and (status is None or r.compliance_status == status)
        ]
        matches.sort(key=lambda r: str(r.id))
        matches.sort(key=lambda r: r.created_at, reverse=True)
        return matches

    def create(self, record: ComplianceRecordInfo) -> ComplianceRecordInfo:
        with self._store_lock:
            self._records[record.id] = record
        return record

    def update(self, record: ComplianceRecordInfo) -> ComplianceRecordInfo:
        with self._store_lock:
            if record.id not in self._records:
                raise ComplianceRecordNotFoundError(str(record.id))
            self._records[record.id] = record
        return record

    def delete(self, record_id: UUID) -> None:
        with self._store_lock:
            if self._records.pop(record_id, None) is None:
                raise ComplianceRecordNotFoundError(str(record_id))


class MemoryBankEntryRepository:
    """BankEntryRepository held in a dict, with a lock per ship."""

    def __init__(self) -> None:
        self._store_lock = threading.RLock()
        self._ship_locks = _KeyedLocks()
        self._entries: dict[UUID, BankEntryInfo] = {}

    @contextmanager
    def lock(self, ship_id: str) -> Generator[None, None, None]:
        with self._ship_locks.get(ship_id):
            yield

    def find_by_id(self, entry_id: UUID) -> BankEntryInfo | None:
        with self._store_lock:
            return self._entries.get(entry_id)

    def list_entries(
        self,
        ship_id: str | None = None,
        expired: bool | None = None,
        as_of: datetime | None = None,
    ) -> list[BankEntryInfo]:
        if expired is not None and as_of is None:
            raise ValueError("as_of is required when filtering on expired")
        with self._store_lock:
            entries = list(self._entries.values())
        if ship_id is not None:
            entries = [e for e in entries if e.ship_id == ship_id]
        if expired is not None:
            cutoff = ensure_aware(as_of)
            entries = [e for e in entries if e.is_expired(cutoff) == expired]
        entries.sort(key=lambda e: str(e.id))
        entries.sort(key=lambda e: e.banked_at, reverse=True)
        return entries

    def add(self, entry: BankEntryInfo) -> BankEntryInfo:
        with self._store_lock:
            self._entries[entry.id] = entry
        return entry

    def save_remaining(self, entries: Sequence[BankEntryInfo]) -> None:
        with self._store_lock:
            for entry in entries:
                if entry.id not in self._entries:
                    raise BankEntryNotFoundError(str(entry.id))
            for entry in entries:
                self._entries[entry.id] = entry


class MemoryPoolRepository:
    """PoolRepository held in dicts, with a lock per pool."""

    def __init__(self) -> None:
        self._store_lock = threading.RLock()
        self._pool_locks = _KeyedLocks()
        self._pools: dict[UUID, PoolInfo] = {}
        self._members: dict[UUID, dict[str, PoolMemberInfo]] = defaultdict(dict)

    @contextmanager
    def lock(self, pool_id: UUID) -> Generator[PoolInfo | None, None, None]:
        with self._pool_locks.get(pool_id):
            yield self.find_by_id(pool_id)

    def find_by_id(self, pool_id: UUID) -> PoolInfo | None:
        with self._store_lock:
            return self._pools.get(pool_id)

    @staticmethod
    def _newest_first(pools: list[PoolInfo]) -> list[PoolInfo]:
        pools.sort(key=lambda p: str(p.id))
        pools.sort(key=lambda p: p.created_at, reverse=True)
        return pools

    def list_pools(self, status: PoolStatus | None = None) -> list[PoolInfo]:
        with self._store_lock:
            pools = list(self._pools.values())
        if status is not None:
            pools = [p for p in pools if p.status == status]
        return self._newest_first(pools)

    def list_pools_for_ship(self, ship_id: str) -> list[PoolInfo]:
        with self._store_lock:
            pools = [
                self._pools[pool_id]
                for pool_id, members in self._members.items()
                if ship_id in members and pool_id in self._pools
            ]
        return self._newest_first(pools)

    def create(self, pool: PoolInfo) -> PoolInfo:
        with self._store_lock:
            self._pools[pool.id] = pool
        return pool

    def update(self, pool: PoolInfo) -> PoolInfo:
        with self._store_lock:
            if pool.id not in self._pools:
                raise PoolNotFoundError(str(pool.id))
            self._pools[pool.id] = pool
        return pool

    def delete(self, pool_id: UUID) -> None:
        with self._store_lock:
            if self._pools.pop(pool_id, None) is None:
                raise PoolNotFoundError(str(pool_id))
            self._members.pop(pool_id, None)

    def find_member(self, pool_id: UUID, ship_id: str) -> PoolMemberInfo | None:
        with self._store_lock:
            return self._members.get(pool_id, {}).get(ship_id)

    def list_members(self, pool_id: UUID) -> list[PoolMemberInfo]:
        with self._store_lock:
            members = list(self._members.get(pool_id, {}).values())
        members.sort(key=lambda m: (m.joined_at, str(m.id)))
        return members

    def save_member(self, pool: PoolInfo, member: PoolMemberInfo) -> None:
        with self._store_lock:
            if pool.id not in self._pools:
                raise PoolNotFoundError(str(pool.id))
            self._members[pool.id][member.ship_id] = member
            self._pools[pool.id] = pool

    def remove_member(self, pool: PoolInfo, member: PoolMemberInfo) -> None:
        with self._store_lock:
            if pool.id not in self._pools:
                raise PoolNotFoundError(str(pool.id))
            members = self._members.get(pool.id, {})
            if members.pop(member.ship_id, None) is None:
                raise PoolMemberNotFoundError(str(pool.id), member.ship_id)
            self._pools[pool.id] = pool

    def save_pool_and_members(self, pool: PoolInfo, members: Sequence[PoolMemberInfo]) -> None:
        with self._store_lock:
            if pool.id not in self._pools:
                raise PoolNotFoundError(str(pool.id))
            stored = self._members.get(pool.id, {})
            for member in members:
                if member.ship_id not in stored:
                    raise PoolMemberNotFoundError(str(pool.id), member.ship_id)
            for member in members:
                stored[member.ship_id] = member
            self._pools[pool.id] = pool

    def sum_member_allocations(self, pool_id: UUID) -> Decimal:
        with self._store_lock:
            members = list(self._members.get(pool_id, {}).values())
        return sum((m.allocated_units for m in members), ZERO)


class MemoryRouteRepository:
    """RouteRepository held in a dict."""

    def __init__(self) -> None:
        self._store_lock = threading.RLock()
        self._routes: dict[UUID, RouteInfo] = {}

    def find_by_id(self, route_id: UUID) -> RouteInfo | None:
        with self._store_lock:
            return self._routes.get(route_id)

    @staticmethod
    def _newest_first(routes: list[RouteInfo]) -> list[RouteInfo]:
        routes.sort(key=lambda r: str(r.id))
        routes.sort(key=lambda r: r.created_at, reverse=True)
        return routes

    def list_routes(self) -> list[RouteInfo]:
        with self._store_lock:
            routes = list(self._routes.values())
        return self._newest_first(routes)

    def find_by_ports(self, origin_port: str, destination_port: str) -> list[RouteInfo]:
        with self._store_lock:
            routes = [
                r for r in self._routes.values()
                if r.origin_port == origin_port and r.destination_port == destination_port
            ]
        return self._newest_first(routes)

    def create(self, route: RouteInfo) -> RouteInfo:
        with self._store_lock:
            self._routes[route.id] = route
        return route

    def update(self, route: RouteInfo) -> RouteInfo:
        with self._store_lock:
            if route.id not in self._routes:
                raise RouteNotFoundError(str(route.id))
            self._routes[route.id] = route
        return route

    def delete(self, route_id: UUID) -> None:
        with self._store_lock:
            if self._routes.pop(route_id, None) is None:
                raise RouteNotFoundError(str(route_id))

    def exists(self, route_id: UUID) -> bool:
        with self._store_lock:
            return route_id in self._routes
