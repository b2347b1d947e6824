"""
Pure domain layer.

Data transfer objects, numeric primitives, the clock abstraction and the
repository ports.  No dependencies on SQLAlchemy, the database, or I/O.
"""

from fueleu_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from fueleu_kernel.domain.dtos import (
    BankEntryInfo,
    ComplianceRecordInfo,
    ComplianceStatus,
    FuelType,
    PoolInfo,
    PoolMemberInfo,
    PoolStatus,
    PoolType,
    RouteInfo,
    RouteType,
)
from fueleu_kernel.domain.ports import (
    BankEntryRepository,
    ComplianceRecordRepository,
    PoolRepository,
    RouteRepository,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "BankEntryInfo",
    "ComplianceRecordInfo",
    "ComplianceStatus",
    "FuelType",
    "PoolInfo",
    "PoolMemberInfo",
    "PoolStatus",
    "PoolType",
    "RouteInfo",
    "RouteType",
    "BankEntryRepository",
    "ComplianceRecordRepository",
    "PoolRepository",
    "RouteRepository",
]
