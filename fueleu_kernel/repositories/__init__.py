"""
Repository adapters for the domain ports.

``sql`` works inside a caller-owned SQLAlchemy Session; ``memory`` keeps
everything in process and is thread-safe.
"""

from fueleu_kernel.repositories.memory import (
    MemoryBankEntryRepository,
    MemoryComplianceRecordRepository,
    MemoryPoolRepository,
    MemoryRouteRepository,
)
from fueleu_kernel.repositories.sql import (
    SqlBankEntryRepository,
    SqlComplianceRecordRepository,
    SqlPoolRepository,
    SqlRouteRepository,
)

__all__ = [
    "MemoryBankEntryRepository",
    "MemoryComplianceRecordRepository",
    "MemoryPoolRepository",
    "MemoryRouteRepository",
    "SqlBankEntryRepository",
    "SqlComplianceRecordRepository",
    "SqlPoolRepository",
    "SqlRouteRepository",
]
