"""Database layer - engine handle, base classes, and storage rules."""

from fueleu_kernel.db.base import Base, UUIDString
from fueleu_kernel.db.engine import Database
from fueleu_kernel.db.types import as_utc, round_units

__all__ = [
    "Base",
    "Database",
    "UUIDString",
    "as_utc",
    "round_units",
]
