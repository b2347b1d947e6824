"""
Module: fueleu_kernel.db.base
Responsibility: Declarative base shared by the compliance record, bank entry,
    banking account, pool, pool member and route tables.
Architecture position: Kernel > DB.  Imported by every module in models/;
    imports nothing from models/, repositories/ or outer layers.

Column conventions:
    - Primary keys are uuid4 values kept in a portable String(36) column, so
      SQLite test databases and PostgreSQL share one schema.
    - Units, intensities and energy are Numeric(38, 9); no float columns.
    - Timestamps carry a timezone.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """uuid.UUID in Python, its canonical 36-character text in the database."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    """Every compliance table gets a uuid4 ``id`` and the column mapping above."""

    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)
