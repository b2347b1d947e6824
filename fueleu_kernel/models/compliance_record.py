"""
Module: fueleu_kernel.models.compliance_record
Responsibility: ORM persistence for per-ship, per-voyage compliance
    measurements (fuel, energy, GHG intensity) and their compliance status.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Measured fields are stored as Numeric, never float.
    - (ship_id, reporting_period) index supports per-ship period reporting.

Failure modes:
    - IntegrityError on a missing required column.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from fueleu_kernel.db.base import Base


class ComplianceRecordModel(Base):
    """
    Persistent storage for one ship / voyage / reporting-period measurement.

    Non-goals:
        - Does not compute ghg_intensity; the value arrives from upstream.
    """

    __tablename__ = "compliance_records"

    __table_args__ = (
        Index("idx_compliance_ship_period", "ship_id", "reporting_period"),
        Index("idx_compliance_route", "route_id"),
        Index("idx_compliance_status", "compliance_status"),
    )

    ship_id: Mapped[str] = mapped_column(String(100), nullable=False)

    route_id: Mapped[str] = mapped_column(String(100), nullable=False)

    voyage_id: Mapped[str] = mapped_column(String(100), nullable=False)

    fuel_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # Tonnes
    fuel_consumption: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    # MJ
    energy_content: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
    )

    # gCO2eq/MJ
    ghg_intensity: Mapped[Decimal] = mapped_column(
        Numeric(20, 9),
        nullable=False,
    )

    compliance_status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="PENDING",
    )

    # e.g. "2024"
    reporting_period: Mapped[str] = mapped_column(String(20), nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<ComplianceRecord {self.id}: ship={self.ship_id} "
            f"period={self.reporting_period} status={self.compliance_status}>"
        )
