"""
Module: fueleu_kernel.models.route
Responsibility: ORM persistence for the port-to-port routes that compliance
    records refer to.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - distance >= 0 (CHECK constraint).
    - (origin_port, destination_port) index supports lookup by port pair.
      The pair is not unique; several routes may join the same ports.

Failure modes:
    - IntegrityError on CHECK violation or a missing required column.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from fueleu_kernel.db.base import Base


class RouteModel(Base):
    """Persistent storage for one route."""

    __tablename__ = "routes"

    __table_args__ = (
        CheckConstraint("distance >= 0", name="ck_route_distance_non_negative"),
        Index("idx_route_ports", "origin_port", "destination_port"),
        Index("idx_route_created_at", "created_at"),
    )

    origin_port: Mapped[str] = mapped_column(String(100), nullable=False)

    destination_port: Mapped[str] = mapped_column(String(100), nullable=False)

    # Nautical miles
    distance: Mapped[Decimal] = mapped_column(
        Numeric(20, 9),
        nullable=False,
    )

    # INTRA_EU | EXTRA_EU | MIXED
    route_type: Mapped[str] = mapped_column(String(20), nullable=False)

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
            f"<Route {self.id}: {self.origin_port} -> {self.destination_port} "
            f"type={self.route_type}>"
        )
