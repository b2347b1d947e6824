"""
Module: fueleu_kernel.models.pool
Responsibility: ORM persistence for compliance pools and their members.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    P1 -- 0 <= allocated_compliance_units <= total_compliance_units
          (CHECK constraint; the allocator rejects violations before flush).
    P2 -- start_date < end_date (CHECK constraint).
    P3 -- (pool_id, ship_id) unique (uq_pool_member_ship).
    P4 -- No orphaned members: deleting a pool deletes its members in the
          same flush (ORM cascade plus ON DELETE CASCADE).
    P5 -- allocated_compliance_units equals the sum of member
          allocated_units.  Maintained incrementally by the allocator;
          audited by reconciliation, never recomputed on read.

Failure modes:
    - IntegrityError on a duplicate (pool_id, ship_id) pair.
    - IntegrityError on CHECK violation.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Numeric,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from fueleu_kernel.db.base import Base, UUIDString


class PoolModel(Base):
    """Persistent storage for a compliance pool."""

    __tablename__ = "pools"

    __table_args__ = (
        CheckConstraint(
            "allocated_compliance_units >= 0",
            name="ck_pool_allocated_non_negative",
        ),
        CheckConstraint(
            "allocated_compliance_units <= total_compliance_units",
            name="ck_pool_allocated_within_total",
        ),
        CheckConstraint("start_date < end_date", name="ck_pool_date_range"),
        Index("idx_pool_status", "status"),
        Index("idx_pool_created_at", "created_at"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)

    description: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    pool_type: Mapped[str] = mapped_column(String(20), nullable=False)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default="PENDING")

    start_date: Mapped[date] = mapped_column(Date, nullable=False)

    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    total_compliance_units: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    # INVARIANT P5: running sum of member allocations
    allocated_compliance_units: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    # INVARIANT P4: members go with the pool
    members: Mapped[list[PoolMemberModel]] = relationship(
        back_populates="pool",
        cascade="all, delete-orphan",
        order_by="PoolMemberModel.joined_at",
    )

    def __repr__(self) -> str:
        return (
            f"<Pool {self.id}: {self.name!r} {self.status} "
            f"{self.allocated_compliance_units}/{self.total_compliance_units}>"
        )


class PoolMemberModel(Base):
    """Persistent storage for one ship's membership in a pool."""

    __tablename__ = "pool_members"

    __table_args__ = (
        UniqueConstraint("pool_id", "ship_id", name="uq_pool_member_ship"),
        Index("idx_pool_member_ship", "ship_id"),
    )

    pool_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("pools.id", ondelete="CASCADE"),
        nullable=False,
    )

    ship_id: Mapped[str] = mapped_column(String(100), nullable=False)

    allocated_units: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    # Percentage of the pool total at the time of the last allocation change
    contribution: Mapped[Decimal] = mapped_column(Numeric(20, 9), nullable=False)

    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    pool: Mapped[PoolModel] = relationship(back_populates="members")

    def __repr__(self) -> str:
        return (
            f"<PoolMember pool={self.pool_id} ship={self.ship_id} "
            f"units={self.allocated_units}>"
        )
