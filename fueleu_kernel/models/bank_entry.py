"""
Module: fueleu_kernel.models.bank_entry
Responsibility: ORM persistence for banked compliance units and the per-ship
    banking account row that serializes banking operations.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    B1 -- units > 0 and 0 <= remaining_units <= units (CHECK constraints,
          also enforced by the banking engine before any write).
    B2 -- units is frozen at creation; only remaining_units decreases.
    B3 -- Expired entries are never deleted; (ship_id, expiry_date) index
          supports earliest-expiry-first selection.
    B4 -- One BankingAccountModel row per ship (uq_banking_account_ship).
          Locking it with SELECT ... FOR UPDATE serializes bank / apply
          operations for that ship, including the ship's first deposit.

Failure modes:
    - IntegrityError on CHECK violation (a bug upstream of the repository).
    - IntegrityError on concurrent first creation of a banking account
      (handled by the repository with a savepoint retry).
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import BigInteger, CheckConstraint, DateTime, Index, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from fueleu_kernel.db.base import Base


class BankEntryModel(Base):
    """Persistent storage for one banked-unit entry."""

    __tablename__ = "bank_entries"

    __table_args__ = (
        CheckConstraint("units > 0", name="ck_bank_entry_units_positive"),
        CheckConstraint(
            "remaining_units >= 0 AND remaining_units <= units",
            name="ck_bank_entry_remaining_bounds",
        ),
        Index("idx_bank_entry_ship_expiry", "ship_id", "expiry_date"),
        Index("idx_bank_entry_banked_at", "banked_at"),
    )

    ship_id: Mapped[str] = mapped_column(String(100), nullable=False)

    # INVARIANT B2: immutable after creation
    units: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    remaining_units: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)

    banked_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    expiry_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<BankEntry {self.id}: ship={self.ship_id} "
            f"{self.remaining_units}/{self.units} expires={self.expiry_date}>"
        )


class BankingAccountModel(Base):
    """
    Per-ship lock anchor for banking operations.

    ``operation_count`` is bumped on every serialized operation so the row
    is written (and its lock observable) even when no entry changes.
    """

    __tablename__ = "banking_accounts"

    __table_args__ = (
        UniqueConstraint("ship_id", name="uq_banking_account_ship"),
    )

    ship_id: Mapped[str] = mapped_column(String(100), nullable=False)

    operation_count: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )
