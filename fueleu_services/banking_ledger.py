"""
fueleu_services.banking_ledger -- Per-ship bank of surplus compliance units.

Responsibility:
    Record banked surplus for a ship and cover later deficits from the
    ship's unexpired entries, earliest expiry first.  The decisions come
    from the pure BankingEngine; this service supplies "now", loads the
    ship's entries through the BankEntryRepository port, and persists the
    outcome.

Architecture position:
    Services -- stateful orchestration over engines + kernel ports.
    Composes BankingEngine with a BankEntryRepository.  With the SQL
    adapter it flushes inside the caller's transaction and never commits.

Invariants enforced:
    B4 -- Every bank / apply runs under ``repository.lock(ship_id)``, so two
          concurrent applications cannot both spend the same remainder and
          two deposits cannot both pass the capacity check.
    B5 -- Expired entries are never consumed.
    B6 -- Earliest expiry first (ties: banked_at, then id).
    B8 -- Capacity counts the ship's unexpired remaining units only.

Failure modes:
    - ValidationError on non-positive surplus / deficit.
    - CapacityExceededError when a deposit would exceed capacity.
    - Errors from the repository propagate; the caller's transaction scope
      rolls back.

Audit relevance:
    Deposits and applications are logged with ship_id, units and the
    entries touched.

Usage:
    with database.session_scope() as session:
        ledger = BankingLedger(SqlBankEntryRepository(session), config=config)
        ledger.bank_surplus("IMO9876543", Decimal("100"))
        result = ledger.apply_banked("IMO9876543", Decimal("60"))
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from fueleu_config.schema import ComplianceConfig
from fueleu_engines.banking import (
    ApplicationResult,
    BankingEngine,
    BankingResult,
    total_unexpired,
)
from fueleu_kernel.domain.clock import Clock, SystemClock
from fueleu_kernel.domain.dtos import BankEntryInfo
from fueleu_kernel.domain.ports import BankEntryRepository
from fueleu_kernel.domain.values import Numeric, ensure_aware
from fueleu_kernel.exceptions import ValidationError
from fueleu_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.banking_ledger")


@dataclass(frozen=True)
class DepositResult:
    """A BankingResult together with the entry that was stored for it."""

    result: BankingResult
    entry: BankEntryInfo

    @property
    def entry_id(self) -> UUID:
        return self.entry.id

    @property
    def banked_units(self) -> Decimal:
        return self.result.banked_units

    @property
    def expiry_date(self) -> datetime:
        return self.result.expiry_date


class BankingLedger:
    """
    Banks surplus units per ship and applies them to deficits.

    Contract:
        Receives a BankEntryRepository by constructor injection; the clock
        and configuration are optional and default to the system clock and
        built-in defaults.
    Guarantees:
        - A deposit stores an entry whose remaining units equal its units.
        - An application persists the reduced remainder of every entry it
          touched before returning.
    Non-goals:
        - Does NOT commit; the caller owns the transaction.
        - Does NOT delete expired entries.
    """

    def __init__(
        self,
        repository: BankEntryRepository,
        clock: Clock | None = None,
        config: ComplianceConfig | None = None,
        engine: BankingEngine | None = None,
    ):
        self._repository = repository
        self._clock = clock or SystemClock()
        self._config = config
        self._engine = engine or BankingEngine()

    def _default_validity_years(self) -> int:
        if self._config is not None:
            return self._config.banking.validity_years
        return 2

    def _default_capacity(self) -> Decimal | None:
        if self._config is not None:
            return self._config.banking.max_capacity
        return None

    @staticmethod
    def _require_ship(ship_id: str) -> str:
        if not ship_id or not ship_id.strip():
            raise ValidationError("ship_id", ship_id, "must not be empty")
        return ship_id

    def bank_surplus(
        self,
        ship_id: str,
        surplus_units: Numeric,
        banking_date: datetime | None = None,
        max_banking_capacity: Numeric | None = None,
        banking_validity_years: int | None = None,
    ) -> DepositResult:
        """
        Bank ``surplus_units`` for ``ship_id``.

        Args:
            ship_id: Ship banking the surplus.
            surplus_units: Units to bank; must be > 0.
            banking_date: Deposit time.  Defaults to the clock's now.
            max_banking_capacity: Cap on the ship's unexpired banked units.
                Defaults to ``banking.max_capacity`` from configuration.
            banking_validity_years: Years until expiry.  Defaults to
                ``banking.validity_years`` from configuration.

        Returns:
            DepositResult with the engine result and the stored entry.

        Raises:
            ValidationError: Non-positive surplus or validity.
            CapacityExceededError: The deposit would exceed capacity.
        """
        self._require_ship(ship_id)
        banked_at = ensure_aware(banking_date or self._clock.now())
        if max_banking_capacity is None:
            max_banking_capacity = self._default_capacity()
        if banking_validity_years is None:
            banking_validity_years = self._default_validity_years()

        with LogContext.bind(ship_id=ship_id):
            logger.info("bank_surplus_started", extra={
                "surplus_units": str(surplus_units),
                "banked_at": banked_at.isoformat(),
            })

            # INVARIANT B4: capacity read and deposit are one serialized step
            with self._repository.lock(ship_id):
                existing = self._repository.list_entries(ship_id=ship_id)
                current = total_unexpired(existing, banked_at)

                result = self._engine.bank_surplus(
                    surplus_units=surplus_units,
                    banking_date=banked_at,
                    banking_validity_years=banking_validity_years,
                    max_banking_capacity=max_banking_capacity,
                    current_banked_units=current,
                    ship_id=ship_id,
                )

                entry = self._repository.add(
                    BankEntryInfo(
                        id=uuid4(),
                        ship_id=ship_id,
                        units=result.banked_units,
                        remaining_units=result.banked_units,
                        banked_at=result.banked_at,
                        expiry_date=result.expiry_date,
                    )
                )

            logger.info("surplus_banked", extra={
                "entry_id": str(entry.id),
                "banked_units": str(result.banked_units),
                "expiry_date": result.expiry_date.isoformat(),
                "previously_banked_units": str(current),
            })

        return DepositResult(result=result, entry=entry)

    def apply_banked(
        self,
        ship_id: str,
        deficit: Numeric,
        application_date: datetime | None = None,
    ) -> ApplicationResult:
        """
        Cover ``deficit`` from the ship's banked entries and persist it.

        Raises:
            ValidationError: If deficit <= 0.
        """
        self._require_ship(ship_id)
        as_of = ensure_aware(application_date or self._clock.now())

        with LogContext.bind(ship_id=ship_id):
            logger.info("apply_banked_started", extra={
                "deficit": str(deficit),
                "application_date": as_of.isoformat(),
            })

            # INVARIANT B4: read remainders, consume and write under one lock
            with self._repository.lock(ship_id):
                entries = self._repository.list_entries(ship_id=ship_id)
                result = self._engine.apply_banked(
                    deficit=deficit,
                    application_date=as_of,
                    available_banked_units=entries,
                )

                by_id = {e.id: e for e in entries}
                updated = [
                    replace(by_id[c.id], remaining_units=c.remaining_in_entry)
                    for c in result.entries_consumed
                ]
                if updated:
                    self._repository.save_remaining(updated)

            logger.info("banked_units_applied", extra={
                "applied_units": str(result.applied_units),
                "remaining_deficit": str(result.remaining_deficit),
                "entries_consumed": [str(c.id) for c in result.entries_consumed],
            })

        return result

    def apply_banked_units(
        self,
        deficit: Numeric,
        application_date: datetime,
        available_banked_units: Sequence[BankEntryInfo],
    ) -> ApplicationResult:
        """
        Run an application against an explicit candidate set.

        Nothing is read from or written to the repository; the caller
        persists the result.
        """
        return self._engine.apply_banked(
            deficit=deficit,
            application_date=application_date,
            available_banked_units=available_banked_units,
        )

    def list_entries(
        self,
        ship_id: str | None = None,
        expired: bool | None = None,
        as_of: datetime | None = None,
    ) -> list[BankEntryInfo]:
        """
        Banked entries, most recently banked first.

        ``expired`` filters on expiry relative to ``as_of`` (default now).
        """
        if expired is not None and as_of is None:
            as_of = self._clock.now()
        return self._repository.list_entries(
            ship_id=ship_id, expired=expired, as_of=as_of
        )

    def available_units(self, ship_id: str, as_of: datetime | None = None) -> Decimal:
        """Unexpired remaining units banked by ``ship_id``."""
        as_of = ensure_aware(as_of or self._clock.now())
        return total_unexpired(self._repository.list_entries(ship_id=ship_id), as_of)
