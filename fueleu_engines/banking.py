"""
fueleu_engines.banking -- Banking surplus units and applying them to deficits.

Responsibility:
    Decide whether a surplus may be banked (capacity, validity) and how a
    deficit is covered from a ship's banked entries.  The engine receives
    the candidate entries explicitly and returns what to persist; it never
    reads or writes storage itself.

Architecture position:
    Engines -- pure calculation layer; logs its own events, no other I/O.
    May only import fueleu_kernel.domain, fueleu_kernel.exceptions and
    fueleu_kernel.logging_config.
    Consumed by fueleu_services.banking_ledger.

Invariants enforced:
    B5 -- Expired entries (expiry_date < application_date) are never used.
    B6 -- Earliest-expiry-first consumption; ties broken by banked_at, then
          entry id, so the selection is deterministic.
    B7 -- applied_units + remaining_deficit == deficit, and no entry gives
          more than its remaining_units.
    B8 -- The capacity check counts unexpired remaining units only.

Failure modes:
    - ValidationError if surplus_units <= 0, deficit <= 0 or
      banking_validity_years <= 0.
    - CapacityExceededError if a deposit would exceed max_banking_capacity.
    - NonFiniteValueError on NaN / Infinity input.

Usage:
    engine = BankingEngine()
    banked = engine.bank_surplus(
        surplus_units=Decimal("100"),
        banking_date=datetime(2024, 1, 1, tzinfo=UTC),
        banking_validity_years=2,
    )
    banked.expiry_date  # 2026-01-01T00:00:00+00:00
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from fueleu_engines.tracer import traced_engine
from fueleu_kernel.domain.dtos import BankEntryInfo
from fueleu_kernel.domain.values import (
    ZERO,
    Numeric,
    add_years,
    ensure_aware,
    require_non_negative,
    require_positive,
)
from fueleu_kernel.exceptions import CapacityExceededError, ValidationError
from fueleu_kernel.logging_config import get_logger

logger = get_logger("engines.banking")

DEFAULT_BANKING_VALIDITY_YEARS = 2


@dataclass(frozen=True)
class BankingResult:
    """Outcome of a successful deposit."""

    banked_units: Decimal
    banked_at: datetime
    expiry_date: datetime


@dataclass(frozen=True)
class EntryConsumption:
    """Units taken from one bank entry by an application."""

    id: UUID
    units_applied: Decimal
    remaining_in_entry: Decimal


@dataclass(frozen=True)
class ApplicationResult:
    """
    Outcome of applying banked units to a deficit.

    ``entries_consumed`` is in consumption order and lists only entries
    that gave a positive amount.
    """

    applied_units: Decimal
    remaining_deficit: Decimal
    entries_consumed: tuple[EntryConsumption, ...]

    @property
    def is_fully_covered(self) -> bool:
        return self.remaining_deficit == ZERO


def is_expired(entry: BankEntryInfo, as_of: datetime) -> bool:
    """True once ``as_of`` is strictly after the entry's expiry date."""
    return entry.is_expired(ensure_aware(as_of))


def total_unexpired(entries: Iterable[BankEntryInfo], as_of: datetime) -> Decimal:
    """Sum of remaining units over entries still usable at ``as_of``."""
    as_of = ensure_aware(as_of)
    return sum(
        (e.remaining_units for e in entries if not e.is_expired(as_of)),
        ZERO,
    )


def _consumption_order(entry: BankEntryInfo) -> tuple:
    return (entry.expiry_date, entry.banked_at, str(entry.id))


class BankingEngine:
    """
    Pure function engine for banking decisions.

    Contract:
        No I/O, no clock; dates and candidate entries are parameters.
    Guarantees:
        - ``bank_surplus``: expiry = banking_date + validity calendar years.
        - ``apply_banked``: greedy earliest-expiry-first consumption with
          partial entries allowed.
    Non-goals:
        - Does not sweep or delete expired entries.
        - Does not borrow against future surplus.
    """

    @traced_engine(
        "banking",
        "1.0",
        fingerprint_fields=(
            "surplus_units",
            "banking_date",
            "banking_validity_years",
            "max_banking_capacity",
            "current_banked_units",
        ),
    )
    def bank_surplus(
        self,
        surplus_units: Numeric,
        banking_date: datetime,
        banking_validity_years: int = DEFAULT_BANKING_VALIDITY_YEARS,
        max_banking_capacity: Numeric | None = None,
        current_banked_units: Numeric = ZERO,
        ship_id: str | None = None,
    ) -> BankingResult:
        """
        Validate a deposit and compute its expiry.

        Preconditions:
            surplus_units > 0, banking_validity_years > 0.
            current_banked_units is the ship's unexpired remaining total at
            banking_date.

        Postconditions:
            The returned result describes an entry whose remaining quantity
            equals banked_units.

        Raises:
            ValidationError: Non-positive surplus or validity.
            CapacityExceededError: Deposit would exceed max_banking_capacity.
        """
        units = require_positive(surplus_units, "surplus_units")
        if isinstance(banking_validity_years, bool) or not isinstance(banking_validity_years, int):
            raise ValidationError(
                "banking_validity_years", banking_validity_years, "must be an integer"
            )
        if banking_validity_years <= 0:
            raise ValidationError(
                "banking_validity_years", banking_validity_years, "must be greater than zero"
            )
        current = require_non_negative(current_banked_units, "current_banked_units")

        if max_banking_capacity is not None:
            capacity = require_non_negative(max_banking_capacity, "max_banking_capacity")
            # INVARIANT B8: existing unexpired + new must fit
            if current + units > capacity:
                logger.warning("banking_capacity_exceeded", extra={
                    "ship_id": ship_id,
                    "requested_units": str(units),
                    "current_units": str(current),
                    "capacity": str(capacity),
                })
                raise CapacityExceededError(
                    requested_units=str(units),
                    current_units=str(current),
                    capacity=str(capacity),
                    ship_id=ship_id,
                )

        banked_at = ensure_aware(banking_date)
        return BankingResult(
            banked_units=units,
            banked_at=banked_at,
            expiry_date=add_years(banked_at, banking_validity_years),
        )

    @traced_engine(
        "banking",
        "1.0",
        fingerprint_fields=("deficit", "application_date"),
    )
    def apply_banked(
        self,
        deficit: Numeric,
        application_date: datetime,
        available_banked_units: Sequence[BankEntryInfo],
    ) -> ApplicationResult:
        """
        Cover a deficit from banked entries, earliest expiry first.

        Entries expired at application_date and entries with nothing left
        are skipped.  An entry may be consumed partially; its remainder
        stays available.

        Raises:
            ValidationError: If deficit <= 0.
        """
        needed = require_positive(deficit, "deficit")
        as_of = ensure_aware(application_date)

        # INVARIANT B5: expired entries are never usable
        usable = [
            e for e in available_banked_units
            if not e.is_expired(as_of) and e.remaining_units > ZERO
        ]
        # INVARIANT B6: earliest expiry first
        usable.sort(key=_consumption_order)

        consumptions: list[EntryConsumption] = []
        remaining = needed
        for entry in usable:
            if remaining <= ZERO:
                break
            take = min(remaining, entry.remaining_units)
            remaining -= take
            consumptions.append(
                EntryConsumption(
                    id=entry.id,
                    units_applied=take,
                    remaining_in_entry=entry.remaining_units - take,
                )
            )
            logger.debug("bank_entry_consumed", extra={
                "entry_id": str(entry.id),
                "units_applied": str(take),
                "remaining_in_entry": str(entry.remaining_units - take),
            })

        applied = needed - remaining
        # INVARIANT B7
        assert applied + remaining == needed, "applied + remaining must equal deficit"

        return ApplicationResult(
            applied_units=applied,
            remaining_deficit=remaining,
            entries_consumed=tuple(consumptions),
        )
