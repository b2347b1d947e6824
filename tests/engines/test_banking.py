"""
Tests for the Banking Engine.

Covers:
- Deposit validation and expiry computation (calendar years, Feb 29)
- Capacity check against unexpired remaining units
- Earliest-expiry-first application with partial consumption
- Expired and depleted entries excluded
- Deterministic tie-breaking
"""

from datetime import UTC, datetime
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from fueleu_engines.banking import BankingEngine, is_expired, total_unexpired
from fueleu_kernel.domain.dtos import BankEntryInfo
from fueleu_kernel.exceptions import CapacityExceededError, NonFiniteValueError, ValidationError


def _dt(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=UTC)


def _entry(
    units: str,
    expiry: datetime,
    remaining: str | None = None,
    banked_at: datetime | None = None,
    entry_id: UUID | None = None,
) -> BankEntryInfo:
    return BankEntryInfo(
        id=entry_id or uuid4(),
        ship_id="IMO9876543",
        units=Decimal(units),
        remaining_units=Decimal(remaining if remaining is not None else units),
        banked_at=banked_at or _dt(2023, 1, 1),
        expiry_date=expiry,
    )


class TestBankSurplus:
    """Tests for deposit validation and expiry."""

    def setup_method(self):
        self.engine = BankingEngine()

    def test_two_year_expiry(self):
        result = self.engine.bank_surplus(
            surplus_units=Decimal("100"),
            banking_date=_dt(2024, 1, 1),
            banking_validity_years=2,
        )

        assert result.banked_units == Decimal("100")
        assert result.banked_at == _dt(2024, 1, 1)
        assert result.expiry_date == _dt(2026, 1, 1)

    def test_leap_day_rolls_back_to_feb_28(self):
        result = self.engine.bank_surplus(
            surplus_units=Decimal("1"),
            banking_date=_dt(2024, 2, 29),
            banking_validity_years=1,
        )

        assert result.expiry_date == _dt(2025, 2, 28)

    def test_leap_day_kept_in_leap_target_year(self):
        result = self.engine.bank_surplus(
            surplus_units=Decimal("1"),
            banking_date=_dt(2024, 2, 29),
            banking_validity_years=4,
        )

        assert result.expiry_date == _dt(2028, 2, 29)

    def test_naive_banking_date_treated_as_utc(self):
        result = self.engine.bank_surplus(
            surplus_units=Decimal("5"),
            banking_date=datetime(2024, 6, 1, 10, 30),
        )

        assert result.banked_at == datetime(2024, 6, 1, 10, 30, tzinfo=UTC)
        assert result.expiry_date == datetime(2026, 6, 1, 10, 30, tzinfo=UTC)

    @pytest.mark.parametrize("units", [Decimal("0"), Decimal("-5")])
    def test_non_positive_surplus_rejected(self, units):
        with pytest.raises(ValidationError) as exc_info:
            self.engine.bank_surplus(surplus_units=units, banking_date=_dt(2024, 1, 1))

        assert exc_info.value.field == "surplus_units"

    def test_non_finite_surplus_rejected(self):
        with pytest.raises(NonFiniteValueError):
            self.engine.bank_surplus(
                surplus_units=float("inf"),
                banking_date=_dt(2024, 1, 1),
            )

    @pytest.mark.parametrize("years", [0, -1])
    def test_non_positive_validity_rejected(self, years):
        with pytest.raises(ValidationError):
            self.engine.bank_surplus(
                surplus_units=Decimal("1"),
                banking_date=_dt(2024, 1, 1),
                banking_validity_years=years,
            )

    def test_within_capacity(self):
        result = self.engine.bank_surplus(
            surplus_units=Decimal("40"),
            banking_date=_dt(2024, 1, 1),
            max_banking_capacity=Decimal("100"),
            current_banked_units=Decimal("60"),
        )

        assert result.banked_units == Decimal("40")

    def test_capacity_exceeded(self):
        with pytest.raises(CapacityExceededError) as exc_info:
            self.engine.bank_surplus(
                surplus_units=Decimal("41"),
                banking_date=_dt(2024, 1, 1),
                max_banking_capacity=Decimal("100"),
                current_banked_units=Decimal("60"),
                ship_id="IMO1",
            )

        exc = exc_info.value
        assert exc.code == "BANKING_CAPACITY_EXCEEDED"
        assert exc.requested_units == "41"
        assert exc.current_units == "60"
        assert exc.capacity == "100"
        assert exc.ship_id == "IMO1"

    def test_capacity_exceeded_is_logged(self, captured_logs):
        with pytest.raises(CapacityExceededError):
            self.engine.bank_surplus(
                surplus_units=Decimal("10"),
                banking_date=_dt(2024, 1, 1),
                max_banking_capacity=Decimal("5"),
            )

        warnings = [r for r in captured_logs() if r["message"] == "banking_capacity_exceeded"]
        assert len(warnings) == 1
        assert warnings[0]["level"] == "WARNING"


class TestApplyBanked:
    """Tests for earliest-expiry-first application."""

    def setup_method(self):
        self.engine = BankingEngine()

    def test_partial_consumption_of_single_entry(self):
        entry = _entry("100", expiry=_dt(2026, 1, 1), banked_at=_dt(2024, 1, 1))

        result = self.engine.apply_banked(
            deficit=Decimal("60"),
            application_date=_dt(2024, 6, 1),
            available_banked_units=[entry],
        )

        assert result.applied_units == Decimal("60")
        assert result.remaining_deficit == Decimal("0")
        assert result.is_fully_covered is True
        assert len(result.entries_consumed) == 1
        consumed = result.entries_consumed[0]
        assert consumed.id == entry.id
        assert consumed.units_applied == Decimal("60")
        assert consumed.remaining_in_entry == Decimal("40")

    def test_expired_entry_unusable(self):
        entry = _entry("100", expiry=_dt(2024, 1, 1))

        result = self.engine.apply_banked(
            deficit=Decimal("30"),
            application_date=_dt(2024, 6, 1),
            available_banked_units=[entry],
        )

        assert result.applied_units == Decimal("0")
        assert result.remaining_deficit == Decimal("30")
        assert result.entries_consumed == ()

    def test_entry_usable_on_its_expiry_date(self):
        """expiry_date == application_date is not yet expired."""
        entry = _entry("10", expiry=_dt(2024, 6, 1))

        result = self.engine.apply_banked(
            deficit=Decimal("5"),
            application_date=_dt(2024, 6, 1),
            available_banked_units=[entry],
        )

        assert result.applied_units == Decimal("5")

    def test_earliest_expiry_consumed_first(self):
        a = _entry("50", expiry=_dt(2025, 1, 1))
        b = _entry("50", expiry=_dt(2026, 1, 1))

        result = self.engine.apply_banked(
            deficit=Decimal("30"),
            application_date=_dt(2024, 6, 1),
            available_banked_units=[b, a],
        )

        assert [c.id for c in result.entries_consumed] == [a.id]
        assert result.entries_consumed[0].remaining_in_entry == Decimal("20")

    def test_spills_into_later_entry(self):
        a = _entry("50", expiry=_dt(2025, 1, 1))
        b = _entry("50", expiry=_dt(2026, 1, 1))

        result = self.engine.apply_banked(
            deficit=Decimal("70"),
            application_date=_dt(2024, 6, 1),
            available_banked_units=[b, a],
        )

        assert [(c.id, c.units_applied) for c in result.entries_consumed] == [
            (a.id, Decimal("50")),
            (b.id, Decimal("20")),
        ]
        assert result.entries_consumed[0].remaining_in_entry == Decimal("0")
        assert result.entries_consumed[1].remaining_in_entry == Decimal("30")

    def test_insufficient_units_leave_residual_deficit(self):
        a = _entry("10", expiry=_dt(2025, 1, 1))
        b = _entry("15", expiry=_dt(2026, 1, 1), remaining="5")

        result = self.engine.apply_banked(
            deficit=Decimal("40"),
            application_date=_dt(2024, 6, 1),
            available_banked_units=[a, b],
        )

        assert result.applied_units == Decimal("15")
        assert result.remaining_deficit == Decimal("25")
        assert result.is_fully_covered is False

    def test_depleted_entries_skipped(self):
        depleted = _entry("10", expiry=_dt(2025, 1, 1), remaining="0")
        live = _entry("10", expiry=_dt(2026, 1, 1))

        result = self.engine.apply_banked(
            deficit=Decimal("5"),
            application_date=_dt(2024, 6, 1),
            available_banked_units=[depleted, live],
        )

        assert [c.id for c in result.entries_consumed] == [live.id]

    def test_same_expiry_broken_by_banked_at(self):
        later = _entry("10", expiry=_dt(2026, 1, 1), banked_at=_dt(2024, 3, 1))
        earlier = _entry("10", expiry=_dt(2026, 1, 1), banked_at=_dt(2024, 2, 1))

        result = self.engine.apply_banked(
            deficit=Decimal("5"),
            application_date=_dt(2024, 6, 1),
            available_banked_units=[later, earlier],
        )

        assert result.entries_consumed[0].id == earlier.id

    def test_same_expiry_and_banked_at_broken_by_id(self):
        low = _entry("10", expiry=_dt(2026, 1, 1), entry_id=UUID(int=1))
        high = _entry("10", expiry=_dt(2026, 1, 1), entry_id=UUID(int=2))

        result = self.engine.apply_banked(
            deficit=Decimal("5"),
            application_date=_dt(2024, 6, 1),
            available_banked_units=[high, low],
        )

        assert result.entries_consumed[0].id == low.id

    @pytest.mark.parametrize("deficit", [Decimal("0"), Decimal("-1")])
    def test_non_positive_deficit_rejected(self, deficit):
        with pytest.raises(ValidationError) as exc_info:
            self.engine.apply_banked(
                deficit=deficit,
                application_date=_dt(2024, 6, 1),
                available_banked_units=[],
            )

        assert exc_info.value.field == "deficit"

    def test_inputs_not_mutated(self):
        entry = _entry("100", expiry=_dt(2026, 1, 1))

        self.engine.apply_banked(
            deficit=Decimal("60"),
            application_date=_dt(2024, 6, 1),
            available_banked_units=[entry],
        )

        assert entry.remaining_units == Decimal("100")


class TestExpiryHelpers:
    """Tests for is_expired / total_unexpired."""

    def test_is_expired_strictly_after(self):
        entry = _entry("10", expiry=_dt(2025, 1, 1))

        assert is_expired(entry, _dt(2024, 12, 31)) is False
        assert is_expired(entry, _dt(2025, 1, 1)) is False
        assert is_expired(entry, datetime(2025, 1, 1, 0, 0, 1, tzinfo=UTC)) is True

    def test_total_unexpired_counts_remaining_only(self):
        entries = [
            _entry("100", expiry=_dt(2026, 1, 1), remaining="40"),
            _entry("50", expiry=_dt(2023, 6, 1)),
            _entry("10", expiry=_dt(2025, 1, 1)),
        ]

        assert total_unexpired(entries, _dt(2024, 1, 1)) == Decimal("50")

    def test_total_unexpired_empty(self):
        assert total_unexpired([], _dt(2024, 1, 1)) == Decimal("0")


class TestBankEntryInfo:
    """Structural guarantees of the bank entry record."""

    def test_remaining_above_units_rejected(self):
        with pytest.raises(ValueError):
            _entry("10", expiry=_dt(2026, 1, 1), remaining="11")

    def test_non_positive_units_rejected(self):
        with pytest.raises(ValueError):
            _entry("0", expiry=_dt(2026, 1, 1))

    def test_consumed_and_depleted(self):
        entry = _entry("10", expiry=_dt(2026, 1, 1), remaining="0")

        assert entry.consumed_units == Decimal("10")
        assert entry.is_depleted is True
