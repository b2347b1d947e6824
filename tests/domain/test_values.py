"""Tests for the boundary conversions in fueleu_kernel.domain.values."""

from datetime import date
from decimal import Decimal

import pytest

from fueleu_kernel.domain.dtos import FuelType, PoolStatus, PoolType
from fueleu_kernel.domain.values import add_years, to_decimal, to_enum
from fueleu_kernel.exceptions import NonFiniteValueError, ValidationError


class TestToEnum:
    """Enum input from callers and stored rows."""

    def test_member_passes_through(self):
        assert to_enum(PoolStatus, PoolStatus.ACTIVE, "status") is PoolStatus.ACTIVE

    def test_value_converted(self):
        assert to_enum(FuelType, "LNG", "fuel_type") is FuelType.LNG

    def test_unknown_value_is_validation_error(self):
        with pytest.raises(ValidationError) as exc_info:
            to_enum(PoolType, "BOGUS", "pool_type")

        exc = exc_info.value
        assert exc.code == "VALIDATION_ERROR"
        assert exc.field == "pool_type"
        assert exc.value == "BOGUS"
        assert "FLEET" in exc.reason
        assert isinstance(exc.__cause__, ValueError)

    def test_member_of_other_enum_rejected(self):
        with pytest.raises(ValidationError):
            to_enum(PoolStatus, FuelType.LNG, "status")


class TestToDecimal:
    """Numeric input."""

    @pytest.mark.parametrize("value", [Decimal("1.5"), 1.5, "1.5", " 1.5 "])
    def test_accepted_forms(self, value):
        assert to_decimal(value, "units") == Decimal("1.5")

    def test_non_finite(self):
        with pytest.raises(NonFiniteValueError):
            to_decimal("Infinity", "units")

    @pytest.mark.parametrize("value", [True, "abc", None])
    def test_not_a_number(self, value):
        with pytest.raises(ValidationError) as exc_info:
            to_decimal(value, "units")

        assert exc_info.value.field == "units"


class TestAddYears:
    def test_leap_day_rolls_back(self):
        assert add_years(date(2024, 2, 29), 1) == date(2025, 2, 28)

    def test_leap_day_kept_in_leap_year(self):
        assert add_years(date(2024, 2, 29), 4) == date(2028, 2, 29)
