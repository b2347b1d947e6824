"""
Values -- Numeric and calendar primitives for compliance accounting.

Responsibility:
    Converts boundary input into the kernel's numeric domain (``Decimal``)
    and provides the calendar arithmetic used for banking expiry.  Every
    engine and service funnels numeric parameters through ``to_decimal`` so
    that NaN / Infinity never reach the accounting arithmetic.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Imported by engines and services.  No outward dependencies except
    fueleu_kernel.exceptions.

Invariants enforced:
    - Decimal-only arithmetic: floats are converted through ``str()`` so the
      stored value matches the printed literal, never the binary expansion.
    - Finite-only: NaN and +/-Infinity raise NonFiniteValueError.
    - Timezone-aware timestamps: naive datetimes are interpreted as UTC.

Failure modes:
    - NonFiniteValueError on NaN / Infinity input.
    - ValidationError on unparseable or boolean input, or an unknown
      enum value.
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import TypeVar

from fueleu_kernel.exceptions import NonFiniteValueError, ValidationError

Numeric = Decimal | int | float | str

ZERO = Decimal("0")
ONE = Decimal("1")
HUNDRED = Decimal("100")

_D = TypeVar("_D", date, datetime)


def to_decimal(value: Numeric, field: str) -> Decimal:
    """
    Convert a boundary number to a finite Decimal.

    Args:
        value: Decimal, int, float or numeric string.
        field: Parameter name, carried on the raised error.

    Returns:
        The value as a finite Decimal.

    Raises:
        NonFiniteValueError: If the value is NaN or infinite.
        ValidationError: If the value is not a number.
    """
    if isinstance(value, bool):
        raise ValidationError(field, value, "must be a number, not a boolean")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, (float, str)):
        try:
            result = Decimal(str(value).strip())
        except InvalidOperation as e:
            raise ValidationError(field, value, "must be a number") from e
    else:
        raise ValidationError(field, value, "must be a number")

    if not result.is_finite():
        raise NonFiniteValueError(field, value)
    return result


_E = TypeVar("_E", bound=Enum)


def to_enum(enum_cls: type[_E], value: _E | str, field: str) -> _E:
    """
    Convert a member or its value to ``enum_cls``.

    Raises:
        ValidationError: If ``value`` names no member of ``enum_cls``.
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as e:
        allowed = ", ".join(str(member.value) for member in enum_cls)
        raise ValidationError(field, value, f"must be one of: {allowed}") from e


def require_positive(value: Numeric, field: str) -> Decimal:
    """Convert and require ``value > 0``."""
    result = to_decimal(value, field)
    if result <= ZERO:
        raise ValidationError(field, value, "must be greater than zero")
    return result


def require_non_negative(value: Numeric, field: str) -> Decimal:
    """Convert and require ``value >= 0``."""
    result = to_decimal(value, field)
    if result < ZERO:
        raise ValidationError(field, value, "must not be negative")
    return result


def ensure_aware(value: datetime) -> datetime:
    """Return ``value`` as a timezone-aware datetime (naive means UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def add_years(value: _D, years: int) -> _D:
    """
    Add calendar years to a date or datetime.

    February 29 maps to February 28 when the target year is not a leap
    year.  Time of day and tzinfo are preserved.
    """
    target_year = value.year + years
    day = value.day
    if value.month == 2 and day == 29 and not calendar.isleap(target_year):
        day = 28
    return value.replace(year=target_year, day=day)
