"""
Module: fueleu_kernel.db.types
Responsibility: Rounding and timezone rules for stored compliance quantities
    and timestamps.
Architecture position: Kernel > DB.  May be imported by models/ and
    repositories/.  MUST NOT import from either.

Invariants enforced:
    - No floats in stored accounting quantities.  Units, intensities and
      energy all use Numeric with explicit scale.
    - ``round_units`` is the only sanctioned rounding for values written to
      a Numeric(38, 9) column, so the stored value equals the value the
      services compared against.
"""

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

UNITS_DECIMAL_PLACES = 9
DEFAULT_ROUNDING = ROUND_HALF_UP


def round_units(value: Decimal, decimal_places: int = UNITS_DECIMAL_PLACES) -> Decimal:
    """Quantize a quantity to the storage scale (ROUND_HALF_UP)."""
    quantize_str = "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=DEFAULT_ROUNDING)


def as_utc(value: datetime | None) -> datetime | None:
    """
    Normalize a loaded timestamp to timezone-aware UTC.

    Backends without native timezone support (SQLite) return naive values
    for DateTime(timezone=True) columns; those are stored as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
