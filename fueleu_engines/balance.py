"""
fueleu_engines.balance -- Compliance balance and intensity comparison.

Responsibility:
    Compute a ship's compliance balance (CB) from its measured GHG intensity
    and fuel consumption, and compare a measured intensity against the
    regulatory target.

Architecture position:
    Engines -- pure calculation layer; logs its own events, no other I/O.
    May only import fueleu_kernel.domain, fueleu_kernel.exceptions and
    fueleu_kernel.logging_config.
    Consumed by fueleu_services.compliance_service and by callers directly.

Invariants enforced:
    - Determinism: identical inputs produce identical outputs; no clock.
    - ``is_surplus == (cb >= 0)``; cb is linear in fuel consumption.
    - Decimal-only arithmetic; NaN / Infinity rejected at entry.

Failure modes:
    - NonFiniteValueError (a ValidationError) on NaN / Infinity input.
    - ValidationError if fuel_consumption < 0.

Usage:
    from fueleu_engines.balance import BalanceCalculator

    calculator = BalanceCalculator()
    result = calculator.compute_balance(
        actual_ghg_intensity=Decimal("85.0"),
        fuel_consumption=Decimal("100"),
    )
    result.cb          # Decimal('17780880.0000')
    result.is_surplus  # True
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from fueleu_engines.tracer import traced_engine
from fueleu_kernel.domain.dtos import ComplianceStatus
from fueleu_kernel.domain.values import (
    HUNDRED,
    ZERO,
    Numeric,
    require_non_negative,
    to_decimal,
)
from fueleu_kernel.logging_config import get_logger

logger = get_logger("engines.balance")

# gCO2eq/MJ, 2024-2029 reference value
DEFAULT_TARGET_GHG_INTENSITY = Decimal("89.3368")

# MJ per tonne of fuel
DEFAULT_ENERGY_CONVERSION_FACTOR = Decimal("41000")


@dataclass(frozen=True)
class BalanceResult:
    """
    Compliance balance for one measurement.

    ``cb`` is in gCO2eq: positive is a surplus, negative a deficit.
    """

    cb: Decimal
    actual: Decimal
    target: Decimal
    fuel_consumption: Decimal
    is_surplus: bool

    @property
    def is_deficit(self) -> bool:
        return not self.is_surplus


@dataclass(frozen=True)
class ComparisonResult:
    """Measured intensity against the target."""

    actual: Decimal
    target: Decimal
    difference: Decimal
    is_compliant: bool

    @property
    def percent_difference(self) -> Decimal:
        """Difference as a percentage of the target (0 when target is 0)."""
        if self.target == ZERO:
            return ZERO
        return self.difference / self.target * HUNDRED


class BalanceCalculator:
    """
    Pure function calculator for compliance balances.

    Contract:
        No I/O, no database access, fully deterministic.
        Targets and conversion factors are passed in, never looked up.
    Guarantees:
        - ``compute_balance``: cb = (target - actual) * fuel * factor.
        - ``compute_comparison``: difference = actual - target;
          compliant when difference <= 0.
    Non-goals:
        - Does not derive GHG intensity from fuel composition.
        - Does not persist results.
    """

    @traced_engine(
        "balance",
        "1.0",
        fingerprint_fields=(
            "actual_ghg_intensity",
            "fuel_consumption",
            "target_ghg_intensity",
            "energy_conversion_factor",
        ),
    )
    def compute_balance(
        self,
        actual_ghg_intensity: Numeric,
        fuel_consumption: Numeric,
        target_ghg_intensity: Numeric = DEFAULT_TARGET_GHG_INTENSITY,
        energy_conversion_factor: Numeric = DEFAULT_ENERGY_CONVERSION_FACTOR,
    ) -> BalanceResult:
        """
        Compute the compliance balance of one measurement.

        Formula: (target - actual) x fuel_consumption x energy_conversion_factor

        Preconditions:
            All inputs finite; fuel_consumption >= 0.

        Args:
            actual_ghg_intensity: Measured intensity in gCO2eq/MJ.
            fuel_consumption: Fuel burned, in tonnes.
            target_ghg_intensity: Regulatory target for the period.
            energy_conversion_factor: MJ per tonne of fuel.

        Returns:
            BalanceResult with cb and the surplus flag.

        Raises:
            ValidationError: On non-finite input or negative consumption.
        """
        actual = to_decimal(actual_ghg_intensity, "actual_ghg_intensity")
        fuel = require_non_negative(fuel_consumption, "fuel_consumption")
        target = to_decimal(target_ghg_intensity, "target_ghg_intensity")
        factor = to_decimal(energy_conversion_factor, "energy_conversion_factor")

        cb = (target - actual) * fuel * factor
        is_surplus = cb >= ZERO

        logger.debug("balance_computed", extra={
            "cb": str(cb),
            "actual": str(actual),
            "target": str(target),
            "is_surplus": is_surplus,
        })

        return BalanceResult(
            cb=cb,
            actual=actual,
            target=target,
            fuel_consumption=fuel,
            is_surplus=is_surplus,
        )

    @traced_engine(
        "balance",
        "1.0",
        fingerprint_fields=("actual_ghg_intensity", "target_ghg_intensity"),
    )
    def compute_comparison(
        self,
        actual_ghg_intensity: Numeric,
        target_ghg_intensity: Numeric = DEFAULT_TARGET_GHG_INTENSITY,
    ) -> ComparisonResult:
        """
        Compare a measured intensity against the target.

        Raises:
            ValidationError: On non-finite input.
        """
        actual = to_decimal(actual_ghg_intensity, "actual_ghg_intensity")
        target = to_decimal(target_ghg_intensity, "target_ghg_intensity")
        difference = actual - target

        return ComparisonResult(
            actual=actual,
            target=target,
            difference=difference,
            is_compliant=difference <= ZERO,
        )

    @staticmethod
    def classify_status(comparison: ComparisonResult) -> ComplianceStatus:
        """Compliance status implied by a comparison."""
        if comparison.is_compliant:
            return ComplianceStatus.COMPLIANT
        return ComplianceStatus.NON_COMPLIANT
