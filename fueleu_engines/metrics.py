"""
fueleu_engines.metrics -- Fleet / ship / route compliance roll-ups.

Responsibility:
    Aggregate a collection of compliance records into summary statistics:
    total energy, total GHG emissions, energy-weighted average intensity
    and the share of records that are COMPLIANT.

Architecture position:
    Engines -- pure calculation layer.  No I/O beyond the per-call trace line.
    Consumed by fueleu_services.compliance_service.

Invariants enforced:
    - Empty input yields all zeros.
    - average_ghg_intensity = total_ghg_emissions / total_energy_consumed,
      or 0 when no energy was consumed (weighted, not a simple mean).
    - compliance_rate is a percentage in [0, 100].
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from fueleu_engines.tracer import traced_engine
from fueleu_kernel.domain.dtos import ComplianceRecordInfo, ComplianceStatus
from fueleu_kernel.domain.values import HUNDRED, ZERO


@dataclass(frozen=True)
class ComplianceMetrics:
    """Summary statistics over a set of compliance records."""

    total_ghg_emissions: Decimal
    average_ghg_intensity: Decimal
    total_energy_consumed: Decimal
    compliance_rate: Decimal
    record_count: int = 0

    @classmethod
    def empty(cls) -> ComplianceMetrics:
        return cls(
            total_ghg_emissions=ZERO,
            average_ghg_intensity=ZERO,
            total_energy_consumed=ZERO,
            compliance_rate=ZERO,
            record_count=0,
        )


class MetricsAggregator:
    """
    Pure aggregator for compliance metrics.

    Contract:
        No I/O; records are passed in already filtered.
    Non-goals:
        - Does not filter by ship, route or period; callers select records.
    """

    @traced_engine("metrics", "1.0")
    def compute_metrics(
        self,
        records: Iterable[ComplianceRecordInfo],
    ) -> ComplianceMetrics:
        """Aggregate ``records`` into a ComplianceMetrics."""
        records = list(records)
        if not records:
            return ComplianceMetrics.empty()

        total_energy = ZERO
        total_emissions = ZERO
        compliant = 0
        for record in records:
            total_energy += record.energy_content
            total_emissions += record.energy_content * record.ghg_intensity
            if record.compliance_status == ComplianceStatus.COMPLIANT:
                compliant += 1

        if total_energy != ZERO:
            average = total_emissions / total_energy
        else:
            average = ZERO

        return ComplianceMetrics(
            total_ghg_emissions=total_emissions,
            average_ghg_intensity=average,
            total_energy_consumed=total_energy,
            compliance_rate=Decimal(compliant) / Decimal(len(records)) * HUNDRED,
            record_count=len(records),
        )
