"""
fueleu_services.compliance_service -- Compliance records, balances and metrics.

Responsibility:
    Store and query per-ship / per-voyage compliance records, compute a
    record's compliance balance against the configured target for its
    reporting period, record the resulting compliance status, and roll
    records up into ship- or route-level metrics.

Architecture position:
    Services -- stateful orchestration over engines + kernel ports.
    Composes BalanceCalculator and MetricsAggregator with a
    ComplianceRecordRepository.  Never commits.

Invariants enforced:
    - Measured quantities are finite Decimals; fuel consumption and energy
      content are non-negative.
    - ``assess_record`` derives status only from the comparison against the
      period target; it never edits measured fields.

Failure modes:
    - ComplianceRecordNotFoundError for an unknown record id.
    - ValidationError on malformed measured values or blank identifiers.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from uuid import UUID, uuid4

from fueleu_config.schema import ComplianceConfig
from fueleu_engines.balance import (
    DEFAULT_ENERGY_CONVERSION_FACTOR,
    DEFAULT_TARGET_GHG_INTENSITY,
    BalanceCalculator,
    BalanceResult,
)
from fueleu_engines.metrics import ComplianceMetrics, MetricsAggregator
from fueleu_kernel.domain.clock import Clock, SystemClock
from fueleu_kernel.domain.dtos import ComplianceRecordInfo, ComplianceStatus, FuelType
from fueleu_kernel.domain.ports import ComplianceRecordRepository
from fueleu_kernel.domain.values import Numeric, require_non_negative, to_decimal, to_enum
from fueleu_kernel.exceptions import ComplianceRecordNotFoundError, ValidationError
from fueleu_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.compliance")


def _require_text(value: str, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(field, value, "must not be empty")
    return value.strip()


class ComplianceService:
    """
    Compliance record store plus balance and metrics queries.

    Contract:
        Receives a ComplianceRecordRepository by constructor injection.
        Targets and the energy conversion factor come from the injected
        ComplianceConfig, or the built-in defaults when none is given.
    Non-goals:
        - Does NOT derive GHG intensity from fuel data.
        - Does NOT commit; the caller owns the transaction.
    """

    def __init__(
        self,
        repository: ComplianceRecordRepository,
        clock: Clock | None = None,
        config: ComplianceConfig | None = None,
    ):
        self._repository = repository
        self._clock = clock or SystemClock()
        self._config = config
        self._calculator = BalanceCalculator()
        self._aggregator = MetricsAggregator()

    def target_for(self, reporting_period: str | None) -> Decimal:
        if self._config is not None:
            return self._config.target_for(reporting_period)
        return DEFAULT_TARGET_GHG_INTENSITY

    @property
    def energy_conversion_factor(self) -> Decimal:
        if self._config is not None:
            return self._config.energy_conversion_factor
        return DEFAULT_ENERGY_CONVERSION_FACTOR

    # -----------------------------------------------------------------
    # Records
    # -----------------------------------------------------------------

    def create_record(
        self,
        ship_id: str,
        route_id: str,
        voyage_id: str,
        fuel_type: FuelType,
        fuel_consumption: Numeric,
        energy_content: Numeric,
        ghg_intensity: Numeric,
        reporting_period: str,
        compliance_status: ComplianceStatus = ComplianceStatus.PENDING,
    ) -> ComplianceRecordInfo:
        """
        Store a new compliance record.

        Raises:
            ValidationError: Blank identifiers, negative consumption or
                energy, or non-finite values.
        """
        now = self._clock.now()
        record = ComplianceRecordInfo(
            id=uuid4(),
            ship_id=_require_text(ship_id, "ship_id"),
            route_id=_require_text(route_id, "route_id"),
            voyage_id=_require_text(voyage_id, "voyage_id"),
            fuel_type=to_enum(FuelType, fuel_type, "fuel_type"),
            fuel_consumption=require_non_negative(fuel_consumption, "fuel_consumption"),
            energy_content=require_non_negative(energy_content, "energy_content"),
            ghg_intensity=to_decimal(ghg_intensity, "ghg_intensity"),
            compliance_status=to_enum(ComplianceStatus, compliance_status, "compliance_status"),
            reporting_period=_require_text(reporting_period, "reporting_period"),
            created_at=now,
            updated_at=now,
        )
        record = self._repository.create(record)

        logger.info("compliance_record_created", extra={
            "record_id": str(record.id),
            "ship_id": record.ship_id,
            "route_id": record.route_id,
            "reporting_period": record.reporting_period,
            "compliance_status": record.compliance_status.value,
        })
        return record

    def get_record(self, record_id: UUID) -> ComplianceRecordInfo:
        record = self._repository.find_by_id(record_id)
        if record is None:
            raise ComplianceRecordNotFoundError(str(record_id))
        return record

    def update_record(
        self,
        record_id: UUID,
        *,
        fuel_type: FuelType | None = None,
        fuel_consumption: Numeric | None = None,
        energy_content: Numeric | None = None,
        ghg_intensity: Numeric | None = None,
        compliance_status: ComplianceStatus | None = None,
    ) -> ComplianceRecordInfo:
        """
        Update measured fields and / or the status of a record.

        Identifiers and the reporting period are fixed once created.
        """
        record = self.get_record(record_id)
        changes: dict[str, object] = {}
        if fuel_type is not None:
            changes["fuel_type"] = to_enum(FuelType, fuel_type, "fuel_type")
        if fuel_consumption is not None:
            changes["fuel_consumption"] = require_non_negative(
                fuel_consumption, "fuel_consumption"
            )
        if energy_content is not None:
            changes["energy_content"] = require_non_negative(energy_content, "energy_content")
        if ghg_intensity is not None:
            changes["ghg_intensity"] = to_decimal(ghg_intensity, "ghg_intensity")
        if compliance_status is not None:
            changes["compliance_status"] = to_enum(
                ComplianceStatus, compliance_status, "compliance_status"
            )

        updated = self._repository.update(
            replace(record, updated_at=self._clock.now(), **changes)
        )
        logger.info("compliance_record_updated", extra={
            "record_id": str(record_id),
            "changed_fields": sorted(changes),
        })
        return updated

    def delete_record(self, record_id: UUID) -> None:
        self._repository.delete(record_id)
        logger.info("compliance_record_deleted", extra={"record_id": str(record_id)})

    def list_records(
        self,
        ship_id: str | None = None,
        route_id: str | None = None,
        reporting_period: str | None = None,
        status: ComplianceStatus | None = None,
    ) -> list[ComplianceRecordInfo]:
        """Matching records, newest first."""
        return self._repository.list_records(
            ship_id=ship_id,
            route_id=route_id,
            reporting_period=reporting_period,
            status=to_enum(ComplianceStatus, status, "status") if status is not None else None,
        )

    # -----------------------------------------------------------------
    # Balance and assessment
    # -----------------------------------------------------------------

    def compute_record_balance(self, record_id: UUID) -> BalanceResult:
        """Compliance balance of a record against its period's target."""
        record = self.get_record(record_id)
        return self._calculator.compute_balance(
            actual_ghg_intensity=record.ghg_intensity,
            fuel_consumption=record.fuel_consumption,
            target_ghg_intensity=self.target_for(record.reporting_period),
            energy_conversion_factor=self.energy_conversion_factor,
        )

    def assess_record(self, record_id: UUID) -> ComplianceRecordInfo:
        """Store COMPLIANT / NON_COMPLIANT from the record's comparison."""
        record = self.get_record(record_id)
        with LogContext.bind(
            ship_id=record.ship_id, reporting_period=record.reporting_period
        ):
            comparison = self._calculator.compute_comparison(
                actual_ghg_intensity=record.ghg_intensity,
                target_ghg_intensity=self.target_for(record.reporting_period),
            )
            status = self._calculator.classify_status(comparison)
            updated = self._repository.update(
                replace(record, compliance_status=status, updated_at=self._clock.now())
            )
            logger.info("compliance_record_assessed", extra={
                "record_id": str(record_id),
                "compliance_status": status.value,
                "difference": str(comparison.difference),
                "target": str(comparison.target),
            })
        return updated

    # -----------------------------------------------------------------
    # Metrics
    # -----------------------------------------------------------------

    def compute_metrics(self, records: list[ComplianceRecordInfo]) -> ComplianceMetrics:
        return self._aggregator.compute_metrics(records)

    def metrics_for_ship(
        self,
        ship_id: str,
        reporting_period: str | None = None,
    ) -> ComplianceMetrics:
        records = self._repository.list_records(
            ship_id=ship_id, reporting_period=reporting_period
        )
        return self._aggregator.compute_metrics(records)

    def metrics_for_route(
        self,
        route_id: str,
        reporting_period: str | None = None,
    ) -> ComplianceMetrics:
        records = self._repository.list_records(
            route_id=route_id, reporting_period=reporting_period
        )
        return self._aggregator.compute_metrics(records)
