"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable records that cross the persistence boundary:
    ComplianceRecordInfo, BankEntryInfo, PoolInfo, PoolMemberInfo and
    RouteInfo, plus the status / type enumerations they carry.  Repository
    adapters convert rows to and from these types; engines and services
    never see ORM entities.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Free of ORM dependencies, database access, and external services.

Invariants enforced:
    - BankEntryInfo: 0 <= remaining_units <= units, units > 0.
    - RouteInfo: distance >= 0.
    - PoolInfo: 0 <= allocated_compliance_units (the upper bound against
      total is enforced by the pooling engine, where the violation is
      reported with context).

Failure modes:
    - ValueError from __post_init__ on a structurally impossible record.
      These indicate a corrupted row or a programming error, not user input.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from fueleu_kernel.domain.values import ZERO


class ComplianceStatus(str, Enum):
    """Compliance state of a ship / voyage / reporting-period record."""

    COMPLIANT = "COMPLIANT"
    NON_COMPLIANT = "NON_COMPLIANT"
    PENDING = "PENDING"
    UNDER_REVIEW = "UNDER_REVIEW"


class FuelType(str, Enum):
    """Fuel burned on the voyage."""

    HFO = "HFO"
    LFO = "LFO"
    MGO = "MGO"
    MDO = "MDO"
    LNG = "LNG"
    METHANOL = "METHANOL"
    AMMONIA = "AMMONIA"
    HYDROGEN = "HYDROGEN"
    BIOFUEL = "BIOFUEL"
    OTHER = "OTHER"


class PoolType(str, Enum):
    """Kind of pooling arrangement."""

    VOLUNTARY = "VOLUNTARY"
    MANDATORY = "MANDATORY"
    COMPANY = "COMPANY"
    FLEET = "FLEET"


class RouteType(str, Enum):
    """Where a route runs relative to the EU."""

    INTRA_EU = "INTRA_EU"
    EXTRA_EU = "EXTRA_EU"
    MIXED = "MIXED"


class PoolStatus(str, Enum):
    """
    Lifecycle status of a pool.

    Contract:
        PENDING -> ACTIVE | SUSPENDED | CLOSED
        ACTIVE -> SUSPENDED | CLOSED
        SUSPENDED -> ACTIVE | CLOSED
        CLOSED is terminal.
    """

    PENDING = "PENDING"
    ACTIVE = "ACTIVE"
    CLOSED = "CLOSED"
    SUSPENDED = "SUSPENDED"


@dataclass(frozen=True)
class ComplianceRecordInfo:
    """
    One ship / voyage / reporting-period measurement.

    Contract:
        Produced upstream; the kernel never derives ghg_intensity itself.
        energy_content is in MJ, fuel_consumption in tonnes, ghg_intensity
        in gCO2eq/MJ.
    """

    id: UUID
    ship_id: str
    route_id: str
    voyage_id: str
    fuel_type: FuelType
    fuel_consumption: Decimal
    energy_content: Decimal
    ghg_intensity: Decimal
    compliance_status: ComplianceStatus
    reporting_period: str
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class BankEntryInfo:
    """
    A quantity of compliance units set aside by one ship.

    Contract:
        ``units`` is the originally banked quantity and never changes.
        ``remaining_units`` is decreased by apply-banked operations and is
        never increased.

    Guarantees:
        - units > 0
        - 0 <= remaining_units <= units
    """

    id: UUID
    ship_id: str
    units: Decimal
    remaining_units: Decimal
    banked_at: datetime
    expiry_date: datetime

    def __post_init__(self) -> None:
        if self.units <= ZERO:
            raise ValueError(f"Bank entry {self.id} has non-positive units")
        if self.remaining_units < ZERO or self.remaining_units > self.units:
            raise ValueError(
                f"Bank entry {self.id} remaining {self.remaining_units} "
                f"outside [0, {self.units}]"
            )

    @property
    def consumed_units(self) -> Decimal:
        return self.units - self.remaining_units

    @property
    def is_depleted(self) -> bool:
        return self.remaining_units == ZERO

    def is_expired(self, as_of: datetime) -> bool:
        """True once ``as_of`` is strictly after the expiry date."""
        return self.expiry_date < as_of


@dataclass(frozen=True)
class PoolInfo:
    """
    A time-bounded grouping of ships sharing compliance units.

    Contract:
        ``allocated_compliance_units`` is the running sum of member
        allocations, maintained incrementally by the pool allocator.
    """

    id: UUID
    name: str
    description: str | None
    pool_type: PoolType
    status: PoolStatus
    start_date: date
    end_date: date
    total_compliance_units: Decimal
    allocated_compliance_units: Decimal
    created_at: datetime
    updated_at: datetime

    def __post_init__(self) -> None:
        if self.allocated_compliance_units < ZERO:
            raise ValueError(
                f"Pool {self.id} has negative allocated units "
                f"{self.allocated_compliance_units}"
            )

    @property
    def available_units(self) -> Decimal:
        """Capacity not yet allocated to members."""
        return self.total_compliance_units - self.allocated_compliance_units


@dataclass(frozen=True)
class PoolMemberInfo:
    """One ship's participation in a pool."""

    id: UUID
    pool_id: UUID
    ship_id: str
    allocated_units: Decimal
    contribution: Decimal
    joined_at: datetime


@dataclass(frozen=True)
class RouteInfo:
    """
    A port-to-port route that compliance records refer to by id.

    Contract:
        ``distance`` is in nautical miles.  Several routes may share the
        same pair of ports.
    """

    id: UUID
    origin_port: str
    destination_port: str
    distance: Decimal
    route_type: RouteType
    created_at: datetime
    updated_at: datetime

    def __post_init__(self) -> None:
        if self.distance < ZERO:
            raise ValueError(f"Route {self.id} has negative distance {self.distance}")
