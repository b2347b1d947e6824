"""
SQL repositories -- SQLAlchemy adapters for the domain ports.

Responsibility:
    Implements ComplianceRecordRepository, BankEntryRepository,
    PoolRepository and RouteRepository against the ORM models.  Every
    adapter works inside the caller's Session: it flushes, it never
    commits.  Rows are converted to the frozen DTOs in
    fueleu_kernel.domain.dtos on the way out.

Architecture position:
    Kernel > Repositories -- imperative shell.
    May import from models/, db/ and domain/.  Services see only the ports.

Invariants enforced:
    P4 -- ``SqlPoolRepository.delete`` removes the pool through the ORM so
          the member cascade runs in the same flush (also on backends that
          do not enforce foreign keys).
    P5 -- ``save_member`` / ``remove_member`` / ``save_pool_and_members``
          write member rows and the pool row in one flush.
    B4 -- ``SqlBankEntryRepository.lock`` takes ``SELECT ... FOR UPDATE`` on
          the ship's BankingAccountModel row, creating it on first use.

Failure modes:
    - IntegrityError from CHECK / UNIQUE constraints (propagated; the
      services validate before writing, so this indicates a bug).
    - OperationalError on lock timeout or connection loss (propagated).
"""

from __future__ import annotations

from collections.abc import Generator, Sequence
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from fueleu_kernel.db.types import as_utc, round_units
from fueleu_kernel.domain.dtos import (
    BankEntryInfo,
    ComplianceRecordInfo,
    ComplianceStatus,
    FuelType,
    PoolInfo,
    PoolMemberInfo,
    PoolStatus,
    PoolType,
    RouteInfo,
    RouteType,
)
from fueleu_kernel.domain.values import ZERO, ensure_aware
from fueleu_kernel.exceptions import (
    BankEntryNotFoundError,
    ComplianceRecordNotFoundError,
    PoolMemberNotFoundError,
    PoolNotFoundError,
    RouteNotFoundError,
)
from fueleu_kernel.logging_config import get_logger
from fueleu_kernel.models.bank_entry import BankEntryModel, BankingAccountModel
from fueleu_kernel.models.compliance_record import ComplianceRecordModel
from fueleu_kernel.models.pool import PoolMemberModel, PoolModel
from fueleu_kernel.models.route import RouteModel

logger = get_logger("repositories.sql")


def _stored_time(value: datetime) -> datetime:
    return as_utc(ensure_aware(value))


# ---------------------------------------------------------------------------
# Row -> DTO conversion
# ---------------------------------------------------------------------------


def _record_info(row: ComplianceRecordModel) -> ComplianceRecordInfo:
    return ComplianceRecordInfo(
        id=row.id,
        ship_id=row.ship_id,
        route_id=row.route_id,
        voyage_id=row.voyage_id,
        fuel_type=FuelType(row.fuel_type),
        fuel_consumption=row.fuel_consumption,
        energy_content=row.energy_content,
        ghg_intensity=row.ghg_intensity,
        compliance_status=ComplianceStatus(row.compliance_status),
        reporting_period=row.reporting_period,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


def _entry_info(row: BankEntryModel) -> BankEntryInfo:
    return BankEntryInfo(
        id=row.id,
        ship_id=row.ship_id,
        units=row.units,
        remaining_units=row.remaining_units,
        banked_at=as_utc(row.banked_at),
        expiry_date=as_utc(row.expiry_date),
    )


def _pool_info(row: PoolModel) -> PoolInfo:
    return PoolInfo(
        id=row.id,
        name=row.name,
        description=row.description,
        pool_type=PoolType(row.pool_type),
        status=PoolStatus(row.status),
        start_date=row.start_date,
        end_date=row.end_date,
        total_compliance_units=row.total_compliance_units,
        allocated_compliance_units=row.allocated_compliance_units,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


def _member_info(row: PoolMemberModel) -> PoolMemberInfo:
    return PoolMemberInfo(
        id=row.id,
        pool_id=row.pool_id,
        ship_id=row.ship_id,
        allocated_units=row.allocated_units,
        contribution=row.contribution,
        joined_at=as_utc(row.joined_at),
    )


def _route_info(row: RouteModel) -> RouteInfo:
    return RouteInfo(
        id=row.id,
        origin_port=row.origin_port,
        destination_port=row.destination_port,
        distance=row.distance,
        route_type=RouteType(row.route_type),
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


# ---------------------------------------------------------------------------
# Compliance records
# ---------------------------------------------------------------------------


class SqlComplianceRecordRepository:
    """ComplianceRecordRepository over ComplianceRecordModel."""

    def __init__(self, session: Session):
        self._session = session

    def find_by_id(self, record_id: UUID) -> ComplianceRecordInfo | None:
        row = self._session.get(ComplianceRecordModel, record_id)
        return _record_info(row) if row is not None else None

    def list_records(
        self,
        ship_id: str | None = None,
        route_id: str | None = None,
        reporting_period: str | None = None,
        status: ComplianceStatus | None = None,
    ) -> list[ComplianceRecordInfo]:
        stmt = select(ComplianceRecordModel)
        if ship_id is not None:
            stmt = stmt.where(ComplianceRecordModel.ship_id == ship_id)
        if route_id is not None:
            stmt = stmt.where(ComplianceRecordModel.route_id == route_id)
        if reporting_period is not None:
            stmt = stmt.where(ComplianceRecordModel.reporting_period == reporting_period)
        if status is not None:
            stmt = stmt.where(ComplianceRecordModel.compliance_status == status.value)
        stmt = stmt.order_by(
            ComplianceRecordModel.created_at.desc(),
            ComplianceRecordModel.id,
        )
        return [_record_info(row) for row in self._session.scalars(stmt)]

    def create(self, record: ComplianceRecordInfo) -> ComplianceRecordInfo:
        row = ComplianceRecordModel(
            id=record.id,
            ship_id=record.ship_id,
            route_id=record.route_id,
            voyage_id=record.voyage_id,
            fuel_type=record.fuel_type.value,
            fuel_consumption=round_units(record.fuel_consumption),
            energy_content=round_units(record.energy_content),
            ghg_intensity=round_units(record.ghg_intensity),
            compliance_status=record.compliance_status.value,
            reporting_period=record.reporting_period,
            created_at=_stored_time(record.created_at),
            updated_at=_stored_time(record.updated_at),
        )
        self._session.add(row)
        self._session.flush()
        return _record_info(row)

    def update(self, record: ComplianceRecordInfo) -> ComplianceRecordInfo:
        row = self._session.get(ComplianceRecordModel, record.id)
        if row is None:
            raise ComplianceRecordNotFoundError(str(record.id))
        row.ship_id = record.ship_id
        row.route_id = record.route_id
        row.voyage_id = record.voyage_id
        row.fuel_type = record.fuel_type.value
        row.fuel_consumption = round_units(record.fuel_consumption)
        row.energy_content = round_units(record.energy_content)
        row.ghg_intensity = round_units(record.ghg_intensity)
        row.compliance_status = record.compliance_status.value
        row.reporting_period = record.reporting_period
        row.updated_at = _stored_time(record.updated_at)
        self._session.flush()
        return _record_info(row)

    def delete(self, record_id: UUID) -> None:
        row = self._session.get(ComplianceRecordModel, record_id)
        if row is None:
            raise ComplianceRecordNotFoundError(str(record_id))
        self._session.delete(row)
        self._session.flush()


# ---------------------------------------------------------------------------
# Bank entries
# ---------------------------------------------------------------------------


class SqlBankEntryRepository:
    """
    BankEntryRepository over BankEntryModel.

    Per-ship serialization uses the ship's BankingAccountModel row as a lock
    anchor, following the locked-counter-row pattern: the lock is held until
    the caller's transaction ends, not until the ``with`` block exits.
    """

    def __init__(self, session: Session):
        self._session = session

    def _select_account(self, ship_id: str) -> BankingAccountModel | None:
        return self._session.execute(
            select(BankingAccountModel)
            .where(BankingAccountModel.ship_id == ship_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _create_account(self, ship_id: str) -> BankingAccountModel:
        bind = self._session.get_bind()
        if bind.dialect.name != "postgresql":
            # Single-connection backends serialize writers already
            account = BankingAccountModel(ship_id=ship_id, operation_count=0)
            self._session.add(account)
            self._session.flush()
            return account

        # Concurrent first use: the loser of the insert race retries the
        # locked select inside the surviving outer transaction.
        savepoint = self._session.begin_nested()
        try:
            account = BankingAccountModel(ship_id=ship_id, operation_count=0)
            self._session.add(account)
            self._session.flush()
            savepoint.commit()
            return account
        except IntegrityError:
            logger.debug("banking_account_race_retry", extra={"ship_id": ship_id})
            savepoint.rollback()
            self._session.expire_all()
            account = self._select_account(ship_id)
            assert account is not None, "banking account vanished after race"
            return account

    @contextmanager
    def lock(self, ship_id: str) -> Generator[None, None, None]:
        account = self._select_account(ship_id)
        if account is None:
            account = self._create_account(ship_id)
        account.operation_count += 1
        self._session.flush()
        yield

    def find_by_id(self, entry_id: UUID) -> BankEntryInfo | None:
        row = self._session.get(BankEntryModel, entry_id)
        return _entry_info(row) if row is not None else None

    def list_entries(
        self,
        ship_id: str | None = None,
        expired: bool | None = None,
        as_of: datetime | None = None,
    ) -> list[BankEntryInfo]:
        stmt = select(BankEntryModel).execution_options(populate_existing=True)
        if ship_id is not None:
            stmt = stmt.where(BankEntryModel.ship_id == ship_id)
        if expired is not None:
            if as_of is None:
                raise ValueError("as_of is required when filtering on expired")
            cutoff = _stored_time(as_of)
            if expired:
                stmt = stmt.where(BankEntryModel.expiry_date < cutoff)
            else:
                stmt = stmt.where(BankEntryModel.expiry_date >= cutoff)
        stmt = stmt.order_by(BankEntryModel.banked_at.desc(), BankEntryModel.id)
        return [_entry_info(row) for row in self._session.scalars(stmt)]

    def add(self, entry: BankEntryInfo) -> BankEntryInfo:
        row = BankEntryModel(
            id=entry.id,
            ship_id=entry.ship_id,
            units=round_units(entry.units),
            remaining_units=round_units(entry.remaining_units),
            banked_at=_stored_time(entry.banked_at),
            expiry_date=_stored_time(entry.expiry_date),
        )
        self._session.add(row)
        self._session.flush()
        return _entry_info(row)

    def save_remaining(self, entries: Sequence[BankEntryInfo]) -> None:
        for entry in entries:
            row = self._session.get(BankEntryModel, entry.id)
            if row is None:
                raise BankEntryNotFoundError(str(entry.id))
            row.remaining_units = round_units(entry.remaining_units)
        self._session.flush()


# ---------------------------------------------------------------------------
# Pools
# ---------------------------------------------------------------------------


class SqlPoolRepository:
    """PoolRepository over PoolModel / PoolMemberModel."""

    def __init__(self, session: Session):
        self._session = session

    def _locked_row(self, pool_id: UUID) -> PoolModel | None:
        return self._session.execute(
            select(PoolModel)
            .where(PoolModel.id == pool_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def _require_row(self, pool_id: UUID) -> PoolModel:
        row = self._session.get(PoolModel, pool_id)
        if row is None:
            raise PoolNotFoundError(str(pool_id))
        return row

    def _member_row(self, pool_id: UUID, ship_id: str) -> PoolMemberModel | None:
        return self._session.execute(
            select(PoolMemberModel)
            .where(
                PoolMemberModel.pool_id == pool_id,
                PoolMemberModel.ship_id == ship_id,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    @contextmanager
    def lock(self, pool_id: UUID) -> Generator[PoolInfo | None, None, None]:
        row = self._locked_row(pool_id)
        yield _pool_info(row) if row is not None else None

    def find_by_id(self, pool_id: UUID) -> PoolInfo | None:
        row = self._session.get(PoolModel, pool_id, populate_existing=True)
        return _pool_info(row) if row is not None else None

    def list_pools(self, status: PoolStatus | None = None) -> list[PoolInfo]:
        stmt = select(PoolModel)
        if status is not None:
            stmt = stmt.where(PoolModel.status == status.value)
        stmt = stmt.order_by(PoolModel.created_at.desc(), PoolModel.id)
        return [_pool_info(row) for row in self._session.scalars(stmt)]

    def list_pools_for_ship(self, ship_id: str) -> list[PoolInfo]:
        stmt = (
            select(PoolModel)
            .join(PoolMemberModel, PoolMemberModel.pool_id == PoolModel.id)
            .where(PoolMemberModel.ship_id == ship_id)
            .order_by(PoolModel.created_at.desc(), PoolModel.id)
        )
        return [_pool_info(row) for row in self._session.scalars(stmt)]

    def create(self, pool: PoolInfo) -> PoolInfo:
        row = PoolModel(
            id=pool.id,
            name=pool.name,
            description=pool.description,
            pool_type=pool.pool_type.value,
            status=pool.status.value,
            start_date=pool.start_date,
            end_date=pool.end_date,
            total_compliance_units=round_units(pool.total_compliance_units),
            allocated_compliance_units=round_units(pool.allocated_compliance_units),
            created_at=_stored_time(pool.created_at),
            updated_at=_stored_time(pool.updated_at),
        )
        self._session.add(row)
        self._session.flush()
        return _pool_info(row)

    def _apply_pool(self, row: PoolModel, pool: PoolInfo) -> None:
        row.name = pool.name
        row.description = pool.description
        row.pool_type = pool.pool_type.value
        row.status = pool.status.value
        row.start_date = pool.start_date
        row.end_date = pool.end_date
        row.total_compliance_units = round_units(pool.total_compliance_units)
        row.allocated_compliance_units = round_units(pool.allocated_compliance_units)
        row.updated_at = _stored_time(pool.updated_at)

    def update(self, pool: PoolInfo) -> PoolInfo:
        row = self._require_row(pool.id)
        self._apply_pool(row, pool)
        self._session.flush()
        return _pool_info(row)

    def delete(self, pool_id: UUID) -> None:
        row = self._require_row(pool_id)
        # INVARIANT P4: ORM cascade removes members in this flush
        self._session.delete(row)
        self._session.flush()

    def find_member(self, pool_id: UUID, ship_id: str) -> PoolMemberInfo | None:
        row = self._member_row(pool_id, ship_id)
        return _member_info(row) if row is not None else None

    def list_members(self, pool_id: UUID) -> list[PoolMemberInfo]:
        stmt = (
            select(PoolMemberModel)
            .where(PoolMemberModel.pool_id == pool_id)
            .order_by(PoolMemberModel.joined_at, PoolMemberModel.id)
            .execution_options(populate_existing=True)
        )
        return [_member_info(row) for row in self._session.scalars(stmt)]

    def save_member(self, pool: PoolInfo, member: PoolMemberInfo) -> None:
        pool_row = self._require_row(pool.id)
        row = self._member_row(member.pool_id, member.ship_id)
        if row is None:
            row = PoolMemberModel(
                id=member.id,
                pool_id=member.pool_id,
                ship_id=member.ship_id,
                joined_at=_stored_time(member.joined_at),
            )
            self._session.add(row)
        row.allocated_units = round_units(member.allocated_units)
        row.contribution = round_units(member.contribution)
        # INVARIANT P5: counter and member land in the same flush
        self._apply_pool(pool_row, pool)
        self._session.flush()

    def remove_member(self, pool: PoolInfo, member: PoolMemberInfo) -> None:
        pool_row = self._require_row(pool.id)
        row = self._member_row(member.pool_id, member.ship_id)
        if row is None:
            raise PoolMemberNotFoundError(str(member.pool_id), member.ship_id)
        self._apply_pool(pool_row, pool)
        self._session.delete(row)
        self._session.flush()

    def save_pool_and_members(self, pool: PoolInfo, members: Sequence[PoolMemberInfo]) -> None:
        pool_row = self._require_row(pool.id)
        rows = []
        for member in members:
            row = self._member_row(member.pool_id, member.ship_id)
            if row is None:
                raise PoolMemberNotFoundError(str(member.pool_id), member.ship_id)
            rows.append((row, member))
        for row, member in rows:
            row.allocated_units = round_units(member.allocated_units)
            row.contribution = round_units(member.contribution)
        self._apply_pool(pool_row, pool)
        self._session.flush()

    def sum_member_allocations(self, pool_id: UUID) -> Decimal:
        total = self._session.execute(
            select(func.coalesce(func.sum(PoolMemberModel.allocated_units), 0))
            .where(PoolMemberModel.pool_id == pool_id)
        ).scalar_one()
        return Decimal(str(total)) if total is not None else ZERO


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


class SqlRouteRepository:
    """RouteRepository over RouteModel."""

    def __init__(self, session: Session):
        self._session = session

    def _require_row(self, route_id: UUID) -> RouteModel:
        row = self._session.get(RouteModel, route_id)
        if row is None:
            raise RouteNotFoundError(str(route_id))
        return row

    def find_by_id(self, route_id: UUID) -> RouteInfo | None:
        row = self._session.get(RouteModel, route_id)
        return _route_info(row) if row is not None else None

    def list_routes(self) -> list[RouteInfo]:
        stmt = select(RouteModel).order_by(RouteModel.created_at.desc(), RouteModel.id)
        return [_route_info(row) for row in self._session.scalars(stmt)]

    def find_by_ports(self, origin_port: str, destination_port: str) -> list[RouteInfo]:
        stmt = (
            select(RouteModel)
            .where(
                RouteModel.origin_port == origin_port,
                RouteModel.destination_port == destination_port,
            )
            .order_by(RouteModel.created_at.desc(), RouteModel.id)
        )
        return [_route_info(row) for row in self._session.scalars(stmt)]

    def create(self, route: RouteInfo) -> RouteInfo:
        row = RouteModel(
            id=route.id,
            origin_port=route.origin_port,
            destination_port=route.destination_port,
            distance=round_units(route.distance),
            route_type=route.route_type.value,
            created_at=_stored_time(route.created_at),
            updated_at=_stored_time(route.updated_at),
        )
        self._session.add(row)
        self._session.flush()
        return _route_info(row)

    def update(self, route: RouteInfo) -> RouteInfo:
        row = self._require_row(route.id)
        row.origin_port = route.origin_port
        row.destination_port = route.destination_port
        row.distance = round_units(route.distance)
        row.route_type = route.route_type.value
        row.updated_at = _stored_time(route.updated_at)
        self._session.flush()
        return _route_info(row)

    def delete(self, route_id: UUID) -> None:
        row = self._require_row(route_id)
        self._session.delete(row)
        self._session.flush()

    def exists(self, route_id: UUID) -> bool:
        count = self._session.execute(
            select(func.count()).select_from(RouteModel).where(RouteModel.id == route_id)
        ).scalar_one()
        return count > 0
