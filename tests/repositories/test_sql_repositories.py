"""
Tests for SQL-specific repository behaviour.

Backend-independent behaviour is covered by the service tests, which run
against both adapters.  This module checks what only the SQL adapter does:
the banking lock-anchor row, database-level constraints and cascade,
timestamp normalization and the route table.
"""

from dataclasses import replace
from datetime import UTC, date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from fueleu_kernel.domain.dtos import (
    BankEntryInfo,
    PoolMemberInfo,
    PoolStatus,
    PoolType,
    RouteInfo,
    RouteType,
)
from fueleu_kernel.exceptions import (
    BankEntryNotFoundError,
    PoolMemberNotFoundError,
    PoolNotFoundError,
    RouteNotFoundError,
)
from fueleu_kernel.models.bank_entry import BankingAccountModel
from fueleu_kernel.models.pool import PoolMemberModel
from fueleu_kernel.models.route import RouteModel
from fueleu_kernel.repositories import (
    MemoryBankEntryRepository,
    MemoryPoolRepository,
    SqlBankEntryRepository,
    SqlPoolRepository,
    SqlRouteRepository,
)
from fueleu_engines import pooling

NOW = datetime(2024, 1, 1, tzinfo=UTC)


def _entry(ship_id: str = "IMO1", banked_at: datetime = NOW) -> BankEntryInfo:
    return BankEntryInfo(
        id=uuid4(),
        ship_id=ship_id,
        units=Decimal("10"),
        remaining_units=Decimal("10"),
        banked_at=banked_at,
        expiry_date=banked_at + timedelta(days=730),
    )


def _pool():
    return pooling.create_pool(
        pool_id=uuid4(),
        name="SQL Pool",
        pool_type=PoolType.FLEET,
        start_date=date(2025, 1, 1),
        end_date=date(2025, 12, 31),
        created_at=NOW,
        total_compliance_units=Decimal("100"),
    )


class TestBankingLockAnchor:
    """The per-ship banking_accounts row."""

    def test_first_lock_creates_anchor(self, session):
        repo = SqlBankEntryRepository(session)

        with repo.lock("IMO1"):
            pass

        account = session.execute(
            select(BankingAccountModel).where(BankingAccountModel.ship_id == "IMO1")
        ).scalar_one()
        assert account.operation_count == 1

    def test_each_lock_bumps_counter(self, session):
        repo = SqlBankEntryRepository(session)

        for _ in range(3):
            with repo.lock("IMO1"):
                pass

        count = session.execute(select(func.count()).select_from(BankingAccountModel)).scalar_one()
        account = session.execute(select(BankingAccountModel)).scalar_one()
        assert count == 1
        assert account.operation_count == 3

    def test_anchor_per_ship(self, session):
        repo = SqlBankEntryRepository(session)

        with repo.lock("IMO1"):
            pass
        with repo.lock("IMO2"):
            pass

        count = session.execute(select(func.count()).select_from(BankingAccountModel)).scalar_one()
        assert count == 2


class TestBankEntries:
    """Entry storage details."""

    def test_timestamps_normalized_to_utc(self, session):
        repo = SqlBankEntryRepository(session)
        plus_two = timezone(timedelta(hours=2))
        entry = _entry(banked_at=datetime(2024, 1, 1, 14, 0, tzinfo=plus_two))

        repo.add(entry)
        stored = repo.find_by_id(entry.id)

        assert stored.banked_at == datetime(2024, 1, 1, 12, 0, tzinfo=UTC)
        assert stored.banked_at.utcoffset() == timedelta(0)

    def test_save_remaining_unknown_entry(self, session):
        with pytest.raises(BankEntryNotFoundError):
            SqlBankEntryRepository(session).save_remaining([_entry()])

    @pytest.mark.parametrize(
        "repo_factory",
        [lambda s: SqlBankEntryRepository(s), lambda s: MemoryBankEntryRepository()],
        ids=["sqlite", "memory"],
    )
    def test_expired_filter_requires_as_of(self, session, repo_factory):
        with pytest.raises(ValueError):
            repo_factory(session).list_entries(expired=True)


class TestPoolStorage:
    """Pool and member rows."""

    def test_unique_member_per_pool(self, session):
        repo = SqlPoolRepository(session)
        pool = repo.create(_pool())
        for _ in range(2):
            session.add(
                PoolMemberModel(
                    id=uuid4(),
                    pool_id=pool.id,
                    ship_id="A",
                    allocated_units=Decimal("1"),
                    contribution=Decimal("1"),
                    joined_at=NOW,
                )
            )

        with pytest.raises(IntegrityError):
            session.flush()

    def test_delete_cascades_member_rows(self, session):
        repo = SqlPoolRepository(session)
        pool = repo.create(_pool())
        member = PoolMemberInfo(
            id=uuid4(),
            pool_id=pool.id,
            ship_id="A",
            allocated_units=Decimal("30"),
            contribution=Decimal("30"),
            joined_at=NOW,
        )
        repo.save_member(replace(pool, allocated_compliance_units=Decimal("30")), member)

        repo.delete(pool.id)

        remaining = session.execute(
            select(func.count()).select_from(PoolMemberModel)
        ).scalar_one()
        assert remaining == 0
        assert repo.find_by_id(pool.id) is None

    def test_lock_yields_none_for_unknown_pool(self, session):
        with SqlPoolRepository(session).lock(uuid4()) as pool:
            assert pool is None

    def test_update_unknown_pool(self, session):
        with pytest.raises(PoolNotFoundError):
            SqlPoolRepository(session).update(_pool())

    def test_status_round_trip(self, session):
        repo = SqlPoolRepository(session)
        pool = repo.create(_pool())

        repo.update(pooling.transition_status(pool, PoolStatus.ACTIVE, NOW))

        assert repo.find_by_id(pool.id).status == PoolStatus.ACTIVE
        assert [p.id for p in repo.list_pools(PoolStatus.ACTIVE)] == [pool.id]

    @pytest.mark.parametrize(
        "repo_factory",
        [lambda s: SqlPoolRepository(s), lambda s: MemoryPoolRepository()],
        ids=["sqlite", "memory"],
    )
    def test_save_pool_and_members_rejects_unknown_member(self, session, repo_factory):
        repo = repo_factory(session)
        pool = repo.create(_pool())
        stranger = PoolMemberInfo(
            id=uuid4(),
            pool_id=pool.id,
            ship_id="GHOST",
            allocated_units=Decimal("0"),
            contribution=Decimal("0"),
            joined_at=NOW,
        )

        with pytest.raises(PoolMemberNotFoundError):
            repo.save_pool_and_members(
                replace(pool, total_compliance_units=Decimal("200")), [stranger]
            )

        assert repo.find_by_id(pool.id).total_compliance_units == Decimal("100")


def _route(distance: Decimal = Decimal("1200")) -> RouteInfo:
    return RouteInfo(
        id=uuid4(),
        origin_port="NLRTM",
        destination_port="DEHAM",
        distance=distance,
        route_type=RouteType.INTRA_EU,
        created_at=NOW,
        updated_at=NOW,
    )


class TestRouteStorage:
    """Route rows."""

    def test_negative_distance_rejected_by_database(self, session):
        session.add(
            RouteModel(
                id=uuid4(),
                origin_port="NLRTM",
                destination_port="DEHAM",
                distance=Decimal("-1"),
                route_type="INTRA_EU",
                created_at=NOW,
                updated_at=NOW,
            )
        )

        with pytest.raises(IntegrityError):
            session.flush()

    def test_exists(self, session):
        repo = SqlRouteRepository(session)
        route = repo.create(_route())

        assert repo.exists(route.id) is True
        assert repo.exists(uuid4()) is False

    def test_distance_stored_as_decimal(self, session):
        repo = SqlRouteRepository(session)
        route = repo.create(_route(Decimal("1200.5")))

        stored = repo.find_by_id(route.id)
        assert isinstance(stored.distance, Decimal)
        assert stored.distance == Decimal("1200.5")
        assert stored.route_type is RouteType.INTRA_EU

    def test_update_unknown_route(self, session):
        with pytest.raises(RouteNotFoundError):
            SqlRouteRepository(session).update(_route())
