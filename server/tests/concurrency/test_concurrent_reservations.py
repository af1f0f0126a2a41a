"""Concurrency tests for reservation creation and confirmation."""

import asyncio
from datetime import date, datetime

import pytest
import pytest_asyncio
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from hotel.core.config import settings
from hotel.core.database import Base, configure_sqlite_transactions
from hotel.core.exceptions import RoomUnavailableError
from hotel.core.security import ADMIN_ROLE, Caller
from hotel.models import *  # noqa: F403 - Import all models
from hotel.models.reservation import Reservation, ReservationStatus
from hotel.schemas.catalog import CreateRoomRequest, CreateRoomTypeRequest
from hotel.services.catalog_service import CatalogService
from hotel.services.locks import RoomLockRegistry
from hotel.services.reservation_service import ReservationService

NOW = datetime(2024, 6, 1, 12, 0, 0)


@pytest_asyncio.fixture
async def shared_engine(tmp_path):
    """File-backed database so independent sessions see each other's commits."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'hotel.db'}", poolclass=NullPool)
    configure_sqlite_transactions(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(shared_engine):
    return async_sessionmaker(shared_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def rooms(session_factory):
    async with session_factory() as session:
        catalog = CatalogService(session)
        room_type = await catalog.create_room_type(
            CreateRoomTypeRequest(name="Deluxe", base_price_amount=15000, max_occupancy=2)
        )
        first = await catalog.create_room(CreateRoomRequest(room_number="101", room_type_id=room_type.id))
        second = await catalog.create_room(CreateRoomRequest(room_number="102", room_type_id=room_type.id))
        return first.id, second.id


async def _attempt(session_factory, locks, user_id, room_id, check_in, check_out):
    async with session_factory() as session:
        service = ReservationService(session, clock=lambda: NOW, locks=locks)
        reservation = await service.create_reservation(Caller(user_id=user_id), room_id, check_in, check_out)
        return reservation.id


async def _count_reservations(session_factory, room_id):
    async with session_factory() as session:
        return await session.scalar(
            select(func.count()).select_from(Reservation).where(Reservation.room_id == room_id)
        )


@pytest.mark.asyncio
async def test_concurrent_overlapping_requests_one_wins(session_factory, rooms):
    """Two guests race for overlapping nights in the same room."""
    room_id, _ = rooms
    locks = RoomLockRegistry()

    results = await asyncio.gather(
        _attempt(session_factory, locks, "guest-1", room_id, date(2024, 7, 1), date(2024, 7, 4)),
        _attempt(session_factory, locks, "guest-2", room_id, date(2024, 7, 2), date(2024, 7, 5)),
        return_exceptions=True,
    )

    successes = [r for r in results if isinstance(r, int)]
    failures = [r for r in results if isinstance(r, Exception)]
    assert len(successes) == 1
    assert len(failures) == 1
    assert isinstance(failures[0], RoomUnavailableError)
    assert await _count_reservations(session_factory, room_id) == 1


@pytest.mark.asyncio
async def test_concurrent_requests_many_contenders(session_factory, rooms):
    room_id, _ = rooms
    locks = RoomLockRegistry()

    results = await asyncio.gather(
        *[
            _attempt(session_factory, locks, f"guest-{i}", room_id, date(2024, 7, 1), date(2024, 7, 3))
            for i in range(8)
        ],
        return_exceptions=True,
    )

    assert sum(isinstance(r, int) for r in results) == 1
    assert all(isinstance(r, (int, RoomUnavailableError)) for r in results)
    assert await _count_reservations(session_factory, room_id) == 1


@pytest.mark.asyncio
async def test_concurrent_non_overlapping_requests_all_succeed(session_factory, rooms):
    room_id, other_room_id = rooms
    locks = RoomLockRegistry()

    results = await asyncio.gather(
        _attempt(session_factory, locks, "guest-1", room_id, date(2024, 7, 1), date(2024, 7, 4)),
        _attempt(session_factory, locks, "guest-2", room_id, date(2024, 7, 4), date(2024, 7, 6)),
        _attempt(session_factory, locks, "guest-3", other_room_id, date(2024, 7, 1), date(2024, 7, 4)),
        return_exceptions=True,
    )

    assert all(isinstance(r, int) for r in results), results
    assert await _count_reservations(session_factory, room_id) == 2
    assert await _count_reservations(session_factory, other_room_id) == 1


@pytest.mark.asyncio
async def test_overlapping_requests_without_shared_locks(session_factory, rooms):
    """Workers in separate processes share only the database file."""
    room_id, _ = rooms

    results = await asyncio.gather(
        _attempt(session_factory, RoomLockRegistry(), "guest-1", room_id, date(2024, 7, 1), date(2024, 7, 4)),
        _attempt(session_factory, RoomLockRegistry(), "guest-2", room_id, date(2024, 7, 2), date(2024, 7, 5)),
        return_exceptions=True,
    )

    assert sum(isinstance(r, int) for r in results) == 1
    assert sum(isinstance(r, RoomUnavailableError) for r in results) == 1
    assert await _count_reservations(session_factory, room_id) == 1


async def _confirm(session_factory, reservation_id):
    async with session_factory() as session:
        service = ReservationService(session, clock=lambda: NOW, locks=RoomLockRegistry())
        reservation = await service.transition_status(
            Caller(user_id="admin-1", roles=(ADMIN_ROLE,)), reservation_id, ReservationStatus.CONFIRMED
        )
        return reservation.status


@pytest.mark.asyncio
async def test_concurrent_confirmations_without_shared_locks(session_factory, rooms, monkeypatch):
    """Without hold windows two pending stays can overlap; only one may be confirmed."""
    monkeypatch.setattr(settings, "reservation_hold_minutes", 0)
    room_id, _ = rooms
    locks = RoomLockRegistry()
    first_id = await _attempt(session_factory, locks, "guest-1", room_id, date(2024, 7, 1), date(2024, 7, 4))
    second_id = await _attempt(session_factory, locks, "guest-2", room_id, date(2024, 7, 3), date(2024, 7, 6))

    results = await asyncio.gather(
        _confirm(session_factory, first_id),
        _confirm(session_factory, second_id),
        return_exceptions=True,
    )

    assert sum(r == ReservationStatus.CONFIRMED for r in results) == 1
    assert sum(isinstance(r, RoomUnavailableError) for r in results) == 1
