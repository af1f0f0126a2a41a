"""Test configuration and fixtures."""

import os
from datetime import date, datetime, timedelta

# Point the application engine at SQLite before anything imports it
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from hotel.core.database import Base, configure_sqlite_transactions, get_db
from hotel.core.security import ADMIN_ROLE, Caller, create_access_token
from hotel.models import *  # noqa: F403 - Import all models
from hotel.schemas.catalog import CreateRoomRequest, CreateRoomTypeRequest
from hotel.services.catalog_service import CatalogService
from hotel.services.locks import RoomLockRegistry
from hotel.services.order_service import OrderService

# Test database URL (in-memory SQLite for speed)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

# Engine clock used by service-level tests
FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0)


@pytest_asyncio.fixture(scope="function")
async def test_engine():
    """Create a test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    configure_sqlite_transactions(engine)

    # Create tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session


@pytest_asyncio.fixture(scope="function")
async def test_app(test_session):
    """Create a test FastAPI application."""
    from fastapi import FastAPI

    from hotel.main import register_exception_handlers, register_routers

    # Create a simplified test app without lifespan
    app = FastAPI(
        title="Hotel Reservation API (Test)",
        description="Test version of the API",
        version="1.0.0-test",
    )

    register_exception_handlers(app)
    register_routers(app)

    # Override database dependency
    async def override_get_db():
        yield test_session

    app.dependency_overrides[get_db] = override_get_db

    yield app

    # Clean up
    app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def test_client(test_app):
    """Create a test HTTP client."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def fixed_now():
    """Engine time used by service-level tests: 2024-06-01 12:00 UTC."""
    return FIXED_NOW


@pytest.fixture
def fixed_clock(fixed_now):
    return lambda: fixed_now


@pytest.fixture
def room_locks():
    """Fresh per-room lock registry so tests never share locks."""
    return RoomLockRegistry()


@pytest.fixture
def guest():
    return Caller(user_id="guest-1", username="alice", email="alice@example.com", roles=("guest",))


@pytest.fixture
def other_guest():
    return Caller(user_id="guest-2", username="bob", email="bob@example.com", roles=("guest",))


@pytest.fixture
def admin():
    return Caller(user_id="admin-1", username="frontdesk", roles=(ADMIN_ROLE,))


@pytest.fixture
def guest_headers():
    """Bearer headers for a regular guest."""
    token = create_access_token("guest-1", roles=["guest"], username="alice", email="alice@example.com")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def other_guest_headers():
    token = create_access_token("guest-2", roles=["guest"], username="bob")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers():
    """Bearer headers for an administrator."""
    token = create_access_token("admin-1", roles=[ADMIN_ROLE], username="frontdesk")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def future_stay():
    """A check-in/check-out pair safely ahead of the real clock."""
    check_in = date.today() + timedelta(days=30)
    return check_in, check_in + timedelta(days=3)


@pytest_asyncio.fixture(scope="function")
async def sample_catalog(test_session):
    """
    Two room types and three rooms.

    Standard costs 100.00 a night, Deluxe 150.00; both sleep two.
    Room 101 is Deluxe, rooms 201 and 202 are Standard.
    """
    catalog = CatalogService(test_session)

    standard = await catalog.create_room_type(
        CreateRoomTypeRequest(
            name="Standard",
            description="Queen bed",
            base_price_amount=10000,
            max_occupancy=2,
            amenities=["wifi"],
        )
    )
    deluxe = await catalog.create_room_type(
        CreateRoomTypeRequest(
            name="Deluxe",
            description="King bed and garden view",
            base_price_amount=15000,
            max_occupancy=2,
            amenities=["wifi", "minibar"],
        )
    )

    room_101 = await catalog.create_room(CreateRoomRequest(room_number="101", room_type_id=deluxe.id))
    room_201 = await catalog.create_room(CreateRoomRequest(room_number="201", room_type_id=standard.id))
    room_202 = await catalog.create_room(CreateRoomRequest(room_number="202", room_type_id=standard.id))

    return {
        "standard_id": standard.id,
        "deluxe_id": deluxe.id,
        "room_101": room_101.id,
        "room_201": room_201.id,
        "room_202": room_202.id,
    }


@pytest_asyncio.fixture(scope="function")
async def sample_menu(test_session):
    """A small menu: one active category with three items, one unavailable."""
    orders = OrderService(test_session)

    mains = await orders.create_category("Mains", display_order=1)
    hidden = await orders.create_category("Seasonal", display_order=2)
    hidden.is_active = False
    await test_session.commit()

    salmon = await orders.create_menu_item(mains.id, "Grilled Salmon", 3200, is_gluten_free=True)
    curry = await orders.create_menu_item(
        mains.id, "Chickpea Curry", 2100, is_vegetarian=True, is_vegan=True
    )
    soup = await orders.create_menu_item(mains.id, "Soup of the Day", 900, is_available=False)
    special = await orders.create_menu_item(hidden.id, "Truffle Pasta", 4500, is_vegetarian=True)

    return {
        "mains_id": mains.id,
        "seasonal_id": hidden.id,
        "salmon_id": salmon.id,
        "curry_id": curry.id,
        "soup_id": soup.id,
        "special_id": special.id,
    }
