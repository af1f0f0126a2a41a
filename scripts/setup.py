#!/usr/bin/env python3
"""Setup script for the hotel reservation API."""

import asyncio
import logging
import sys
from pathlib import Path

# Add the server directory to the Python path
server_dir = Path(__file__).parent.parent / "server"
sys.path.insert(0, str(server_dir))

from alembic import command
from alembic.config import Config
from sqlalchemy import func, select

from hotel.core.database import async_session_factory, close_db
from hotel.models import Room, RoomType
from hotel.schemas.catalog import CreateRoomRequest, CreateRoomTypeRequest
from hotel.services.catalog_service import CatalogService
from hotel.services.order_service import OrderService

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

ROOM_TYPES = [
    CreateRoomTypeRequest(
        name="Standard",
        description="Queen bed, city view",
        base_price_amount=10000,
        max_occupancy=2,
        amenities=["wifi", "tv"],
    ),
    CreateRoomTypeRequest(
        name="Deluxe",
        description="King bed, garden view, workspace",
        base_price_amount=15000,
        max_occupancy=2,
        amenities=["wifi", "tv", "minibar"],
    ),
    CreateRoomTypeRequest(
        name="Family Suite",
        description="Two bedrooms and a lounge",
        base_price_amount=25000,
        max_occupancy=5,
        amenities=["wifi", "tv", "minibar", "kitchenette"],
    ),
]

# room number -> room type name
ROOMS = {
    "101": "Deluxe",
    "102": "Deluxe",
    "103": "Standard",
    "104": "Standard",
    "201": "Family Suite",
}

MENU = {
    "Breakfast": [
        ("Continental Breakfast", 1800, {"is_vegetarian": True}),
        ("Full English", 2200, {}),
    ],
    "Mains": [
        ("Grilled Salmon", 3200, {"is_gluten_free": True}),
        ("Mushroom Risotto", 2600, {"is_vegetarian": True, "is_gluten_free": True}),
        ("Chickpea Curry", 2100, {"is_vegetarian": True, "is_vegan": True}),
    ],
    "Desserts": [
        ("Chocolate Fondant", 1200, {"is_vegetarian": True}),
    ],
}


def run_migrations() -> None:
    """Apply Alembic migrations up to head."""
    alembic_cfg = Config(str(server_dir / "db" / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(server_dir / "db" / "alembic"))

    logger.info("Running database migrations...")
    command.upgrade(alembic_cfg, "head")
    logger.info("Database migrations completed")


async def setup_database():
    """Setup the database with the current schema."""
    logger.info("Setting up database...")

    try:
        # env.py drives its own event loop, so keep it off this one
        await asyncio.to_thread(run_migrations)
        logger.info("Database setup completed successfully!")
    except Exception as e:
        logger.error(f"Database setup failed: {e}")
        raise


async def create_sample_data():
    """Create a small catalog and menu for local testing."""
    logger.info("Creating sample data...")

    async with async_session_factory() as db:
        existing = await db.execute(select(func.count()).select_from(RoomType))
        if existing.scalar_one() > 0:
            logger.info("Sample data already exists, skipping...")
            return

        catalog = CatalogService(db)
        type_ids = {}
        for request in ROOM_TYPES:
            room_type = await catalog.create_room_type(request)
            type_ids[room_type.name] = room_type.id

        for room_number, type_name in ROOMS.items():
            await catalog.create_room(
                CreateRoomRequest(room_number=room_number, room_type_id=type_ids[type_name])
            )

        orders = OrderService(db)
        for display_order, (category_name, items) in enumerate(MENU.items()):
            category = await orders.create_category(category_name, display_order=display_order)
            for name, price_amount, flags in items:
                await orders.create_menu_item(category.id, name, price_amount, **flags)

        room_count = await db.execute(select(func.count()).select_from(Room))
        logger.info(f"Sample data created successfully! {room_count.scalar_one()} rooms available")


async def main():
    """Main setup function."""
    logger.info("Starting hotel reservation API setup...")

    await setup_database()
    await create_sample_data()
    await close_db()

    logger.info("Setup completed successfully!")
    logger.info("You can now start the API server with: cd server && uvicorn hotel.main:app --reload")


if __name__ == "__main__":
    asyncio.run(main())
