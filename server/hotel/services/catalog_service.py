"""Room catalog service for room types, rooms and room status."""

import logging

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from ..core.database import is_postgresql
from ..core.exceptions import ConflictError, NotFoundError
from ..models.catalog import Room, RoomStatus, RoomType
from ..schemas.catalog import CreateRoomRequest, CreateRoomTypeRequest

logger = logging.getLogger(__name__)


class CatalogService:
    """Service for room type and room operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_room_types(self) -> list[tuple[RoomType, int, int]]:
        """
        List room types with their room counts.

        Returns:
            Tuples of (room type, total rooms, rooms in 'available' status),
            ordered by nightly price
        """
        available_rooms = func.count(case((Room.status == RoomStatus.AVAILABLE, Room.id)))
        stmt = (
            select(RoomType, func.count(Room.id), available_rooms)
            .outerjoin(Room, Room.room_type_id == RoomType.id)
            .group_by(RoomType.id)
            .order_by(RoomType.base_price_amount, RoomType.id)
        )
        result = await self.db.execute(stmt)
        return [(room_type, total, available) for room_type, total, available in result.all()]

    async def get_room_type(self, room_type_id: int) -> RoomType | None:
        stmt = select(RoomType).where(RoomType.id == room_type_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_room(self, room_id: int) -> Room | None:
        """
        Get room by ID together with its room type.

        Args:
            room_id: Room ID to search for

        Returns:
            Room if found, None otherwise
        """
        stmt = select(Room).options(selectinload(Room.room_type)).where(Room.id == room_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_room_or_raise(self, room_id: int) -> Room:
        """
        Get room by ID or raise NotFoundError.

        Raises:
            NotFoundError: If room not found
        """
        room = await self.get_room(room_id)
        if not room:
            logger.warning("Room not found", extra={"room_id": room_id})
            raise NotFoundError(resource_type="room", resource_id=room_id)
        return room

    async def get_room_with_lock(self, room_id: int) -> Room:
        """
        Get a room inside the current transaction with its row locked.

        On PostgreSQL a transaction-scoped advisory lock keyed on the room is
        taken first, so bookings for one room serialize across processes
        even when the room row itself is not modified. Both locks are released
        at commit or rollback. SQLite has neither; callers start the
        transaction with ``begin_write_transaction`` so it holds the
        database write lock instead.

        Raises:
            NotFoundError: If room not found
        """
        if is_postgresql(self.db):
            await self.db.execute(
                select(func.pg_advisory_xact_lock(func.hashtext(f"room:{room_id}")))
            )

        stmt = (
            select(Room)
            .options(selectinload(Room.room_type))
            .where(Room.id == room_id)
            .with_for_update(of=Room)
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        room = result.scalar_one_or_none()
        if not room:
            logger.warning("Room not found", extra={"room_id": room_id})
            raise NotFoundError(resource_type="room", resource_id=room_id)

        logger.debug("Acquired lock for room", extra={"room_id": room_id})
        return room

    async def create_room_type(self, request: CreateRoomTypeRequest) -> RoomType:
        """
        Create a new room type.

        Raises:
            ConflictError: If a room type with the same name exists
        """
        existing = await self.db.execute(select(RoomType.id).where(RoomType.name == request.name))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError(
                detail=f"Room type '{request.name}' already exists",
                conflicting_resource={"name": request.name},
            )

        room_type = RoomType(
            name=request.name,
            description=request.description,
            base_price_amount=request.base_price_amount,
            max_occupancy=request.max_occupancy,
            amenities=list(request.amenities),
            image_url=request.image_url,
        )
        self.db.add(room_type)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(
                detail=f"Room type '{request.name}' already exists",
                conflicting_resource={"name": request.name},
            ) from e

        logger.info(
            "Room type created successfully",
            extra={
                "room_type_id": room_type.id,
                "name": room_type.name,
                "base_price_amount": room_type.base_price_amount,
            }
        )
        return room_type

    async def create_room(self, request: CreateRoomRequest) -> Room:
        """
        Create a new room.

        Raises:
            NotFoundError: If the room type does not exist
            ConflictError: If the room number is taken
        """
        if await self.get_room_type(request.room_type_id) is None:
            raise NotFoundError(resource_type="room type", resource_id=request.room_type_id)

        existing = await self.db.execute(select(Room.id).where(Room.room_number == request.room_number))
        if existing.scalar_one_or_none() is not None:
            raise ConflictError(
                detail=f"Room number '{request.room_number}' already exists",
                conflicting_resource={"room_number": request.room_number},
            )

        room = Room(
            room_number=request.room_number,
            room_type_id=request.room_type_id,
            status=request.status,
        )
        self.db.add(room)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(
                detail=f"Room number '{request.room_number}' already exists",
                conflicting_resource={"room_number": request.room_number},
            ) from e

        logger.info(
            "Room created successfully",
            extra={"room_id": room.id, "room_number": room.room_number, "room_type_id": room.room_type_id}
        )
        return room

    async def update_room_status(self, room_id: int, status: RoomStatus) -> Room:
        """
        Set a room's operational status and commit.

        Raises:
            NotFoundError: If room not found
        """
        room = await self.get_room_or_raise(room_id)
        previous = room.status
        room.status = RoomStatus(status)
        await self.db.commit()

        logger.info(
            "Room status updated",
            extra={"room_id": room_id, "from_status": previous.value, "to_status": room.status.value}
        )
        return room
