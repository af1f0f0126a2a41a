"""Room catalog router for room types and rooms."""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import AdminAuth, DatabaseSession
from ..core.exceptions import ProblemDetailsException
from ..core.security import Caller
from ..models.catalog import Room, RoomType
from ..schemas.catalog import (
    CreateRoomRequest,
    CreateRoomTypeRequest,
    RoomDetailResponse,
    RoomResponse,
    RoomTypeListResponse,
    RoomTypeResponse,
    RoomTypeSummary,
    UpdateRoomStatusRequest,
)
from ..schemas.common import Money
from ..services.catalog_service import CatalogService
from .common import unexpected_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/rooms", tags=["rooms"])


def _room_type_fields(room_type: RoomType) -> dict:
    return {
        "id": room_type.id,
        "name": room_type.name,
        "description": room_type.description,
        "base_price": Money.of(room_type.base_price_amount),
        "max_occupancy": room_type.max_occupancy,
        "amenities": room_type.amenities or [],
        "image_url": room_type.image_url,
    }


def _convert_room_to_schema(room: Room) -> RoomResponse:
    return RoomResponse.model_validate(room)


@router.get("/types", response_model=RoomTypeListResponse)
async def list_room_types(db: AsyncSession = DatabaseSession) -> JSONResponse:
    """List room types with total and currently available room counts."""
    catalog_service = CatalogService(db)
    rows = await catalog_service.list_room_types()

    response_data = RoomTypeListResponse(
        room_types=[
            RoomTypeSummary(**_room_type_fields(room_type), total_rooms=total, available_rooms=available)
            for room_type, total, available in rows
        ]
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.get("/{room_id}", response_model=RoomDetailResponse)
async def get_room(room_id: int, db: AsyncSession = DatabaseSession) -> JSONResponse:
    """Get a room with its room type."""
    catalog_service = CatalogService(db)
    room = await catalog_service.get_room_or_raise(room_id)

    response_data = RoomDetailResponse(
        id=room.id,
        room_number=room.room_number,
        room_type_id=room.room_type_id,
        status=room.status,
        room_type=RoomTypeResponse(**_room_type_fields(room.room_type)),
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/types", response_model=RoomTypeResponse, status_code=201)
async def create_room_type(
    request: CreateRoomTypeRequest,
    caller: Caller = AdminAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Create a room type (admin only)."""
    catalog_service = CatalogService(db)

    try:
        room_type = await catalog_service.create_room_type(request)
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise unexpected_error("room type creation", e, name=request.name)

    response_data = RoomTypeResponse(**_room_type_fields(room_type))
    return JSONResponse(status_code=201, content=response_data.model_dump(mode="json"))


@router.post("", response_model=RoomResponse, status_code=201)
async def create_room(
    request: CreateRoomRequest,
    caller: Caller = AdminAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Create a room (admin only)."""
    catalog_service = CatalogService(db)

    try:
        room = await catalog_service.create_room(request)
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise unexpected_error("room creation", e, room_number=request.room_number)

    response_data = _convert_room_to_schema(room)
    return JSONResponse(status_code=201, content=response_data.model_dump(mode="json"))


@router.post("/status", response_model=RoomResponse)
async def update_room_status(
    request: UpdateRoomStatusRequest,
    caller: Caller = AdminAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Set a room's operational status (admin only)."""
    catalog_service = CatalogService(db)
    room = await catalog_service.update_room_status(request.room_id, request.status)

    logger.info(
        "Room status changed by admin",
        extra={"room_id": room.id, "status": room.status.value, "admin_id": caller.user_id}
    )

    response_data = _convert_room_to_schema(room)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
