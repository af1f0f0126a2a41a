"""Room catalog Pydantic schemas."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.catalog import RoomStatus
from .common import Money


class CreateRoomTypeRequest(BaseModel):
    """Request schema for creating a room type."""

    name: str = Field(..., min_length=1, max_length=100, description="Room type name")
    description: Optional[str] = Field(None, max_length=2000, description="Room type description")
    base_price_amount: int = Field(..., ge=0, description="Nightly price in minor units")
    max_occupancy: int = Field(..., ge=1, le=20, description="Maximum number of guests")
    amenities: List[str] = Field(default_factory=list, description="Amenity names")
    image_url: Optional[str] = Field(None, max_length=512, description="Image URL")


class CreateRoomRequest(BaseModel):
    """Request schema for creating a room."""

    room_number: str = Field(..., min_length=1, max_length=20, description="Room number")
    room_type_id: int = Field(..., description="Room type of the room")
    status: RoomStatus = Field(RoomStatus.AVAILABLE, description="Initial operational status")


class UpdateRoomStatusRequest(BaseModel):
    """Request schema for changing a room's operational status."""

    room_id: int = Field(..., description="Room to update")
    status: RoomStatus = Field(..., description="New operational status")


class RoomTypeResponse(BaseModel):
    """Room type response schema."""

    id: int = Field(..., description="Room type ID")
    name: str = Field(..., description="Room type name")
    description: Optional[str] = Field(None, description="Room type description")
    base_price: Money = Field(..., description="Nightly price")
    max_occupancy: int = Field(..., ge=1, description="Maximum number of guests")
    amenities: List[str] = Field(default_factory=list, description="Amenity names")
    image_url: Optional[str] = Field(None, description="Image URL")


class RoomTypeSummary(RoomTypeResponse):
    """Room type with room counts."""

    total_rooms: int = Field(..., ge=0, description="Rooms of this type")
    available_rooms: int = Field(..., ge=0, description="Rooms of this type currently in 'available' status")


class RoomTypeListResponse(BaseModel):
    """Room type list response schema."""

    room_types: List[RoomTypeSummary] = Field(..., description="Room types ordered by price")


class RoomResponse(BaseModel):
    """Room response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Room ID")
    room_number: str = Field(..., description="Room number")
    room_type_id: int = Field(..., description="Room type ID")
    status: RoomStatus = Field(..., description="Operational status")


class RoomDetailResponse(RoomResponse):
    """Room response including its type."""

    room_type: RoomTypeResponse = Field(..., description="Room type")
