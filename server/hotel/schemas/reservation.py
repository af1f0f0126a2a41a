"""Reservation-related Pydantic schemas."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models.reservation import ReservationStatus
from .common import Money


class CreateReservationRequest(BaseModel):
    """
    Request schema for booking a room.

    Amounts are always computed by the server; any amount sent by the
    client is ignored.
    """

    room_id: int = Field(..., description="Room to book")
    check_in_date: date = Field(..., description="First night (YYYY-MM-DD)")
    check_out_date: date = Field(..., description="Departure day, exclusive (YYYY-MM-DD)")
    guests_count: int = Field(1, description="Number of guests")
    special_requests: Optional[str] = Field(None, max_length=1000, description="Free-form guest requests")


class ReservationCreated(BaseModel):
    """Response schema for a newly created reservation."""

    booking_id: int = Field(..., description="Reservation ID")
    total_amount: Money = Field(..., description="Total price of the stay")
    nights: int = Field(..., ge=1, description="Number of nights")
    status: ReservationStatus = Field(..., description="Reservation status")
    hold_expires_at: Optional[datetime] = Field(None, description="Until when the pending reservation holds its dates")


class UpdateReservationStatusRequest(BaseModel):
    """Request schema for an admin status transition."""

    booking_id: int = Field(..., description="Reservation to update")
    status: ReservationStatus = Field(..., description="Target status")


class GetReservationRequest(BaseModel):
    """Request schema for getting a reservation."""

    booking_id: int = Field(..., description="Reservation to retrieve")


class ReservationResponse(BaseModel):
    """Reservation response schema."""

    id: int = Field(..., description="Reservation ID")
    user_id: str = Field(..., description="Owning user")
    room_id: int = Field(..., description="Booked room")
    check_in_date: date = Field(..., description="Check-in date")
    check_out_date: date = Field(..., description="Check-out date (exclusive)")
    nights: int = Field(..., ge=1, description="Number of nights")
    guests_count: int = Field(..., ge=1, description="Number of guests")
    total_amount: Money = Field(..., description="Total price of the stay")
    special_requests: Optional[str] = Field(None, description="Free-form guest requests")
    status: ReservationStatus = Field(..., description="Reservation status")
    hold_expires_at: Optional[datetime] = Field(None, description="Hold expiry for pending reservations")
    created_at: datetime = Field(..., description="Creation time (ISO 8601)")


class ReservationListResponse(BaseModel):
    """Reservation list response schema."""

    reservations: List[ReservationResponse] = Field(..., description="Reservations, newest first")


class AvailableRoom(BaseModel):
    """One bookable room for a requested stay."""

    room_id: int = Field(..., description="Room ID")
    room_number: str = Field(..., description="Room number")
    room_type_id: int = Field(..., description="Room type ID")
    room_type_name: str = Field(..., description="Room type name")
    max_occupancy: int = Field(..., ge=1, description="Maximum number of guests")
    amenities: List[str] = Field(default_factory=list, description="Amenity names")
    nightly_rate: Money = Field(..., description="Nightly price")
    total_amount: Money = Field(..., description="Price of the whole stay")


class AvailabilityResponse(BaseModel):
    """Availability search response schema."""

    check_in_date: date = Field(..., description="Requested check-in date")
    check_out_date: date = Field(..., description="Requested check-out date")
    nights: int = Field(..., ge=1, description="Number of nights")
    rooms: List[AvailableRoom] = Field(..., description="Rooms ordered by price, then room ID")
