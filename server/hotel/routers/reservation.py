"""Reservation router for availability, booking and status operations."""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import AdminAuth, DatabaseSession, RequiredAuth
from ..core.exceptions import ProblemDetailsException
from ..core.security import Caller
from ..models.reservation import Reservation, ReservationStatus
from ..schemas.common import Money
from ..schemas.reservation import (
    AvailabilityResponse,
    AvailableRoom,
    CreateReservationRequest,
    GetReservationRequest,
    ReservationCreated,
    ReservationListResponse,
    ReservationResponse,
    UpdateReservationStatusRequest,
)
from ..services.pricing import count_nights
from ..services.reservation_service import ReservationService, stay_total
from .common import IDEMPOTENCY_KEY_HEADER, run_idempotent, unexpected_error

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/reservation", tags=["reservation"])


def _convert_reservation_to_schema(reservation: Reservation) -> ReservationResponse:
    """Convert reservation model to schema."""
    return ReservationResponse(
        id=reservation.id,
        user_id=reservation.user_id,
        room_id=reservation.room_id,
        check_in_date=reservation.check_in_date,
        check_out_date=reservation.check_out_date,
        nights=reservation.nights,
        guests_count=reservation.guests_count,
        total_amount=Money.of(reservation.total_amount),
        special_requests=reservation.special_requests,
        status=reservation.status,
        hold_expires_at=reservation.hold_expires_at,
        created_at=reservation.created_at,
    )


@router.get("/availability", response_model=AvailabilityResponse)
async def check_availability(
    check_in: Optional[date] = Query(None, description="Check-in date (YYYY-MM-DD)"),
    check_out: Optional[date] = Query(None, description="Check-out date (YYYY-MM-DD)"),
    room_type_id: Optional[int] = Query(None, description="Restrict to one room type"),
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """
    List rooms bookable for the stay, cheapest first.

    No side effects; a room shown here may still be taken before it is booked.
    """
    reservation_service = ReservationService(db)
    rooms = await reservation_service.check_availability(check_in, check_out, room_type_id=room_type_id)

    response_data = AvailabilityResponse(
        check_in_date=check_in,
        check_out_date=check_out,
        nights=count_nights(check_in, check_out),
        rooms=[
            AvailableRoom(
                room_id=room.id,
                room_number=room.room_number,
                room_type_id=room.room_type_id,
                room_type_name=room.room_type.name,
                max_occupancy=room.room_type.max_occupancy,
                amenities=room.room_type.amenities or [],
                nightly_rate=Money.of(room.room_type.base_price_amount),
                total_amount=Money.of(stay_total(room, check_in, check_out)),
            )
            for room in rooms
        ],
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("", response_model=ReservationCreated, status_code=201)
async def create_reservation(
    request: CreateReservationRequest,
    caller: Caller = RequiredAuth,
    db: AsyncSession = DatabaseSession,
    idempotency_key: Optional[str] = IDEMPOTENCY_KEY_HEADER,
) -> JSONResponse:
    """
    Book a room.

    The reservation starts pending and holds its dates for the configured
    hold window. The total is computed server-side. Repeating the request
    with the same Idempotency-Key returns the original outcome.
    """
    reservation_service = ReservationService(db)

    async def operation():
        reservation = await reservation_service.create_reservation(
            caller,
            room_id=request.room_id,
            check_in=request.check_in_date,
            check_out=request.check_out_date,
            guests_count=request.guests_count,
            special_requests=request.special_requests,
        )
        response_data = ReservationCreated(
            booking_id=reservation.id,
            total_amount=Money.of(reservation.total_amount),
            nights=reservation.nights,
            status=reservation.status,
            hold_expires_at=reservation.hold_expires_at,
        )
        return response_data.model_dump(mode="json")

    try:
        return await run_idempotent(
            operation_name="reservation.create",
            caller=caller,
            idempotency_key=idempotency_key,
            request_body=request.model_dump(mode="json"),
            operation=operation,
            db=db,
            status_code=201,
        )
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise unexpected_error("reservation creation", e, room_id=request.room_id, user_id=caller.user_id)


@router.post("/status", response_model=ReservationResponse)
async def update_reservation_status(
    request: UpdateReservationStatusRequest,
    caller: Caller = AdminAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Move a reservation to a new status (admin only)."""
    reservation_service = ReservationService(db)

    try:
        reservation = await reservation_service.transition_status(caller, request.booking_id, request.status)
    except ProblemDetailsException:
        raise
    except Exception as e:
        raise unexpected_error("reservation status update", e, booking_id=request.booking_id)

    response_data = _convert_reservation_to_schema(reservation)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/get", response_model=ReservationResponse)
async def get_reservation(
    request: GetReservationRequest,
    caller: Caller = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Get one of the caller's reservations (any reservation for admins)."""
    reservation_service = ReservationService(db)
    reservation = await reservation_service.get_reservation(caller, request.booking_id)

    response_data = _convert_reservation_to_schema(reservation)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.get("/mine", response_model=ReservationListResponse)
async def list_my_reservations(
    limit: int = Query(50, ge=1, le=200),
    caller: Caller = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """List the caller's reservations, newest first."""
    reservation_service = ReservationService(db)
    reservations = await reservation_service.list_reservations_for_user(caller, limit=limit)

    response_data = ReservationListResponse(
        reservations=[_convert_reservation_to_schema(r) for r in reservations]
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.get("/list", response_model=ReservationListResponse)
async def list_reservations(
    status: Optional[ReservationStatus] = Query(None, description="Filter by status"),
    limit: int = Query(50, ge=1, le=200),
    caller: Caller = AdminAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """List all reservations, newest first (admin only)."""
    reservation_service = ReservationService(db)
    reservations = await reservation_service.list_reservations(caller, status=status, limit=limit)

    response_data = ReservationListResponse(
        reservations=[_convert_reservation_to_schema(r) for r in reservations]
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
