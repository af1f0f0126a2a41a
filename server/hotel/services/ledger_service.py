"""Booking ledger: persisted reservations and the overlap queries over them."""

import logging
from datetime import date, datetime
from typing import Iterable

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from ..models.reservation import OCCUPYING_STATUSES, Reservation, ReservationStatus

logger = logging.getLogger(__name__)


def overlap_clause(check_in: date, check_out: date) -> ColumnElement[bool]:
    """Half-open overlap of a reservation with ``[check_in, check_out)``."""
    return and_(
        Reservation.check_in_date < check_out,
        Reservation.check_out_date > check_in,
    )


def blocking_clause(
    statuses: Iterable[ReservationStatus] = OCCUPYING_STATUSES,
    holds_as_of: datetime | None = None,
) -> ColumnElement[bool]:
    """
    Reservations that take a room out of availability.

    With ``holds_as_of`` set, pending reservations whose hold is still live at
    that instant block as well.
    """
    in_status = Reservation.status.in_(list(statuses))
    if holds_as_of is None:
        return in_status
    return or_(
        in_status,
        and_(
            Reservation.status == ReservationStatus.PENDING,
            Reservation.hold_expires_at.is_not(None),
            Reservation.hold_expires_at > holds_as_of,
        ),
    )


class LedgerService:
    """Service for reservation persistence and conflict queries."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def find_overlapping_reservations(
        self,
        room_id: int,
        check_in: date,
        check_out: date,
        statuses: Iterable[ReservationStatus] = OCCUPYING_STATUSES,
        holds_as_of: datetime | None = None,
        exclude_id: int | None = None,
    ) -> list[Reservation]:
        """
        Find blocking reservations on a room that overlap the given range.

        Args:
            room_id: Room to inspect
            check_in: Start of the range
            check_out: End of the range (exclusive)
            statuses: Statuses that always block
            holds_as_of: Also treat pending reservations with a live hold as blocking
            exclude_id: Reservation to leave out, used when re-checking itself

        Returns:
            Overlapping reservations ordered by check-in date
        """
        conditions = [
            Reservation.room_id == room_id,
            overlap_clause(check_in, check_out),
            blocking_clause(statuses, holds_as_of),
        ]
        if exclude_id is not None:
            conditions.append(Reservation.id != exclude_id)

        stmt = select(Reservation).where(*conditions).order_by(Reservation.check_in_date, Reservation.id)
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def insert_reservation(self, reservation: Reservation) -> Reservation:
        """Stage a reservation in the current transaction and assign its id."""
        self.db.add(reservation)
        await self.db.flush()
        return reservation

    async def get_reservation(self, reservation_id: int) -> Reservation | None:
        stmt = select(Reservation).where(Reservation.id == reservation_id)
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def get_reservation_for_update(self, reservation_id: int) -> Reservation | None:
        """Re-read a reservation with its row locked for the rest of the transaction."""
        stmt = (
            select(Reservation)
            .where(Reservation.id == reservation_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.db.execute(stmt)
        return result.scalar_one_or_none()

    async def update_reservation_status(
        self, reservation: Reservation, status: ReservationStatus
    ) -> Reservation:
        """Stage a status change; the caller owns the transaction."""
        reservation.status = status
        if status != ReservationStatus.PENDING:
            reservation.hold_expires_at = None
        await self.db.flush()
        return reservation

    async def list_reservations_for_user(self, user_id: str, limit: int = 50) -> list[Reservation]:
        stmt = (
            select(Reservation)
            .where(Reservation.user_id == user_id)
            .order_by(Reservation.created_at.desc(), Reservation.id.desc())
            .limit(limit)
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def list_reservations(
        self, status: ReservationStatus | None = None, limit: int = 50
    ) -> list[Reservation]:
        stmt = select(Reservation)
        if status is not None:
            stmt = stmt.where(Reservation.status == status)
        stmt = stmt.order_by(Reservation.created_at.desc(), Reservation.id.desc()).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars())
