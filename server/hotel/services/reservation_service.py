"""Reservation engine: availability, booking creation and status transitions."""

import asyncio
import logging
from datetime import date, timedelta

from sqlalchemy import exists, select
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import contains_eager

from ..core.clock import Clock, utcnow
from ..core.config import settings
from ..core.database import begin_write_transaction
from ..core.exceptions import (
    AuthorizationError,
    AuthRequiredError,
    CapacityExceededError,
    ConflictError,
    ConflictRetryableError,
    DeadlineExceededError,
    InvalidRangeError,
    NotFoundError,
    PastDateError,
    ProblemDetailsException,
    RoomUnavailableError,
    StoreError,
    ValidationError,
)
from ..core.observability import metrics_collector
from ..core.security import ADMIN_ROLE, Caller
from ..models.catalog import Room, RoomStatus, RoomType
from ..models.reservation import Reservation, ReservationStatus
from .catalog_service import CatalogService
from .ledger_service import LedgerService, blocking_clause, overlap_clause
from .locks import RoomLockRegistry, room_locks
from .pricing import quote_stay

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[ReservationStatus, frozenset[ReservationStatus]] = {
    ReservationStatus.PENDING: frozenset({ReservationStatus.CONFIRMED, ReservationStatus.CANCELLED}),
    ReservationStatus.CONFIRMED: frozenset({ReservationStatus.CHECKED_IN, ReservationStatus.CANCELLED}),
    ReservationStatus.CHECKED_IN: frozenset({ReservationStatus.CHECKED_OUT}),
}

# Room status applied after a committed transition
ROOM_STATUS_AFTER: dict[ReservationStatus, RoomStatus] = {
    ReservationStatus.CHECKED_IN: RoomStatus.OCCUPIED,
    ReservationStatus.CHECKED_OUT: RoomStatus.CLEANING,
}

# Serialization failure, deadlock, lock not available
CONTENTION_SQLSTATES = frozenset({"40001", "40P01", "55P03"})
EXCLUSION_VIOLATION_SQLSTATE = "23P01"


class InvalidTransitionError(ConflictError):
    """Exception when a reservation cannot move to the requested status."""

    def __init__(self, reservation_id: int, current: ReservationStatus, requested: ReservationStatus):
        super().__init__(
            detail=f"Reservation {reservation_id} cannot move from '{current.value}' to '{requested.value}'",
            conflicting_resource={
                "reservation_id": reservation_id,
                "current_status": current.value,
                "requested_status": requested.value,
            },
            code="INVALID_TRANSITION",
            title="Invalid Status Transition",
        )


def _sqlstate(error: DBAPIError) -> str | None:
    orig = error.orig
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)
    return getattr(getattr(orig, "__cause__", None), "sqlstate", None)


def is_contention_error(error: DBAPIError) -> bool:
    """True for store aborts that a fresh attempt may get past."""
    if _sqlstate(error) in CONTENTION_SQLSTATES:
        return True
    return "database is locked" in str(error.orig).lower()


def _require_caller(caller: Caller | None) -> Caller:
    if caller is None:
        raise AuthRequiredError()
    return caller


def _require_admin(caller: Caller | None) -> Caller:
    caller = _require_caller(caller)
    if not caller.is_admin:
        raise AuthorizationError(detail="Administrator access required", required_roles=[ADMIN_ROLE])
    return caller


class ReservationService:
    """
    Service that owns the no-double-booking invariant.

    Creators and status transitions on one room are serialized by an
    in-process lock per room plus, inside the transaction, the room row lock
    (and an advisory lock on PostgreSQL). The availability predicate is then
    re-evaluated before anything is written.
    """

    def __init__(self, db: AsyncSession, clock: Clock = utcnow, locks: RoomLockRegistry | None = None):
        self.db = db
        self.clock = clock
        self.locks = locks if locks is not None else room_locks
        self.catalog = CatalogService(db)
        self.ledger = LedgerService(db)

    # Availability

    async def check_availability(
        self,
        check_in: date | None,
        check_out: date | None,
        room_type_id: int | None = None,
        room_id: int | None = None,
    ) -> list[Room]:
        """
        Rooms bookable for ``[check_in, check_out)``.

        Evaluated as one statement. A room qualifies when its operational
        status is 'available' and no blocking reservation overlaps the range.

        Returns:
            Rooms with their room type loaded, ordered by nightly price and
            then room id

        Raises:
            ValidationError: If a date is missing
            InvalidRangeError: If check-out is not after check-in
        """
        if check_in is None or check_out is None:
            raise ValidationError(
                detail="check_in and check_out are required",
                errors={
                    name: "field required"
                    for name, value in (("check_in", check_in), ("check_out", check_out))
                    if value is None
                },
            )
        if check_in >= check_out:
            raise InvalidRangeError(check_in, check_out)

        booked = exists().where(
            Reservation.room_id == Room.id,
            overlap_clause(check_in, check_out),
            blocking_clause(holds_as_of=self.clock()),
        )
        stmt = (
            select(Room)
            .join(Room.room_type)
            .options(contains_eager(Room.room_type))
            .where(Room.status == RoomStatus.AVAILABLE, ~booked)
            .order_by(RoomType.base_price_amount, Room.id)
        )
        if room_type_id is not None:
            stmt = stmt.where(Room.room_type_id == room_type_id)
        if room_id is not None:
            stmt = stmt.where(Room.id == room_id)

        result = await self.db.execute(stmt)
        rooms = list(result.scalars().unique())

        logger.info(
            "Availability check completed",
            extra={
                "check_in": check_in.isoformat(),
                "check_out": check_out.isoformat(),
                "room_type_id": room_type_id,
                "room_id": room_id,
                "available_rooms": len(rooms),
            }
        )
        return rooms

    async def is_room_available(self, room_id: int, check_in: date, check_out: date) -> bool:
        rooms = await self.check_availability(check_in, check_out, room_id=room_id)
        return bool(rooms)

    # Creation

    async def create_reservation(
        self,
        caller: Caller | None,
        room_id: int | None,
        check_in: date | None,
        check_out: date | None,
        guests_count: int | None = 1,
        special_requests: str | None = None,
        timeout_seconds: float | None = None,
    ) -> Reservation:
        """
        Book a room for ``[check_in, check_out)``.

        The reservation starts as 'pending' and holds its dates for
        ``settings.reservation_hold_minutes``. The total is always computed
        from the catalog price.

        Raises:
            AuthRequiredError: If no caller is given
            ValidationError: If a field is missing or guests_count < 1
            PastDateError: If check-in is before today
            InvalidRangeError: If check-out is not after check-in
            NotFoundError: If the room does not exist
            RoomUnavailableError: If the room is booked or out of service
            CapacityExceededError: If the room type cannot take that many guests
            ConflictRetryableError: If contention persisted through every retry
            DeadlineExceededError: If the deadline expired; nothing was written
            StoreError: On any other store failure
        """
        caller = _require_caller(caller)

        missing = [
            name
            for name, value in (("room_id", room_id), ("check_in_date", check_in), ("check_out_date", check_out))
            if value is None
        ]
        if missing:
            raise ValidationError(
                detail=f"Missing required fields: {', '.join(missing)}",
                errors={name: "field required" for name in missing},
            )
        if guests_count is None or guests_count < 1:
            raise ValidationError(
                detail="guests_count must be at least 1",
                errors={"guests_count": "must be at least 1"},
            )

        today = self.clock().date()
        if check_in < today:
            metrics_collector.record_reservation_rejected("past_date")
            raise PastDateError(check_in, today)
        if check_out <= check_in:
            metrics_collector.record_reservation_rejected("invalid_range")
            raise InvalidRangeError(check_in, check_out)

        timeout = timeout_seconds if timeout_seconds is not None else settings.reservation_timeout_seconds
        try:
            return await asyncio.wait_for(
                self._create_with_retry(caller, room_id, check_in, check_out, guests_count, special_requests),
                timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Reservation creation exceeded its deadline",
                extra={"room_id": room_id, "user_id": caller.user_id, "timeout_seconds": timeout}
            )
            metrics_collector.record_reservation_rejected("deadline")
            raise DeadlineExceededError("reservation", timeout)

    async def _create_with_retry(
        self,
        caller: Caller,
        room_id: int,
        check_in: date,
        check_out: date,
        guests_count: int,
        special_requests: str | None,
    ) -> Reservation:
        attempts = settings.reservation_retry_attempts + 1
        attempt = 1
        while True:
            try:
                return await self._create_once(
                    caller, room_id, check_in, check_out, guests_count, special_requests
                )
            except ConflictRetryableError:
                if attempt >= attempts:
                    raise
                metrics_collector.record_reservation_retry()
                logger.warning(
                    "Reservation attempt aborted by contention, retrying",
                    extra={"room_id": room_id, "attempt": attempt, "max_attempts": attempts}
                )
                await asyncio.sleep(settings.reservation_retry_backoff_seconds * attempt)
                attempt += 1

    async def _create_once(
        self,
        caller: Caller,
        room_id: int,
        check_in: date,
        check_out: date,
        guests_count: int,
        special_requests: str | None,
    ) -> Reservation:
        async with self.locks.lock_for(room_id):
            try:
                await begin_write_transaction(self.db)
                now = self.clock()
                room = await self.catalog.get_room_with_lock(room_id)

                if room.status != RoomStatus.AVAILABLE:
                    raise RoomUnavailableError(room_id, check_in, check_out, reason=room.status.value)

                conflicts = await self.ledger.find_overlapping_reservations(
                    room_id, check_in, check_out, holds_as_of=now
                )
                if conflicts:
                    logger.info(
                        "Reservation rejected - dates already booked",
                        extra={
                            "room_id": room_id,
                            "check_in": check_in.isoformat(),
                            "check_out": check_out.isoformat(),
                            "conflicting_ids": [r.id for r in conflicts],
                        }
                    )
                    raise RoomUnavailableError(room_id, check_in, check_out)

                room_type = room.room_type
                if guests_count > room_type.max_occupancy:
                    raise CapacityExceededError(room_id, guests_count, room_type.max_occupancy)

                hold_minutes = settings.reservation_hold_minutes
                reservation = Reservation(
                    user_id=caller.user_id,
                    room_id=room_id,
                    check_in_date=check_in,
                    check_out_date=check_out,
                    guests_count=guests_count,
                    total_amount=quote_stay(room_type.base_price_amount, check_in, check_out),
                    special_requests=special_requests,
                    status=ReservationStatus.PENDING,
                    hold_expires_at=now + timedelta(minutes=hold_minutes) if hold_minutes > 0 else None,
                    created_at=now,
                    updated_at=now,
                )
                await self.ledger.insert_reservation(reservation)
                room_type_name = room_type.name
                await self.db.commit()

            except ProblemDetailsException as e:
                await self.db.rollback()
                if isinstance(e, RoomUnavailableError):
                    metrics_collector.record_reservation_rejected(e.reason)
                elif isinstance(e, CapacityExceededError):
                    metrics_collector.record_reservation_rejected("capacity")
                raise
            except asyncio.CancelledError:
                await self.db.rollback()
                raise
            except SQLAlchemyError as e:
                await self.db.rollback()
                raise self._translate_store_error(e, room_id, check_in, check_out) from e

        metrics_collector.record_reservation_created(room_type_name)
        logger.info(
            "Reservation created successfully",
            extra={
                "reservation_id": reservation.id,
                "room_id": room_id,
                "user_id": caller.user_id,
                "check_in": check_in.isoformat(),
                "check_out": check_out.isoformat(),
                "nights": reservation.nights,
                "total_amount": reservation.total_amount,
            }
        )
        return reservation

    def _translate_store_error(
        self, error: SQLAlchemyError, room_id: int, check_in: date, check_out: date
    ) -> ProblemDetailsException:
        if isinstance(error, IntegrityError) and _sqlstate(error) == EXCLUSION_VIOLATION_SQLSTATE:
            metrics_collector.record_reservation_rejected("booked")
            return RoomUnavailableError(room_id, check_in, check_out)
        if isinstance(error, DBAPIError) and is_contention_error(error):
            return ConflictRetryableError("reservation")

        store_error = StoreError()
        logger.error(
            "Reservation store failure",
            exc_info=error,
            extra={"room_id": room_id, "error_id": store_error.error_id}
        )
        return store_error

    # Status transitions

    async def transition_status(
        self,
        caller: Caller | None,
        reservation_id: int,
        new_status: ReservationStatus | str,
        timeout_seconds: float | None = None,
    ) -> Reservation:
        """
        Move a reservation along its lifecycle (admin only).

        Requesting the current status is a no-op. Confirming re-checks that
        no other confirmed or checked-in reservation overlaps. The locked
        read-modify-write runs under ``timeout_seconds`` (default
        ``settings.reservation_timeout_seconds``). After commit the room's
        operational status follows check-in and check-out; a failure there
        is logged and counted but not raised.

        Raises:
            AuthRequiredError / AuthorizationError: If the caller is not an admin
            ValidationError: If the status is unknown
            NotFoundError: If the reservation does not exist
            InvalidTransitionError: If the move is not allowed
            RoomUnavailableError: If confirming would double-book the room
            DeadlineExceededError: If the deadline expired; nothing was written
        """
        _require_admin(caller)
        try:
            new_status = ReservationStatus(new_status)
        except ValueError:
            raise ValidationError(
                detail=f"Unknown reservation status '{new_status}'",
                errors={"status": "unknown status"},
            )

        existing = await self.ledger.get_reservation(reservation_id)
        if existing is None:
            raise NotFoundError(resource_type="reservation", resource_id=reservation_id)
        room_id = existing.room_id
        stay = (existing.check_in_date, existing.check_out_date)

        timeout = timeout_seconds if timeout_seconds is not None else settings.reservation_timeout_seconds
        try:
            reservation, current = await asyncio.wait_for(
                self._transition_locked(reservation_id, room_id, stay, new_status),
                timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Reservation status change exceeded its deadline",
                extra={"reservation_id": reservation_id, "status": new_status.value, "timeout_seconds": timeout}
            )
            raise DeadlineExceededError("status change", timeout)

        if current == new_status:
            return reservation

        metrics_collector.record_status_transition(new_status.value)
        logger.info(
            "Reservation status changed",
            extra={
                "reservation_id": reservation_id,
                "room_id": room_id,
                "from_status": current.value,
                "to_status": new_status.value,
            }
        )

        # Keep the committed reservation readable whatever happens to the session next
        self.db.expunge(reservation)
        await self._sync_room_status(room_id, reservation_id, new_status)
        return reservation

    async def _transition_locked(
        self,
        reservation_id: int,
        room_id: int,
        stay: tuple[date, date],
        new_status: ReservationStatus,
    ) -> tuple[Reservation, ReservationStatus]:
        async with self.locks.lock_for(room_id):
            try:
                await begin_write_transaction(self.db)
                await self.catalog.get_room_with_lock(room_id)
                reservation = await self.ledger.get_reservation_for_update(reservation_id)
                if reservation is None:
                    raise NotFoundError(resource_type="reservation", resource_id=reservation_id)

                current = reservation.status
                if current == new_status:
                    await self.db.commit()
                    logger.info(
                        "Reservation already in requested status",
                        extra={"reservation_id": reservation_id, "status": current.value}
                    )
                    return reservation, current

                if new_status not in ALLOWED_TRANSITIONS.get(current, frozenset()):
                    raise InvalidTransitionError(reservation_id, current, new_status)

                if new_status == ReservationStatus.CONFIRMED:
                    conflicts = await self.ledger.find_overlapping_reservations(
                        room_id,
                        reservation.check_in_date,
                        reservation.check_out_date,
                        exclude_id=reservation_id,
                    )
                    if conflicts:
                        raise RoomUnavailableError(
                            room_id, reservation.check_in_date, reservation.check_out_date
                        )

                await self.ledger.update_reservation_status(reservation, new_status)
                await self.db.commit()
                return reservation, current

            except ProblemDetailsException:
                await self.db.rollback()
                raise
            except asyncio.CancelledError:
                await self.db.rollback()
                raise
            except SQLAlchemyError as e:
                await self.db.rollback()
                if isinstance(e, IntegrityError) and _sqlstate(e) == EXCLUSION_VIOLATION_SQLSTATE:
                    raise RoomUnavailableError(room_id, *stay) from e
                if isinstance(e, DBAPIError) and is_contention_error(e):
                    raise ConflictRetryableError("status change") from e
                store_error = StoreError()
                logger.error(
                    "Reservation status store failure",
                    exc_info=e,
                    extra={"reservation_id": reservation_id, "error_id": store_error.error_id}
                )
                raise store_error from e

    async def _sync_room_status(self, room_id: int, reservation_id: int, status: ReservationStatus) -> None:
        target = ROOM_STATUS_AFTER.get(status)
        if target is None:
            return
        try:
            await self.catalog.update_room_status(room_id, target)
        except (ProblemDetailsException, SQLAlchemyError):
            metrics_collector.record_room_status_sync_failure()
            logger.error(
                "Room status update after reservation transition failed",
                exc_info=True,
                extra={"room_id": room_id, "reservation_id": reservation_id, "room_status": target.value}
            )
            await self.db.rollback()

    # Reads

    async def get_reservation(self, caller: Caller | None, reservation_id: int) -> Reservation:
        """
        Get a reservation visible to the caller.

        Guests only see their own reservations; anything else looks missing.

        Raises:
            AuthRequiredError: If no caller is given
            NotFoundError: If not found or not visible
        """
        caller = _require_caller(caller)
        reservation = await self.ledger.get_reservation(reservation_id)
        if reservation is None or (reservation.user_id != caller.user_id and not caller.is_admin):
            raise NotFoundError(resource_type="reservation", resource_id=reservation_id)
        return reservation

    async def list_reservations_for_user(self, caller: Caller | None, limit: int = 50) -> list[Reservation]:
        caller = _require_caller(caller)
        return await self.ledger.list_reservations_for_user(caller.user_id, limit=limit)

    async def list_reservations(
        self,
        caller: Caller | None,
        status: ReservationStatus | None = None,
        limit: int = 50,
    ) -> list[Reservation]:
        """List all reservations, newest first (admin only)."""
        _require_admin(caller)
        return await self.ledger.list_reservations(status=status, limit=limit)


def stay_total(room: Room, check_in: date, check_out: date) -> int:
    """Price of ``[check_in, check_out)`` in a room whose type is loaded."""
    return quote_stay(room.room_type.base_price_amount, check_in, check_out)

