"""Reservation model definition."""

from datetime import date, datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import (
    DDL,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    event,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.clock import utcnow
from ..core.database import Base, enum_type

if TYPE_CHECKING:
    from .catalog import Room


class ReservationStatus(str, Enum):
    """Reservation lifecycle status enumeration."""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked_in"
    CHECKED_OUT = "checked_out"
    CANCELLED = "cancelled"


# Statuses that always occupy the room for their date range
OCCUPYING_STATUSES = (ReservationStatus.CONFIRMED, ReservationStatus.CHECKED_IN)


class Reservation(Base):
    """Reservation entity for one room over a half-open date range."""

    __tablename__ = "reservations"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Owner is the bearer token subject
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    # Foreign key to room
    room_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("rooms.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    # Stay details; check_out_date is exclusive
    check_in_date: Mapped[date] = mapped_column(Date, nullable=False)
    check_out_date: Mapped[date] = mapped_column(Date, nullable=False)
    guests_count: Mapped[int] = mapped_column(Integer, nullable=False)
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    special_requests: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[ReservationStatus] = mapped_column(
        enum_type(ReservationStatus),
        nullable=False,
        default=ReservationStatus.PENDING,
        index=True
    )

    # A pending reservation blocks its dates until this instant
    hold_expires_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now()
    )

    # Constraints
    __table_args__ = (
        CheckConstraint("check_out_date > check_in_date", name="ck_reservation_dates_ordered"),
        CheckConstraint("guests_count >= 1", name="ck_reservation_guests_positive"),
        CheckConstraint("total_amount >= 0", name="ck_reservation_total_non_negative"),
        CheckConstraint("length(user_id) > 0", name="ck_reservation_user_not_empty"),
        Index("ix_reservations_room_dates", "room_id", "check_in_date", "check_out_date"),
    )

    # Relationships
    room: Mapped["Room"] = relationship("Room", back_populates="reservations")

    @property
    def nights(self) -> int:
        return (self.check_out_date - self.check_in_date).days

    def __repr__(self) -> str:
        return (
            f"<Reservation(id={self.id}, room_id={self.room_id}, "
            f"check_in_date={self.check_in_date}, check_out_date={self.check_out_date}, "
            f"status={self.status})>"
        )


# PostgreSQL enforces the no-double-booking invariant for occupying statuses
event.listen(
    Reservation.__table__,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)
event.listen(
    Reservation.__table__,
    "after_create",
    DDL(
        "ALTER TABLE reservations ADD CONSTRAINT ex_reservations_room_no_overlap "
        "EXCLUDE USING gist (room_id WITH =, "
        "daterange(check_in_date, check_out_date, '[)') WITH &&) "
        "WHERE (status IN ('confirmed', 'checked_in'))"
    ).execute_if(dialect="postgresql"),
)
