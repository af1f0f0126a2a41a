"""Room type and room model definitions."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import JSON, CheckConstraint, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..core.clock import utcnow
from ..core.database import Base, enum_type

if TYPE_CHECKING:
    from .reservation import Reservation


class RoomStatus(str, Enum):
    """Operational room status enumeration."""
    AVAILABLE = "available"
    OCCUPIED = "occupied"
    CLEANING = "cleaning"
    MAINTENANCE = "maintenance"


class RoomType(Base):
    """Room type entity carrying the nightly price and occupancy limit."""

    __tablename__ = "room_types"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Type information
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Nightly price in minor currency units
    base_price_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    max_occupancy: Mapped[int] = mapped_column(Integer, nullable=False)

    amenities: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)
    image_url: Mapped[str | None] = mapped_column(String(512), nullable=True)

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
        CheckConstraint("base_price_amount >= 0", name="ck_room_type_price_non_negative"),
        CheckConstraint("max_occupancy >= 1", name="ck_room_type_occupancy_positive"),
        CheckConstraint("length(name) > 0", name="ck_room_type_name_not_empty"),
    )

    # Relationships
    rooms: Mapped[list["Room"]] = relationship("Room", back_populates="room_type")

    def __repr__(self) -> str:
        return (
            f"<RoomType(id={self.id}, name='{self.name}', "
            f"base_price_amount={self.base_price_amount}, max_occupancy={self.max_occupancy})>"
        )


class Room(Base):
    """Room entity. Its status is operational metadata, not booking state."""

    __tablename__ = "rooms"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    room_number: Mapped[str] = mapped_column(String(20), nullable=False, unique=True, index=True)

    # Foreign key to room type
    room_type_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("room_types.id", ondelete="RESTRICT"),
        nullable=False,
        index=True
    )

    status: Mapped[RoomStatus] = mapped_column(
        enum_type(RoomStatus),
        nullable=False,
        default=RoomStatus.AVAILABLE,
        index=True
    )

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

    __table_args__ = (
        CheckConstraint("length(room_number) > 0", name="ck_room_number_not_empty"),
    )

    # Relationships
    room_type: Mapped["RoomType"] = relationship("RoomType", back_populates="rooms")
    reservations: Mapped[list["Reservation"]] = relationship("Reservation", back_populates="room")

    def __repr__(self) -> str:
        return f"<Room(id={self.id}, room_number='{self.room_number}', status={self.status})>"
