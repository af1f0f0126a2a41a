"""Guest rating and feedback model definitions."""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from ..core.clock import utcnow
from ..core.database import Base, enum_type


class RatingType(str, Enum):
    """Aspect of the stay being rated."""
    OVERALL = "overall"
    ROOM = "room"
    RESTAURANT = "restaurant"
    SERVICE = "service"
    AMENITIES = "amenities"


class FeedbackCategory(str, Enum):
    """Feedback message category."""
    INQUIRY = "inquiry"
    COMPLAINT = "complaint"
    SUGGESTION = "suggestion"
    COMPLIMENT = "compliment"


class FeedbackStatus(str, Enum):
    """Feedback handling status."""
    NEW = "new"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class Rating(Base):
    """Guest rating, optionally tied to one of the guest's reservations."""

    __tablename__ = "ratings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    reservation_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("reservations.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )
    rating_type: Mapped[RatingType] = mapped_column(
        enum_type(RatingType),
        nullable=False,
        default=RatingType.OVERALL,
        index=True
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    review: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        server_default=func.now()
    )

    # NULL reservation ids never collide, so general ratings are not limited
    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_rating_range"),
        UniqueConstraint("user_id", "reservation_id", "rating_type", name="uq_rating_user_reservation_type"),
    )

    def __repr__(self) -> str:
        return f"<Rating(id={self.id}, rating_type={self.rating_type}, rating={self.rating})>"


class Feedback(Base):
    """Free-form guest feedback with an optional admin response."""

    __tablename__ = "feedback"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    name: Mapped[str | None] = mapped_column(String(150), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    subject: Mapped[str | None] = mapped_column(String(255), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[FeedbackCategory] = mapped_column(
        enum_type(FeedbackCategory),
        nullable=False,
        default=FeedbackCategory.INQUIRY,
        index=True
    )
    status: Mapped[FeedbackStatus] = mapped_column(
        enum_type(FeedbackStatus),
        nullable=False,
        default=FeedbackStatus.NEW,
        index=True
    )
    admin_response: Mapped[str | None] = mapped_column(Text, nullable=True)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime, nullable=True)

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
        CheckConstraint("length(message) > 0", name="ck_feedback_message_not_empty"),
    )

    def __repr__(self) -> str:
        return f"<Feedback(id={self.id}, category={self.category}, status={self.status})>"
