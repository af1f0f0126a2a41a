"""Feedback service for guest ratings and feedback messages."""

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.clock import Clock, utcnow
from ..core.exceptions import (
    AuthorizationError,
    AuthRequiredError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from ..core.security import ADMIN_ROLE, Caller
from ..models.feedback import Feedback, FeedbackCategory, FeedbackStatus, Rating, RatingType
from ..models.reservation import Reservation

logger = logging.getLogger(__name__)


class FeedbackService:
    """Service for ratings and feedback."""

    def __init__(self, db: AsyncSession, clock: Clock = utcnow):
        self.db = db
        self.clock = clock

    async def submit_rating(
        self,
        caller: Caller | None,
        rating_type: RatingType,
        rating: int,
        review: str | None = None,
        reservation_id: int | None = None,
    ) -> Rating:
        """
        Record a rating from the caller.

        Raises:
            AuthRequiredError: If no caller is given
            ValidationError: If the rating is out of range or the reservation
                does not belong to the caller
            ConflictError: If the caller already rated this reservation for
                this rating type
        """
        if caller is None:
            raise AuthRequiredError()
        if rating is None or not 1 <= rating <= 5:
            raise ValidationError(detail="Rating must be between 1 and 5", errors={"rating": "must be 1-5"})
        rating_type = RatingType(rating_type)

        if reservation_id is not None:
            owner = await self.db.execute(
                select(Reservation.user_id).where(Reservation.id == reservation_id)
            )
            if owner.scalar_one_or_none() != caller.user_id:
                raise ValidationError(
                    detail=f"Reservation {reservation_id} does not belong to you",
                    errors={"reservation_id": "not one of your reservations"},
                )

            duplicate = await self.db.execute(
                select(Rating.id).where(
                    Rating.user_id == caller.user_id,
                    Rating.reservation_id == reservation_id,
                    Rating.rating_type == rating_type,
                )
            )
            if duplicate.scalar_one_or_none() is not None:
                raise ConflictError(
                    detail=f"You already submitted a '{rating_type.value}' rating for this reservation",
                    conflicting_resource={"reservation_id": reservation_id, "rating_type": rating_type.value},
                )

        entry = Rating(
            user_id=caller.user_id,
            reservation_id=reservation_id,
            rating_type=rating_type,
            rating=rating,
            review=review,
            created_at=self.clock(),
        )
        self.db.add(entry)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(
                detail=f"You already submitted a '{rating_type.value}' rating for this reservation",
                conflicting_resource={"reservation_id": reservation_id, "rating_type": rating_type.value},
            ) from e

        logger.info(
            "Rating submitted",
            extra={
                "rating_id": entry.id,
                "user_id": caller.user_id,
                "rating_type": rating_type.value,
                "rating": rating,
                "reservation_id": reservation_id,
            }
        )
        return entry

    async def list_ratings(
        self, rating_type: RatingType | None = None, limit: int = 10
    ) -> tuple[list[Rating], list[tuple[RatingType, float, int]]]:
        """
        Newest ratings and per-type statistics.

        Returns:
            Tuple of (ratings newest first, [(rating type, average, count)])
        """
        stmt = select(Rating)
        if rating_type is not None:
            stmt = stmt.where(Rating.rating_type == rating_type)
        stmt = stmt.order_by(Rating.created_at.desc(), Rating.id.desc()).limit(limit)
        result = await self.db.execute(stmt)
        ratings = list(result.scalars())

        summary_stmt = (
            select(Rating.rating_type, func.avg(Rating.rating), func.count(Rating.id))
            .group_by(Rating.rating_type)
            .order_by(Rating.rating_type)
        )
        if rating_type is not None:
            summary_stmt = summary_stmt.where(Rating.rating_type == rating_type)
        summary_result = await self.db.execute(summary_stmt)
        summary = [
            (RatingType(kind), round(float(average), 2), count)
            for kind, average, count in summary_result.all()
        ]
        return ratings, summary

    async def list_ratings_for_user(self, caller: Caller | None) -> list[Rating]:
        if caller is None:
            raise AuthRequiredError()
        stmt = (
            select(Rating)
            .where(Rating.user_id == caller.user_id)
            .order_by(Rating.created_at.desc(), Rating.id.desc())
        )
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def submit_feedback(
        self,
        caller: Caller | None,
        message: str | None,
        name: str | None = None,
        email: str | None = None,
        subject: str | None = None,
        category: FeedbackCategory = FeedbackCategory.INQUIRY,
    ) -> Feedback:
        """
        Store a feedback message. Anonymous senders are allowed.

        Raises:
            ValidationError: If the message is empty
        """
        if not (message or "").strip():
            raise ValidationError(detail="Message is required", errors={"message": "must not be empty"})

        now = self.clock()
        feedback = Feedback(
            user_id=caller.user_id if caller else None,
            name=name or (caller.display_name if caller else None),
            email=email or (caller.email if caller else None),
            subject=subject,
            message=message.strip(),
            category=FeedbackCategory(category),
            status=FeedbackStatus.NEW,
            created_at=now,
            updated_at=now,
        )
        self.db.add(feedback)
        await self.db.commit()

        logger.info(
            "Feedback submitted",
            extra={
                "feedback_id": feedback.id,
                "user_id": feedback.user_id,
                "category": feedback.category.value,
            }
        )
        return feedback

    def _require_admin(self, caller: Caller | None) -> None:
        if caller is None:
            raise AuthRequiredError()
        if not caller.is_admin:
            raise AuthorizationError(detail="Administrator access required", required_roles=[ADMIN_ROLE])

    async def list_feedback(
        self,
        caller: Caller | None,
        category: FeedbackCategory | None = None,
        status: FeedbackStatus | None = None,
        limit: int = 50,
    ) -> list[Feedback]:
        """List feedback newest first (admin only)."""
        self._require_admin(caller)
        stmt = select(Feedback)
        if category is not None:
            stmt = stmt.where(Feedback.category == category)
        if status is not None:
            stmt = stmt.where(Feedback.status == status)
        stmt = stmt.order_by(Feedback.created_at.desc(), Feedback.id.desc()).limit(limit)
        result = await self.db.execute(stmt)
        return list(result.scalars())

    async def respond_to_feedback(
        self,
        caller: Caller | None,
        feedback_id: int,
        response: str,
        status: FeedbackStatus = FeedbackStatus.RESOLVED,
    ) -> Feedback:
        """
        Attach an admin response to feedback and update its status.

        Raises:
            NotFoundError: If the feedback does not exist
        """
        self._require_admin(caller)
        if not (response or "").strip():
            raise ValidationError(detail="Response is required", errors={"response": "must not be empty"})

        result = await self.db.execute(select(Feedback).where(Feedback.id == feedback_id))
        feedback = result.scalar_one_or_none()
        if feedback is None:
            raise NotFoundError(resource_type="feedback", resource_id=feedback_id)

        feedback.admin_response = response.strip()
        feedback.status = FeedbackStatus(status)
        feedback.responded_at = self.clock()
        await self.db.commit()

        logger.info(
            "Feedback answered",
            extra={"feedback_id": feedback_id, "status": feedback.status.value, "admin_id": caller.user_id}
        )
        return feedback
