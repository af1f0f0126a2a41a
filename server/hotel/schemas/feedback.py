"""Rating and feedback Pydantic schemas."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..models.feedback import FeedbackCategory, FeedbackStatus, RatingType


class SubmitRatingRequest(BaseModel):
    """Request schema for rating a stay."""

    rating_type: RatingType = Field(RatingType.OVERALL, description="Rated aspect")
    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5")
    review: Optional[str] = Field(None, max_length=2000, description="Review text")
    reservation_id: Optional[int] = Field(None, description="Reservation being rated")


class RatingResponse(BaseModel):
    """Rating response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Rating ID")
    user_id: str = Field(..., description="Rating author")
    reservation_id: Optional[int] = Field(None, description="Rated reservation")
    rating_type: RatingType = Field(..., description="Rated aspect")
    rating: int = Field(..., ge=1, le=5, description="Rating from 1 to 5")
    review: Optional[str] = Field(None, description="Review text")
    created_at: datetime = Field(..., description="Creation time (ISO 8601)")


class RatingSummary(BaseModel):
    rating_type: RatingType = Field(..., description="Rated aspect")
    average: float = Field(..., ge=1, le=5, description="Average rating")
    count: int = Field(..., ge=1, description="Number of ratings")


class RatingListResponse(BaseModel):
    ratings: List[RatingResponse] = Field(..., description="Ratings, newest first")
    summary: List[RatingSummary] = Field(default_factory=list, description="Average and count per rating type")


class SubmitFeedbackRequest(BaseModel):
    """Request schema for sending feedback to the hotel."""

    name: Optional[str] = Field(None, max_length=150, description="Sender name")
    email: Optional[str] = Field(None, max_length=255, description="Sender email")
    subject: Optional[str] = Field(None, max_length=255, description="Subject line")
    message: str = Field("", max_length=5000, description="Message text")
    category: FeedbackCategory = Field(FeedbackCategory.INQUIRY, description="Feedback category")


class FeedbackResponse(BaseModel):
    """Feedback response schema."""

    model_config = ConfigDict(from_attributes=True)

    id: int = Field(..., description="Feedback ID")
    user_id: Optional[str] = Field(None, description="Signed-in sender")
    name: Optional[str] = Field(None, description="Sender name")
    email: Optional[str] = Field(None, description="Sender email")
    subject: Optional[str] = Field(None, description="Subject line")
    message: str = Field(..., description="Message text")
    category: FeedbackCategory = Field(..., description="Feedback category")
    status: FeedbackStatus = Field(..., description="Handling status")
    admin_response: Optional[str] = Field(None, description="Response from the hotel")
    responded_at: Optional[datetime] = Field(None, description="Response time (ISO 8601)")
    created_at: datetime = Field(..., description="Creation time (ISO 8601)")


class FeedbackListResponse(BaseModel):
    feedback: List[FeedbackResponse] = Field(..., description="Feedback, newest first")


class RespondFeedbackRequest(BaseModel):
    """Request schema for an admin response to feedback."""

    feedback_id: int = Field(..., description="Feedback to respond to")
    response: str = Field(..., min_length=1, max_length=5000, description="Response text")
    status: FeedbackStatus = Field(FeedbackStatus.RESOLVED, description="New handling status")
