"""Feedback router for guest ratings and feedback messages."""

import logging
from typing import Optional

from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.dependencies import AdminAuth, DatabaseSession, OptionalAuth, RequiredAuth
from ..core.security import Caller
from ..models.feedback import FeedbackCategory, FeedbackStatus, RatingType
from ..schemas.feedback import (
    FeedbackListResponse,
    FeedbackResponse,
    RatingListResponse,
    RatingResponse,
    RatingSummary,
    RespondFeedbackRequest,
    SubmitFeedbackRequest,
    SubmitRatingRequest,
)
from ..services.feedback_service import FeedbackService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/feedback", tags=["feedback"])


@router.post("/rating", response_model=RatingResponse, status_code=201)
async def submit_rating(
    request: SubmitRatingRequest,
    caller: Caller = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Rate a stay, optionally tied to one of the caller's reservations."""
    feedback_service = FeedbackService(db)
    rating = await feedback_service.submit_rating(
        caller,
        rating_type=request.rating_type,
        rating=request.rating,
        review=request.review,
        reservation_id=request.reservation_id,
    )

    response_data = RatingResponse.model_validate(rating)
    return JSONResponse(status_code=201, content=response_data.model_dump(mode="json"))


@router.get("/ratings", response_model=RatingListResponse)
async def list_ratings(
    rating_type: Optional[RatingType] = Query(None, description="Filter by rating type"),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Latest ratings with per-type averages."""
    feedback_service = FeedbackService(db)
    ratings, summary = await feedback_service.list_ratings(rating_type=rating_type, limit=limit)

    response_data = RatingListResponse(
        ratings=[RatingResponse.model_validate(r) for r in ratings],
        summary=[
            RatingSummary(rating_type=kind, average=average, count=count)
            for kind, average, count in summary
        ],
    )
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.get("/ratings/mine", response_model=RatingListResponse)
async def list_my_ratings(
    caller: Caller = RequiredAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    feedback_service = FeedbackService(db)
    ratings = await feedback_service.list_ratings_for_user(caller)

    response_data = RatingListResponse(ratings=[RatingResponse.model_validate(r) for r in ratings])
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("", response_model=FeedbackResponse, status_code=201)
async def submit_feedback(
    request: SubmitFeedbackRequest,
    caller: Optional[Caller] = OptionalAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Send feedback to the hotel; signing in is optional."""
    feedback_service = FeedbackService(db)
    feedback = await feedback_service.submit_feedback(
        caller,
        message=request.message,
        name=request.name,
        email=request.email,
        subject=request.subject,
        category=request.category,
    )

    response_data = FeedbackResponse.model_validate(feedback)
    return JSONResponse(status_code=201, content=response_data.model_dump(mode="json"))


@router.get("", response_model=FeedbackListResponse)
async def list_feedback(
    category: Optional[FeedbackCategory] = Query(None, description="Filter by category"),
    status: Optional[FeedbackStatus] = Query(None, description="Filter by status"),
    limit: int = Query(50, ge=1, le=200),
    caller: Caller = AdminAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """List feedback, newest first (admin only)."""
    feedback_service = FeedbackService(db)
    items = await feedback_service.list_feedback(caller, category=category, status=status, limit=limit)

    response_data = FeedbackListResponse(feedback=[FeedbackResponse.model_validate(f) for f in items])
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))


@router.post("/respond", response_model=FeedbackResponse)
async def respond_to_feedback(
    request: RespondFeedbackRequest,
    caller: Caller = AdminAuth,
    db: AsyncSession = DatabaseSession,
) -> JSONResponse:
    """Answer a feedback message (admin only)."""
    feedback_service = FeedbackService(db)
    feedback = await feedback_service.respond_to_feedback(
        caller, request.feedback_id, request.response, status=request.status
    )

    response_data = FeedbackResponse.model_validate(feedback)
    return JSONResponse(status_code=200, content=response_data.model_dump(mode="json"))
