"""Location rating and app feedback routes."""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from app.api.deps import get_feedback_service, get_rating_service
from app.models import Feedback, Rating
from app.services.feedback import FeedbackService
from app.services.ratings import RatingService

router = APIRouter()


class RateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: str = Field(..., min_length=1, alias="userId")
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""


class RatingSummaryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: Optional[str] = None
    average_rating: float = Field(..., alias="averageRating")
    rating_count: int = Field(..., alias="ratingCount")


class RatingDetailsResponse(RatingSummaryResponse):
    feedback: list[Rating] = Field(default_factory=list)


class HasRatedResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    has_rated: bool = Field(..., alias="hasRated")


class FeedbackRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    name: str = Field(..., min_length=1)
    prof_pic_url: Optional[str] = Field(None, alias="profPicUrl")
    message: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1, description="bug, feature, general, ...")


class FeedbackCreatedResponse(BaseModel):
    success: bool = True
    id: str
    message: str = "Feedback submitted successfully"


@router.post("/rating/{location_id}", response_model=RatingSummaryResponse, status_code=201)
async def rate_location(
    location_id: str,
    request: RateRequest,
    ratings: RatingService = Depends(get_rating_service),
) -> RatingSummaryResponse:
    summary = await ratings.rate(location_id, request.user_id, request.rating, request.comment)
    return RatingSummaryResponse(
        message="Rating added successfully",
        average_rating=summary.average_rating,
        rating_count=summary.rating_count,
    )


@router.get("/rating/{location_id}", response_model=RatingDetailsResponse)
async def get_location_ratings(
    location_id: str,
    ratings: RatingService = Depends(get_rating_service),
) -> RatingDetailsResponse:
    summary, items = await ratings.get(location_id)
    return RatingDetailsResponse(
        average_rating=summary.average_rating,
        rating_count=summary.rating_count,
        feedback=items,
    )


@router.get("/rating/{location_id}/check/{user_id}", response_model=HasRatedResponse)
async def check_user_rating(
    location_id: str,
    user_id: str,
    ratings: RatingService = Depends(get_rating_service),
) -> HasRatedResponse:
    return HasRatedResponse(has_rated=await ratings.has_rated(location_id, user_id))


@router.post("/feedback", response_model=FeedbackCreatedResponse, status_code=201)
async def submit_feedback(
    request: FeedbackRequest,
    feedback: FeedbackService = Depends(get_feedback_service),
) -> FeedbackCreatedResponse:
    doc_id = await feedback.submit(Feedback(**request.model_dump()))
    return FeedbackCreatedResponse(id=doc_id)


@router.get("/feedback", response_model=list[Feedback])
async def list_feedback(
    feedback: FeedbackService = Depends(get_feedback_service),
) -> list[Feedback]:
    return await feedback.list_all()
