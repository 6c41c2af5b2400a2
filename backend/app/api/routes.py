"""Experience routes.

POST /api/experiences returns the narrated tours for the caller's location
cell, generating them on first request:

- Google Geocoding: coordinates → locality name → location key
- Document store:   tours already generated for that key (any user)
- Google Places:    nearby tourist attractions (1h in-process cache)
- LLM (Groq/Gemini): one tour per theme set, generated concurrently
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from app.api.deps import get_pipeline, rate_limit_experiences
from app.models import Experience
from app.services.experience import ExperiencePipeline

logger = logging.getLogger(__name__)

router = APIRouter()


class ExperienceRequest(BaseModel):
    """Request body for experience generation.

    Coordinates are optional at the schema level so a missing value is
    reported as a 400 input error rather than a schema failure.
    """

    lat: Optional[float] = Field(None, ge=-90, le=90)
    lon: Optional[float] = Field(None, ge=-180, le=180)
    user_id: Optional[str] = None


class ExperiencesResponse(BaseModel):
    success: bool = True
    experiences: list[Experience]
    source: str = Field(..., description="'cache' or 'generated'")


@router.post(
    "/experiences",
    response_model=ExperiencesResponse,
    dependencies=[Depends(rate_limit_experiences)],
)
async def create_experiences(
    request: ExperienceRequest,
    pipeline: ExperiencePipeline = Depends(get_pipeline),
) -> ExperiencesResponse:
    """Return stored tours for this location, or generate and store new ones."""
    logger.info(f"[API] Experiences for ({request.lat}, {request.lon}) user={request.user_id}")
    experiences, source = await pipeline.get_or_generate(
        request.lat, request.lon, request.user_id
    )
    return ExperiencesResponse(experiences=experiences, source=source)
