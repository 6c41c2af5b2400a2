"""Per-language narration audio route."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from app.api.deps import get_audio_service
from app.models import LanguageCode
from app.services.audio import NarrationAudioService

router = APIRouter()


class NarrationRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    location_id: str = Field(..., min_length=1, alias="locationId")
    location_name: str = Field(..., min_length=1, alias="locationName")
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    language: LanguageCode = "en"


class NarrationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool = True
    message: str
    narration: str
    audio_url: str = Field(..., alias="audioUrl")


@router.post("/narration", response_model=NarrationResponse)
async def create_narration(
    request: NarrationRequest,
    audio: NarrationAudioService = Depends(get_audio_service),
) -> NarrationResponse:
    """Return narration text and audio for a location, generating if missing."""
    result = await audio.get_or_create(
        request.location_id,
        request.location_name,
        request.lat,
        request.lng,
        request.language,
    )
    return NarrationResponse(
        message=result.message, narration=result.narration, audio_url=result.audio_url
    )
