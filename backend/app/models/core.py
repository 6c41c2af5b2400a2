"""Core data models for the audio tour API.

Pydantic models for points of interest, themed location sets, generated
tours and the documents persisted alongside them (ratings, feedback,
per-language narration).

Wire names follow the mobile client (``locationName``, ``placeId``,
``locationKey``); Python attributes are snake_case. Populate by either.
"""

from datetime import datetime, timezone
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, StringConstraints


def _normalize_language(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


# Two-letter ISO-639-1 code, e.g. "en", "fr". "ES" is accepted as "es".
LanguageCode = Annotated[
    str, StringConstraints(pattern=r"^[a-z]{2}$"), BeforeValidator(_normalize_language)
]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def place_identity(location_name: str, lat: float, lon: float, place_id: Optional[str]) -> str:
    """Stable identifier used for de-duplication.

    Falls back to name + coordinates for places without a provider id.
    """
    if place_id:
        return place_id
    return f"{location_name.lower()}@{lat:.5f},{lon:.5f}"


class Place(BaseModel):
    """Point of interest returned by the maps provider.

    Immutable once fetched; lives only as long as the places cache entry.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    location_name: str = Field(..., alias="locationName", description="Display name")
    lat: float = Field(..., description="Latitude in degrees")
    lon: float = Field(..., description="Longitude in degrees")
    place_id: Optional[str] = Field(None, alias="placeId", description="Provider place identifier")
    types: list[str] = Field(default_factory=list, description="Provider type tags")
    rating: Optional[float] = Field(None, description="Provider rating (1-5)")
    vicinity: Optional[str] = Field(None, description="Short address")
    photos: list[str] = Field(default_factory=list, description="Photo URLs")

    @property
    def identity(self) -> str:
        return place_identity(self.location_name, self.lat, self.lon, self.place_id)


class ThemeSet(BaseModel):
    """A named group of places that becomes one generated tour."""

    theme: str = Field(..., min_length=1)
    locations: list[Place] = Field(..., min_length=2)


class EnrichedLocation(BaseModel):
    """A tour stop: the place plus its narration and photos."""

    model_config = ConfigDict(populate_by_name=True)

    location_name: str = Field(..., alias="locationName")
    lat: float
    lon: float
    place_id: Optional[str] = Field(None, alias="placeId")
    types: list[str] = Field(default_factory=list)
    rating: Optional[float] = None
    vicinity: Optional[str] = None
    narration: str = ""
    photos: list[str] = Field(default_factory=list)

    @property
    def identity(self) -> str:
        return place_identity(self.location_name, self.lat, self.lon, self.place_id)


class GeneratedExperience(BaseModel):
    """Output of narration synthesis for one theme set."""

    title: str = Field(..., min_length=1)
    description: str = Field(..., min_length=1)
    locations: list[EnrichedLocation] = Field(default_factory=list)


class Experience(GeneratedExperience):
    """A persisted, user-facing generated tour."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = Field(None, description="Store-assigned identifier")
    user_id: str = Field(..., description="User who triggered generation, or 'system'")
    location_key: str = Field(..., alias="locationKey")
    times_shown: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utc_now)
    favorited_by: list[str] = Field(default_factory=list, alias="favoritedBy")


class Rating(BaseModel):
    """One user's rating of a tour location. One per (location, user)."""

    model_config = ConfigDict(populate_by_name=True)

    location_id: str = Field(..., alias="locationId")
    user_id: str = Field(..., alias="userId")
    rating: int = Field(..., ge=1, le=5)
    comment: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class RatingSummary(BaseModel):
    """Aggregate rating for a location."""

    model_config = ConfigDict(populate_by_name=True)

    average_rating: float = Field(0.0, alias="averageRating")
    rating_count: int = Field(0, alias="ratingCount")


class Feedback(BaseModel):
    """App feedback from a user (bug report, feature request, ...)."""

    model_config = ConfigDict(populate_by_name=True)

    user_id: Optional[str] = Field(None, alias="userId")
    name: str = Field(..., min_length=1)
    prof_pic_url: Optional[str] = Field(None, alias="profPicUrl")
    message: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=utc_now, alias="createdAt")


class TourDescription(BaseModel):
    """Per-location narration text and audio, keyed by language."""

    model_config = ConfigDict(populate_by_name=True)

    location_id: str = Field(..., alias="locationId")
    location_name: str = Field(..., alias="locationName")
    lat: float
    lng: float
    narrations: dict[LanguageCode, str] = Field(default_factory=dict)
    audio_urls: dict[LanguageCode, str] = Field(default_factory=dict, alias="audioUrls")
    average_rating: float = Field(0.0, alias="averageRating")
    rating_count: int = Field(0, alias="ratingCount")


class AuthenticatedUser(BaseModel):
    """Identity decoded from a bearer token."""

    id: str
    subscription_status: str = "free"
