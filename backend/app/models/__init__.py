"""Data models for the audio tour API."""

from .core import (
    AuthenticatedUser,
    EnrichedLocation,
    Experience,
    Feedback,
    GeneratedExperience,
    LanguageCode,
    Place,
    Rating,
    RatingSummary,
    ThemeSet,
    TourDescription,
    place_identity,
    utc_now,
)
from .errors import (
    AppError,
    ErrorCode,
    ExperienceGenerationError,
    ServiceError,
)

__all__ = [
    "AuthenticatedUser",
    "EnrichedLocation",
    "Experience",
    "Feedback",
    "GeneratedExperience",
    "LanguageCode",
    "Place",
    "Rating",
    "RatingSummary",
    "ThemeSet",
    "TourDescription",
    "place_identity",
    "utc_now",
    "AppError",
    "ErrorCode",
    "ExperienceGenerationError",
    "ServiceError",
]
