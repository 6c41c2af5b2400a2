"""Shared route dependencies: service instances, rate limiting, auth.

Services are created lazily on first use and shared by every request in the
worker. Tests swap them out with ``app.dependency_overrides``.
"""

import logging
import os

import jwt
from fastapi import Header, Request

from app.models import AuthenticatedUser, ErrorCode, ServiceError
from app.services.audio import (
    GCSAudioStorage,
    NarrationAudioService,
    OpenAISpeechSynthesizer,
)
from app.services.experience import ExperiencePipeline
from app.services.favorites import FavoritesService
from app.services.feedback import FeedbackService
from app.services.geocoding import GeoKeyResolver
from app.services.narration import (
    NarrationModel,
    NarrationSynthesizer,
    create_narration_model,
)
from app.services.places import PhotoEnricher, PlaceCatalog
from app.services.ratings import RatingService
from app.services.store import DocumentStore, create_document_store
from app.utils.rate_limit import FixedWindowRateLimiter

logger = logging.getLogger(__name__)

# Service instances
_store: DocumentStore | None = None
_resolver: GeoKeyResolver | None = None
_catalog: PlaceCatalog | None = None
_photos: PhotoEnricher | None = None
_narration_model: NarrationModel | None = None
_pipeline: ExperiencePipeline | None = None
_audio_service: NarrationAudioService | None = None

experience_rate_limiter = FixedWindowRateLimiter(limit=60, window_seconds=60.0)


def get_store() -> DocumentStore:
    global _store
    if _store is None:
        _store = create_document_store()
    return _store


def get_resolver() -> GeoKeyResolver:
    global _resolver
    if _resolver is None:
        _resolver = GeoKeyResolver()
    return _resolver


def get_catalog() -> PlaceCatalog:
    global _catalog
    if _catalog is None:
        _catalog = PlaceCatalog()
    return _catalog


def get_photo_enricher() -> PhotoEnricher:
    global _photos
    if _photos is None:
        _photos = PhotoEnricher()
    return _photos


def get_narration_model() -> NarrationModel:
    global _narration_model
    if _narration_model is None:
        _narration_model = create_narration_model()
    return _narration_model


def get_pipeline() -> ExperiencePipeline:
    global _pipeline
    if _pipeline is None:
        _pipeline = ExperiencePipeline(
            resolver=get_resolver(),
            catalog=get_catalog(),
            synthesizer=NarrationSynthesizer(get_narration_model(), get_photo_enricher()),
            store=get_store(),
        )
    return _pipeline


def get_audio_service() -> NarrationAudioService:
    global _audio_service
    if _audio_service is None:
        _audio_service = NarrationAudioService(
            model=get_narration_model(),
            speech=OpenAISpeechSynthesizer(),
            storage=GCSAudioStorage(),
            store=get_store(),
        )
    return _audio_service


def get_favorites_service() -> FavoritesService:
    return FavoritesService(get_store())


def get_rating_service() -> RatingService:
    return RatingService(get_store())


def get_feedback_service() -> FeedbackService:
    return FeedbackService(get_store())


async def close_services() -> None:
    """Release HTTP clients and the store connection on shutdown."""
    for service in (_resolver, _catalog, _photos, _store):
        if service is not None:
            await service.close()


# ── Rate limiting ─────────────────────────────────────────────────────

async def rate_limit_experiences(request: Request) -> None:
    client_ip = request.client.host if request.client else "unknown"
    if not experience_rate_limiter.check(client_ip):
        logger.info(f"[RATE] Limited {client_ip}")
        raise ServiceError(
            ErrorCode.RATE_LIMITED,
            "Too many requests, please try again later.",
            "You're going a bit fast. Please wait a minute and try again.",
        )


# ── Auth ──────────────────────────────────────────────────────────────

def decode_token(token: str) -> dict:
    """Raise jwt.PyJWTError if invalid or expired."""
    secret = os.getenv("JWT_SECRET")
    if not secret:
        raise jwt.InvalidTokenError("JWT_SECRET is not configured")
    return jwt.decode(token, secret, algorithms=["HS256"])


async def get_current_user(
    authorization: str | None = Header(default=None),
) -> AuthenticatedUser:
    """Bearer token (``Bearer`` prefix optional) → user identity."""
    if not authorization:
        raise ServiceError(
            ErrorCode.UNAUTHORIZED,
            "Access denied. No token provided.",
            "Please sign in to continue.",
        )

    token = authorization[7:] if authorization.startswith("Bearer ") else authorization
    try:
        payload = decode_token(token.strip())
    except jwt.ExpiredSignatureError:
        raise ServiceError(
            ErrorCode.UNAUTHORIZED, "Token expired", "Your session expired. Please sign in again."
        )
    except jwt.PyJWTError:
        raise ServiceError(
            ErrorCode.UNAUTHORIZED, "Invalid token", "Please sign in again."
        )

    user_id = payload.get("id")
    if not user_id:
        raise ServiceError(ErrorCode.UNAUTHORIZED, "Token has no user id", "Please sign in again.")
    return AuthenticatedUser(
        id=str(user_id),
        subscription_status=payload.get("subscriptionStatus") or "free",
    )
