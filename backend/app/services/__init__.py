"""Audio Tour Services.

Service layer components:
- Store: Redis document store with in-memory fallback
- Geocoding: Google reverse geocoding and location keys
- Places: Google Places nearby search and photos
- Themes: place categorization and themed set selection
- Narration: Groq (primary) + Gemini (fallback) tour narration
- Experience: cache-or-generate pipeline
- Audio: OpenAI TTS + Google Cloud Storage per-language narration
- Favorites, Ratings, Feedback: user documents
"""

from .store import DocumentStore, InMemoryDocumentStore, RedisDocumentStore, create_document_store
from .geocoding import GeoKeyResolver, normalize_key
from .places import PhotoEnricher, PlaceCatalog
from .themes import categorize, select_theme_sets
from .narration import (
    GeminiNarrationModel,
    GroqNarrationModel,
    NarrationModel,
    NarrationSynthesizer,
    create_narration_model,
)
from .experience import ExperiencePipeline
from .audio import NarrationAudioService
from .favorites import FavoritesService
from .ratings import RatingService
from .feedback import FeedbackService

__all__ = [
    # Store
    "DocumentStore",
    "InMemoryDocumentStore",
    "RedisDocumentStore",
    "create_document_store",
    # Location
    "GeoKeyResolver",
    "normalize_key",
    "PhotoEnricher",
    "PlaceCatalog",
    # Themes
    "categorize",
    "select_theme_sets",
    # Narration
    "GeminiNarrationModel",
    "GroqNarrationModel",
    "NarrationModel",
    "NarrationSynthesizer",
    "create_narration_model",
    # Pipelines
    "ExperiencePipeline",
    "NarrationAudioService",
    # User documents
    "FavoritesService",
    "RatingService",
    "FeedbackService",
]
