"""Tour narration: Groq (primary) + Gemini (fallback)."""

from .service import (
    GeminiNarrationModel,
    GroqNarrationModel,
    NarrationModel,
    NarrationSynthesizer,
    TourResponseError,
    build_tour_prompt,
    create_narration_model,
    extract_json,
    match_place,
    parse_tour_response,
)

__all__ = [
    "GeminiNarrationModel",
    "GroqNarrationModel",
    "NarrationModel",
    "NarrationSynthesizer",
    "TourResponseError",
    "build_tour_prompt",
    "create_narration_model",
    "extract_json",
    "match_place",
    "parse_tour_response",
]
