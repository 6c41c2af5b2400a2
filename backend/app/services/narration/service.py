"""Tour narration: Groq (primary) + Gemini (fallback).

Provider-agnostic base class with two concrete implementations:
- GroqNarrationModel:   Groq LPU, llama-3.1-8b-instant
- GeminiNarrationModel: Google Gemini, gemini-1.5-flash

NarrationSynthesizer turns theme sets into narrated tours:
- one model call per theme set, all issued concurrently
- the model writes narration text ONLY; names, coordinates and place ids
  are always taken from the provider data when a stop can be matched back
- a failed or malformed response drops that tour, never the whole batch
"""

import asyncio
import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any

from dotenv import load_dotenv
from pydantic import ValidationError

from app.models import EnrichedLocation, GeneratedExperience, Place, ThemeSet
from app.services.places import PhotoEnricher

logger = logging.getLogger(__name__)

load_dotenv()

SYSTEM_PROMPT = (
    "You are a passionate, deeply knowledgeable local tour guide who has walked "
    "these streets for decades. You tell true stories: real dates, real names, "
    "real events. You speak warmly in the first person, as if standing next to "
    "the traveler. You never invent places that were not given to you. "
    "When asked for JSON, respond ONLY with valid JSON. No markdown, no extra text."
)

# Stops whose name matches but whose coordinates differ by more than this
# (in degrees, per axis) are treated as different places.
COORDINATE_MATCH_TOLERANCE = 0.001
MIN_LOCATIONS_PER_TOUR = 2
FALLBACK_NARRATION = "Welcome to {name}, a highlight of our tour."


class TourResponseError(ValueError):
    """The model's output did not have the expected tour shape."""


# ── Model providers ──────────────────────────────────────────────────

class NarrationModel(ABC):
    """Base class for text generation providers.

    Subclasses only implement ``_generate()`` for their specific API client.
    """

    _timeout: float

    @abstractmethod
    async def _generate(self, prompt: str, timeout: float | None = None) -> str:
        """Send prompt to the provider and return raw text."""
        ...

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Human-readable provider name for logging."""
        ...

    async def generate(self, prompt: str, timeout: float | None = None) -> str:
        return await self._generate(prompt, timeout=timeout)


class GroqNarrationModel(NarrationModel):
    """Groq LPU with Llama 3.1 8B Instant."""

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
        timeout_seconds: float = 60.0,
    ) -> None:
        from groq import AsyncGroq

        self._api_key = api_key or os.getenv("GROQ_API_KEY")
        if not self._api_key:
            raise ValueError("GROQ_API_KEY not provided")
        self._client = AsyncGroq(api_key=self._api_key)
        self._model_name = model_name or os.getenv("GROQ_MODEL", "llama-3.1-8b-instant")
        self._timeout = timeout_seconds
        logger.info(f"[NARRATION] Groq ready: {self._model_name}")

    @property
    def provider_name(self) -> str:
        return "Groq"

    async def _generate(self, prompt: str, timeout: float | None = None) -> str:
        t = timeout or self._timeout
        try:
            resp = await asyncio.wait_for(
                self._client.chat.completions.create(
                    model=self._model_name,
                    messages=[
                        {"role": "system", "content": SYSTEM_PROMPT},
                        {"role": "user", "content": prompt},
                    ],
                    temperature=0.7,
                    max_tokens=8192,
                ),
                timeout=t,
            )
            return (resp.choices[0].message.content or "").strip()
        except asyncio.TimeoutError:
            logger.warning(f"[Groq] Timeout after {t}s")
            raise
        except Exception as e:
            logger.warning(f"[Groq] Error: {e}")
            raise


class GeminiNarrationModel(NarrationModel):
    """Google Gemini 1.5 Flash."""

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
        timeout_seconds: float = 90.0,
    ) -> None:
        from google import genai

        self._api_key = api_key or os.getenv("GEMINI_API_KEY")
        if not self._api_key:
            raise ValueError("GEMINI_API_KEY not provided")
        self._client = genai.Client(api_key=self._api_key)
        self._model_name = model_name or os.getenv("GEMINI_MODEL", "gemini-1.5-flash")
        self._timeout = timeout_seconds
        logger.info(f"[NARRATION] Gemini ready: {self._model_name}")

    @property
    def provider_name(self) -> str:
        return "Gemini"

    async def _generate(self, prompt: str, timeout: float | None = None) -> str:
        t = timeout or self._timeout
        try:
            full_prompt = f"{SYSTEM_PROMPT}\n\n{prompt}"
            resp = await asyncio.wait_for(
                self._client.aio.models.generate_content(
                    model=self._model_name,
                    contents=full_prompt,
                ),
                timeout=t,
            )
            return (resp.text or "").strip()
        except asyncio.TimeoutError:
            logger.warning(f"[Gemini] Timeout after {t}s")
            raise
        except Exception as e:
            logger.warning(f"[Gemini] Error: {e}")
            raise


def create_narration_model() -> NarrationModel:
    """Create the best available model.  Groq first, Gemini fallback."""
    if os.getenv("GROQ_API_KEY"):
        try:
            return GroqNarrationModel()
        except Exception as e:
            logger.info(f"[NARRATION] Groq init failed: {e}")

    if os.getenv("GEMINI_API_KEY"):
        try:
            return GeminiNarrationModel()
        except Exception as e:
            logger.info(f"[NARRATION] Gemini init failed: {e}")

    raise ValueError("No narration model available. Set GROQ_API_KEY or GEMINI_API_KEY in .env")


# ── Prompting and response handling ──────────────────────────────────

def build_tour_prompt(theme_set: ThemeSet, location_name: str) -> str:
    stops = "\n".join(
        f'- "{p.location_name}" (lat {p.lat}, lon {p.lon}, placeId "{p.place_id or ""}")'
        for p in theme_set.locations
    )
    example = theme_set.locations[0]
    return (
        f"Craft one immersive walking tour of {location_name} with the theme "
        f'"{theme_set.theme}".\n\n'
        f"Use EXACTLY these real locations, in this order:\n{stops}\n\n"
        f"For EACH location write a 150-300 word first-person narration with:\n"
        f"- a warm welcome and orientation\n"
        f"- vivid sensory details (sights, sounds, smells)\n"
        f"- historical context with specific dates, names and events\n"
        f"- cultural significance and a detail most visitors miss\n"
        f"- a practical tip and a transition to the next stop\n\n"
        f"Return ONLY a JSON object with this exact shape:\n"
        f"{{\n"
        f'  "title": "An engaging title for the \'{theme_set.theme}\' tour",\n'
        f'  "description": "Two or three sentences tying the stops together",\n'
        f'  "locations": [\n'
        f'    {{"locationName": "{example.location_name}", "lat": {example.lat}, '
        f'"lon": {example.lon}, "placeId": "{example.place_id or ""}", '
        f'"narration": "...", "photos": []}}\n'
        f"  ]\n"
        f"}}\n\n"
        f"Rules:\n"
        f"- One entry per location above, no others\n"
        f"- Copy locationName, lat, lon and placeId exactly as given\n"
        f"- No text outside the JSON object"
    )


def extract_json(text: str) -> str:
    """Strip markdown code fences around a JSON payload."""
    if "```json" in text:
        return text.split("```json")[1].split("```")[0].strip()
    if "```" in text:
        return text.split("```")[1].split("```")[0].strip()
    return text.strip()


def parse_tour_response(text: str) -> dict[str, Any]:
    """Parse and shape-check a model response.

    Raises:
        json.JSONDecodeError: The text is not JSON.
        TourResponseError: Required fields are missing or mistyped.
    """
    data = json.loads(extract_json(text))
    if not isinstance(data, dict):
        raise TourResponseError("Response is not a JSON object")
    for field in ("title", "description"):
        if not isinstance(data.get(field), str) or not data[field].strip():
            raise TourResponseError(f"Missing or empty '{field}'")
    if not isinstance(data.get("locations"), list):
        raise TourResponseError("'locations' is not an array")
    return data


def match_place(item: dict[str, Any], places: list[Place]) -> Place | None:
    """Find the input place a model-produced stop refers to.

    Exact place id first, then case-insensitive name plus coordinates within
    COORDINATE_MATCH_TOLERANCE on both axes.
    """
    place_id = item.get("placeId")
    if place_id:
        for place in places:
            if place.place_id and place.place_id == place_id:
                return place

    name = str(item.get("locationName") or "").strip().lower()
    try:
        lat = float(item.get("lat"))
        lon = float(item.get("lon"))
    except (TypeError, ValueError):
        return None
    for place in places:
        if (
            place.location_name.strip().lower() == name
            and abs(place.lat - lat) < COORDINATE_MATCH_TOLERANCE
            and abs(place.lon - lon) < COORDINATE_MATCH_TOLERANCE
        ):
            return place
    return None


class NarrationSynthesizer:
    """Generates narrated tours for theme sets."""

    def __init__(self, model: NarrationModel, photos: PhotoEnricher) -> None:
        self._model = model
        self._photos = photos

    async def synthesize(
        self, theme_sets: list[ThemeSet], location_name: str
    ) -> list[GeneratedExperience]:
        """Generate one tour per theme set, concurrently.

        Waits for every attempt to settle. Failed attempts are logged and
        contribute nothing; results are appended as attempts finish.
        """
        experiences: list[GeneratedExperience] = []

        async def attempt(theme_set: ThemeSet) -> None:
            experience = await self._synthesize_one(theme_set, location_name)
            if experience is not None:
                experiences.append(experience)

        results = await asyncio.gather(
            *(attempt(ts) for ts in theme_sets), return_exceptions=True
        )
        for theme_set, result in zip(theme_sets, results):
            if isinstance(result, BaseException):
                logger.warning(
                    f"[NARRATION] [{self._model.provider_name}] "
                    f"'{theme_set.theme}' failed: {result}"
                )

        logger.info(
            f"[NARRATION] Generated {len(experiences)}/{len(theme_sets)} tours for {location_name}"
        )
        return experiences

    async def _synthesize_one(
        self, theme_set: ThemeSet, location_name: str
    ) -> GeneratedExperience | None:
        text = await self._model.generate(build_tour_prompt(theme_set, location_name))
        try:
            data = parse_tour_response(text)
        except (json.JSONDecodeError, TourResponseError) as e:
            logger.warning(f"[NARRATION] Bad response for '{theme_set.theme}': {e}")
            return None

        resolved: list[EnrichedLocation] = []
        seen: set[str] = set()
        for item in data["locations"]:
            loc = self._resolve_location(item, theme_set.locations)
            if loc is None:
                continue
            if loc.identity in seen:
                logger.info(f"[NARRATION] Dropping repeated stop: {loc.location_name!r}")
                continue
            seen.add(loc.identity)
            resolved.append(loc)
        if len(resolved) < MIN_LOCATIONS_PER_TOUR:
            logger.warning(
                f"[NARRATION] '{theme_set.theme}' produced {len(resolved)} usable stops, dropping"
            )
            return None

        photo_lists = await asyncio.gather(
            *(self._photos.get_photos(loc.place_id) for loc in resolved)
        )
        for loc, photos in zip(resolved, photo_lists):
            loc.photos = photos

        return GeneratedExperience(
            title=data["title"].strip(),
            description=data["description"].strip(),
            locations=resolved,
        )

    @staticmethod
    def _resolve_location(item: Any, places: list[Place]) -> EnrichedLocation | None:
        if not isinstance(item, dict):
            return None
        narration = str(item.get("narration") or "").strip()
        place = match_place(item, places)
        if place is not None:
            return EnrichedLocation(
                location_name=place.location_name,
                lat=place.lat,
                lon=place.lon,
                place_id=place.place_id,
                types=list(place.types),
                rating=place.rating,
                vicinity=place.vicinity,
                narration=narration or FALLBACK_NARRATION.format(name=place.location_name),
            )

        # Unmatched: keep what the model said, if it is usable at all.
        try:
            return EnrichedLocation(
                location_name=item.get("locationName"),
                lat=item.get("lat"),
                lon=item.get("lon"),
                place_id=item.get("placeId") or None,
                narration=narration or FALLBACK_NARRATION.format(name=item.get("locationName")),
            )
        except ValidationError:
            logger.info(f"[NARRATION] Dropping unusable stop: {item.get('locationName')!r}")
            return None
