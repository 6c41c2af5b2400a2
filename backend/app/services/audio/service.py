"""Per-language narration audio for tour locations.

Pipeline for ``(location, language)``:
1. Stored audio for the language → return it, nothing generated
2. Stored narration text for the language → reuse it, else ask the model
3. Text-to-speech (OpenAI) → MP3 bytes
4. Upload to Google Cloud Storage → public URL
5. Save narration + URL on the location's tour description

Narrations and audio URLs are ``dict[LanguageCode, str]`` on
``TourDescription``; language codes are validated before reaching here.
"""

import asyncio
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from uuid import uuid4

from dotenv import load_dotenv

from app.models import ErrorCode, ServiceError, TourDescription
from app.services.narration import NarrationModel
from app.services.store import DocumentStore

logger = logging.getLogger(__name__)

load_dotenv()

TOUR_DESCRIPTIONS = "tour_descriptions"

LANGUAGE_VOICES: dict[str, str] = {
    "en": "alloy",
    "es": "nova",
    "fr": "onyx",
    "de": "echo",
    "it": "shimmer",
    "ja": "echo",
    "zh": "onyx",
}
DEFAULT_VOICE = "alloy"


def voice_for(language: str) -> str:
    return LANGUAGE_VOICES.get(language, DEFAULT_VOICE)


def build_location_prompt(location_name: str, lat: float, lng: float, language: str) -> str:
    return (
        f"Create an immersive, detailed narration (300-400 words) about {location_name} "
        f"(latitude {lat}, longitude {lng}).\n\n"
        f"Include:\n"
        f"- Historical background and significance\n"
        f"- Interesting cultural aspects\n"
        f"- Local stories or legends\n"
        f"- Notable features\n"
        f"- Small details that only locals would know\n"
        f"- Sensory details (sights, sounds, smells)\n\n"
        f"Make it personal and conversational, as if guiding a traveler in person. "
        f"Plain prose only, no headings or lists. "
        f"Respond in the language with ISO-639-1 code '{language}'."
    )


# ── Speech synthesis ─────────────────────────────────────────────────

class SpeechSynthesizer(ABC):
    @abstractmethod
    async def synthesize(self, text: str, voice: str) -> bytes:
        """Return MP3 audio for ``text``."""
        ...


class OpenAISpeechSynthesizer(SpeechSynthesizer):
    """OpenAI text-to-speech (tts-1)."""

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
        timeout_seconds: float = 120.0,
    ) -> None:
        from openai import AsyncOpenAI

        self._api_key = api_key or os.getenv("OPENAI_API_KEY")
        if not self._api_key:
            raise ValueError("OPENAI_API_KEY not provided")
        self._client = AsyncOpenAI(api_key=self._api_key, timeout=timeout_seconds)
        self._model_name = model_name or os.getenv("OPENAI_TTS_MODEL", "tts-1")

    async def synthesize(self, text: str, voice: str) -> bytes:
        try:
            response = await self._client.audio.speech.create(
                model=self._model_name,
                voice=voice,
                input=text,
                response_format="mp3",
            )
            return response.content
        except Exception as e:
            logger.warning(f"[AUDIO] OpenAI TTS error: {e}")
            raise


# ── Object storage ───────────────────────────────────────────────────

class AudioStorage(ABC):
    @abstractmethod
    async def upload(self, data: bytes, file_name: str, content_type: str = "audio/mpeg") -> str:
        """Store bytes and return a public URL."""
        ...


class GCSAudioStorage(AudioStorage):
    """Google Cloud Storage bucket with public object URLs."""

    def __init__(self, bucket_name: str | None = None) -> None:
        from google.cloud import storage

        self._bucket_name = bucket_name or os.getenv("GCS_BUCKET_NAME")
        if not self._bucket_name:
            raise ValueError("GCS_BUCKET_NAME not provided")
        self._client = storage.Client()

    def _upload_sync(self, data: bytes, file_name: str, content_type: str) -> str:
        blob = self._client.bucket(self._bucket_name).blob(file_name)
        blob.cache_control = "public, max-age=31536000"
        blob.upload_from_string(data, content_type=content_type)
        return f"https://storage.googleapis.com/{self._bucket_name}/{file_name}"

    async def upload(self, data: bytes, file_name: str, content_type: str = "audio/mpeg") -> str:
        # google-cloud-storage is blocking; keep it off the event loop.
        return await asyncio.to_thread(self._upload_sync, data, file_name, content_type)


# ── Service ──────────────────────────────────────────────────────────

@dataclass
class NarrationAudio:
    narration: str
    audio_url: str
    message: str


class NarrationAudioService:
    def __init__(
        self,
        model: NarrationModel,
        speech: SpeechSynthesizer,
        storage: AudioStorage,
        store: DocumentStore,
    ) -> None:
        self._model = model
        self._speech = speech
        self._storage = storage
        self._store = store

    async def _load(self, location_id: str) -> TourDescription | None:
        doc = await self._store.get(TOUR_DESCRIPTIONS, location_id)
        return TourDescription.model_validate(doc) if doc is not None else None

    async def get_or_create(
        self,
        location_id: str,
        location_name: str,
        lat: float,
        lng: float,
        language: str = "en",
    ) -> NarrationAudio:
        tour = await self._load(location_id)

        if tour is not None and language in tour.audio_urls:
            return NarrationAudio(
                narration=tour.narrations.get(language, ""),
                audio_url=tour.audio_urls[language],
                message="Audio already exists for this language",
            )

        try:
            if tour is not None and tour.narrations.get(language):
                narration = tour.narrations[language]
            else:
                logger.info(f"[AUDIO] Writing {language} narration for {location_name}")
                narration = (
                    await self._model.generate(
                        build_location_prompt(location_name, lat, lng, language)
                    )
                ).strip()
                if not narration:
                    raise ValueError("Empty narration from model")

            audio = await self._speech.synthesize(narration, voice_for(language))
            file_name = f"narration-{location_id}-{language}-{uuid4()}.mp3"
            audio_url = await self._storage.upload(audio, file_name)
        except Exception as e:
            logger.error(f"[AUDIO] Generation failed for {location_id}/{language}: {e}")
            raise ServiceError(
                ErrorCode.API_ERROR,
                f"Failed to generate narration audio: {e}",
                "We couldn't create audio for this stop. Please try again.",
            ) from e

        if tour is None:
            tour = TourDescription(
                location_id=location_id,
                location_name=location_name,
                lat=lat,
                lng=lng,
                narrations={language: narration},
                audio_urls={language: audio_url},
            )
            await self._store.insert(
                TOUR_DESCRIPTIONS, {"id": location_id, **tour.model_dump(mode="json")}
            )
            message = "Narration and audio generated and saved successfully for this language"
        else:
            tour.narrations[language] = narration
            tour.audio_urls[language] = audio_url
            await self._store.update(
                TOUR_DESCRIPTIONS,
                location_id,
                {"narrations": tour.narrations, "audio_urls": tour.audio_urls},
            )
            message = "Audio and narration updated successfully for this language"

        logger.info(f"[AUDIO] {location_id}/{language} → {audio_url}")
        return NarrationAudio(narration=narration, audio_url=audio_url, message=message)
