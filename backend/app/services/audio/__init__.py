"""Narration audio: OpenAI TTS + Google Cloud Storage."""

from .service import (
    AudioStorage,
    GCSAudioStorage,
    NarrationAudio,
    NarrationAudioService,
    OpenAISpeechSynthesizer,
    SpeechSynthesizer,
    voice_for,
)

__all__ = [
    "AudioStorage",
    "GCSAudioStorage",
    "NarrationAudio",
    "NarrationAudioService",
    "OpenAISpeechSynthesizer",
    "SpeechSynthesizer",
    "voice_for",
]
