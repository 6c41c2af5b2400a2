"""Provider fakes and sample data for tests."""

import json
import re
from typing import Callable

from app.models import Place
from app.services.audio import AudioStorage, SpeechSynthesizer
from app.services.narration import NarrationModel

_STOP_PATTERN = re.compile(
    r'- "(?P<name>[^"]+)" \(lat (?P<lat>[-\d.e]+), lon (?P<lon>[-\d.e]+), placeId "(?P<pid>[^"]*)"\)'
)
_THEME_PATTERN = re.compile(r'with the theme "([^"]+)"')


def echo_tour_response(prompt: str) -> str:
    """A well-formed tour reply covering every stop listed in the prompt."""
    theme = _THEME_PATTERN.search(prompt).group(1)
    locations = [
        {
            "locationName": m["name"],
            "lat": float(m["lat"]),
            "lon": float(m["lon"]),
            "placeId": m["pid"],
            "narration": f"Welcome to {m['name']}.",
            "photos": [],
        }
        for m in _STOP_PATTERN.finditer(prompt)
    ]
    return json.dumps(
        {"title": f"{theme} Walk", "description": f"A walk through {theme}.", "locations": locations}
    )


class FakeNarrationModel(NarrationModel):
    def __init__(self, respond: Callable[[str], str] = echo_tour_response) -> None:
        self._respond = respond
        self.prompts: list[str] = []

    @property
    def provider_name(self) -> str:
        return "Fake"

    async def _generate(self, prompt: str, timeout: float | None = None) -> str:
        self.prompts.append(prompt)
        return self._respond(prompt)


class FakePhotoEnricher:
    def __init__(self) -> None:
        self.calls: list[str | None] = []

    async def get_photos(self, place_id: str | None) -> list[str]:
        self.calls.append(place_id)
        return [f"https://photos.test/{place_id}.jpg"] if place_id else []

    async def close(self) -> None:
        pass


class FakeResolver:
    def __init__(self, name: str | None = "New York") -> None:
        self.name = name
        self.calls = 0

    async def resolve_location_name(self, lat: float, lon: float) -> str | None:
        self.calls += 1
        return self.name


class FakeCatalog:
    def __init__(self, places: list[Place], by_radius: dict[int, list[Place]] | None = None) -> None:
        self.places = places
        self.by_radius = by_radius or {}
        self.calls: list[int] = []

    async def get_nearby(self, lat: float, lon: float, radius: int = 5000) -> list[Place]:
        self.calls.append(radius)
        return self.by_radius.get(radius, self.places)


class FakeSpeech(SpeechSynthesizer):
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls: list[tuple[str, str]] = []

    async def synthesize(self, text: str, voice: str) -> bytes:
        self.calls.append((text, voice))
        if self.fail:
            raise RuntimeError("tts unavailable")
        return b"ID3fake-mp3"


class FakeStorage(AudioStorage):
    def __init__(self) -> None:
        self.uploads: dict[str, bytes] = {}

    async def upload(self, data: bytes, file_name: str, content_type: str = "audio/mpeg") -> str:
        self.uploads[file_name] = data
        return f"https://storage.googleapis.com/test-bucket/{file_name}"


def times_square_places() -> list[Place]:
    specs = [
        ("Times Square", ["tourist_attraction", "point_of_interest"], 40.7580, -73.9855),
        ("Museum of Modern Art", ["museum", "tourist_attraction"], 40.7614, -73.9776),
        ("Bryant Park", ["park", "tourist_attraction"], 40.7536, -73.9832),
        ("St. Patrick's Cathedral", ["church", "place_of_worship"], 40.7585, -73.9760),
        ("Rockefeller Center", ["historical_landmark", "tourist_attraction"], 40.7587, -73.9787),
        ("New York Public Library", ["library", "historical_landmark"], 40.7532, -73.9822),
        ("Broadway Theatre", ["performing_arts_theater"], 40.7633, -73.9832),
        ("Grand Central Terminal", ["historical_landmark", "train_station"], 40.7527, -73.9772),
        ("Madame Tussauds", ["museum"], 40.7564, -73.9888),
        ("Hell's Kitchen", ["neighborhood"], 40.7638, -73.9918),
        ("Macy's Herald Square", ["department_store"], 40.7508, -73.9889),
        ("Central Park Zoo", ["zoo"], 40.7678, -73.9718),
    ]
    return [
        Place(
            location_name=name,
            lat=lat,
            lon=lon,
            place_id=f"ChIJ_{i}",
            types=types,
            rating=4.5,
        )
        for i, (name, types, lat, lon) in enumerate(specs)
    ]


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds
