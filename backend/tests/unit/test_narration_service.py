"""Unit tests for tour narration: prompts, response parsing and synthesis."""

import json

import pytest

from app.models import Place, ThemeSet
from app.services.narration import (
    NarrationSynthesizer,
    TourResponseError,
    build_tour_prompt,
    create_narration_model,
    extract_json,
    match_place,
    parse_tour_response,
)
from fakes import FakeNarrationModel, FakePhotoEnricher, echo_tour_response, times_square_places


def theme_sets(count: int) -> list[ThemeSet]:
    places = times_square_places()
    return [
        ThemeSet(theme=f"Theme {i}", locations=[places[i % 12], places[(i + 1) % 12]])
        for i in range(count)
    ]


class TestExtractJson:
    """Tests for markdown fence stripping."""

    def test_plain(self) -> None:
        assert extract_json(' {"a": 1} ') == '{"a": 1}'

    def test_json_fence(self) -> None:
        assert extract_json('Sure!\n```json\n{"a": 1}\n```\nEnjoy') == '{"a": 1}'

    def test_bare_fence(self) -> None:
        assert extract_json('```\n{"a": 1}\n```') == '{"a": 1}'


class TestParseTourResponse:
    """Tests for response shape checking."""

    def test_valid(self) -> None:
        data = parse_tour_response(
            json.dumps({"title": "T", "description": "D", "locations": []})
        )
        assert data["title"] == "T"

    def test_not_json(self) -> None:
        with pytest.raises(json.JSONDecodeError):
            parse_tour_response("I'm sorry, I can't help with that.")

    def test_not_object(self) -> None:
        with pytest.raises(TourResponseError):
            parse_tour_response("[1, 2, 3]")

    def test_missing_title(self) -> None:
        with pytest.raises(TourResponseError):
            parse_tour_response(json.dumps({"description": "D", "locations": []}))

    def test_blank_description(self) -> None:
        with pytest.raises(TourResponseError):
            parse_tour_response(json.dumps({"title": "T", "description": "  ", "locations": []}))

    def test_locations_not_list(self) -> None:
        with pytest.raises(TourResponseError):
            parse_tour_response(json.dumps({"title": "T", "description": "D", "locations": {}}))


class TestMatchPlace:
    """Tests for mapping model stops back to provider places."""

    def setup_method(self) -> None:
        self.places = times_square_places()[:3]

    def test_by_place_id(self) -> None:
        item = {"placeId": "ChIJ_1", "locationName": "Wrong Name", "lat": 0, "lon": 0}
        assert match_place(item, self.places) is self.places[1]

    def test_by_name_and_coordinates(self) -> None:
        item = {"locationName": "bryant park", "lat": 40.75365, "lon": -73.98315}
        assert match_place(item, self.places) is self.places[2]

    def test_name_with_distant_coordinates(self) -> None:
        item = {"locationName": "Bryant Park", "lat": 40.80, "lon": -73.98}
        assert match_place(item, self.places) is None

    def test_bad_coordinates(self) -> None:
        item = {"locationName": "Bryant Park", "lat": "north", "lon": None}
        assert match_place(item, self.places) is None


class TestBuildTourPrompt:
    """Tests for tour prompt construction."""

    def test_lists_every_stop(self) -> None:
        theme_set = theme_sets(1)[0]
        prompt = build_tour_prompt(theme_set, "New York")
        assert '"Theme 0"' in prompt
        assert "New York" in prompt
        for place in theme_set.locations:
            assert f'"{place.location_name}"' in prompt
            assert place.place_id in prompt


class TestNarrationSynthesizer:
    """Tests for concurrent tour synthesis."""

    @pytest.mark.asyncio
    async def test_all_succeed(self) -> None:
        photos = FakePhotoEnricher()
        synthesizer = NarrationSynthesizer(FakeNarrationModel(), photos)

        experiences = await synthesizer.synthesize(theme_sets(3), "New York")

        assert len(experiences) == 3
        for experience in experiences:
            assert len(experience.locations) == 2
            for loc in experience.locations:
                assert loc.narration.startswith("Welcome to")
                assert loc.photos == [f"https://photos.test/{loc.place_id}.jpg"]
        assert len(photos.calls) == 6

    @pytest.mark.asyncio
    async def test_three_failures_out_of_ten(self) -> None:
        def respond(prompt: str) -> str:
            if '"Theme 2"' in prompt:
                return "not json at all"
            if '"Theme 5"' in prompt:
                return json.dumps({"description": "no title", "locations": []})
            if '"Theme 8"' in prompt:
                raise RuntimeError("provider exploded")
            return echo_tour_response(prompt)

        synthesizer = NarrationSynthesizer(FakeNarrationModel(respond), FakePhotoEnricher())

        experiences = await synthesizer.synthesize(theme_sets(10), "New York")

        assert len(experiences) == 7
        titles = {e.title for e in experiences}
        assert not titles & {"Theme 2 Walk", "Theme 5 Walk", "Theme 8 Walk"}

    @pytest.mark.asyncio
    async def test_all_fail_returns_empty(self) -> None:
        def respond(prompt: str) -> str:
            raise TimeoutError("slow")

        synthesizer = NarrationSynthesizer(FakeNarrationModel(respond), FakePhotoEnricher())
        assert await synthesizer.synthesize(theme_sets(4), "New York") == []

    @pytest.mark.asyncio
    async def test_provider_fields_override_model(self) -> None:
        theme_set = theme_sets(1)[0]
        first, second = theme_set.locations

        def respond(prompt: str) -> str:
            return json.dumps(
                {
                    "title": "T",
                    "description": "D",
                    "locations": [
                        {"locationName": "Misspelled", "lat": 1.0, "lon": 2.0,
                         "placeId": first.place_id, "narration": "one"},
                        {"locationName": second.location_name, "lat": second.lat,
                         "lon": second.lon, "narration": "two"},
                    ],
                }
            )

        synthesizer = NarrationSynthesizer(FakeNarrationModel(respond), FakePhotoEnricher())
        [experience] = await synthesizer.synthesize([theme_set], "New York")

        assert experience.locations[0].location_name == first.location_name
        assert experience.locations[0].lat == first.lat
        assert experience.locations[1].place_id == second.place_id
        assert [loc.narration for loc in experience.locations] == ["one", "two"]

    @pytest.mark.asyncio
    async def test_too_few_usable_stops_dropped(self) -> None:
        theme_set = theme_sets(1)[0]

        def respond(prompt: str) -> str:
            return json.dumps(
                {
                    "title": "T",
                    "description": "D",
                    "locations": [
                        {"placeId": theme_set.locations[0].place_id, "narration": "ok"},
                        {"locationName": "Nowhere", "lat": "?", "lon": None},
                        "not an object",
                    ],
                }
            )

        synthesizer = NarrationSynthesizer(FakeNarrationModel(respond), FakePhotoEnricher())
        assert await synthesizer.synthesize([theme_set], "New York") == []

    @pytest.mark.asyncio
    async def test_unmatched_stop_kept_when_valid(self) -> None:
        theme_set = theme_sets(1)[0]

        def respond(prompt: str) -> str:
            data = json.loads(echo_tour_response(prompt))
            data["locations"].append(
                {"locationName": "Secret Garden", "lat": 40.7, "lon": -73.9, "narration": "shh"}
            )
            return json.dumps(data)

        synthesizer = NarrationSynthesizer(FakeNarrationModel(respond), FakePhotoEnricher())
        [experience] = await synthesizer.synthesize([theme_set], "New York")

        assert [loc.location_name for loc in experience.locations][-1] == "Secret Garden"
        assert experience.locations[-1].photos == []

    @pytest.mark.asyncio
    async def test_repeated_stop_kept_once(self) -> None:
        theme_set = theme_sets(1)[0]
        first, second = theme_set.locations

        def respond(prompt: str) -> str:
            return json.dumps(
                {
                    "title": "T",
                    "description": "D",
                    "locations": [
                        {"placeId": first.place_id, "narration": "one"},
                        {"placeId": first.place_id, "narration": "again"},
                        {"placeId": second.place_id, "narration": "two"},
                    ],
                }
            )

        synthesizer = NarrationSynthesizer(FakeNarrationModel(respond), FakePhotoEnricher())
        [experience] = await synthesizer.synthesize([theme_set], "New York")

        assert [loc.place_id for loc in experience.locations] == [first.place_id, second.place_id]
        assert experience.locations[0].narration == "one"

    @pytest.mark.asyncio
    async def test_repeats_do_not_count_toward_minimum(self) -> None:
        theme_set = theme_sets(1)[0]
        place_id = theme_set.locations[0].place_id

        def respond(prompt: str) -> str:
            return json.dumps(
                {"title": "T", "description": "D",
                 "locations": [{"placeId": place_id}, {"placeId": place_id}]}
            )

        synthesizer = NarrationSynthesizer(FakeNarrationModel(respond), FakePhotoEnricher())
        assert await synthesizer.synthesize([theme_set], "New York") == []

    @pytest.mark.asyncio
    async def test_blank_narration_gets_welcome_line(self) -> None:
        theme_set = theme_sets(1)[0]
        first, second = theme_set.locations

        def respond(prompt: str) -> str:
            return json.dumps(
                {
                    "title": "T",
                    "description": "D",
                    "locations": [
                        {"placeId": first.place_id},
                        {"placeId": second.place_id, "narration": "   "},
                    ],
                }
            )

        synthesizer = NarrationSynthesizer(FakeNarrationModel(respond), FakePhotoEnricher())
        [experience] = await synthesizer.synthesize([theme_set], "New York")

        assert [loc.narration for loc in experience.locations] == [
            f"Welcome to {first.location_name}, a highlight of our tour.",
            f"Welcome to {second.location_name}, a highlight of our tour.",
        ]


class TestPlaceIdentity:
    """Tests for place identity used by matching and de-duplication."""

    def test_place_id_preferred(self) -> None:
        place = Place(location_name="A", lat=1.0, lon=2.0, place_id="pid")
        assert place.identity == "pid"

    def test_fallback_identity(self) -> None:
        place = Place(location_name="Bryant Park", lat=40.7536, lon=-73.9832)
        assert place.identity == "bryant park@40.75360,-73.98320"


class TestCreateNarrationModel:
    """Tests for provider selection."""

    def test_no_keys(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        monkeypatch.delenv("GEMINI_API_KEY", raising=False)
        with pytest.raises(ValueError):
            create_narration_model()
