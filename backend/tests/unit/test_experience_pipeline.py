"""Unit tests for the experience pipeline, run entirely against fakes."""

import random

import pytest

from app.models import ErrorCode, ExperienceGenerationError
from app.services.experience import SYSTEM_USER_ID, ExperiencePipeline
from app.services.experience.pipeline import EXPERIENCES
from app.services.narration import NarrationSynthesizer
from app.services.store import InMemoryDocumentStore
from fakes import (
    FakeCatalog,
    FakeNarrationModel,
    FakePhotoEnricher,
    FakeResolver,
    times_square_places,
)

TIMES_SQUARE = (40.7580, -73.9855)


class BrokenStore(InMemoryDocumentStore):
    async def find(self, collection, **filters):
        raise ConnectionError("store down")


class FailingInsertStore(InMemoryDocumentStore):
    async def insert_many(self, collection, docs):
        raise ConnectionError("write refused")


class TestExperiencePipeline:
    """Tests for cache-or-generate behaviour."""

    def setup_method(self) -> None:
        self.resolver = FakeResolver("New York")
        self.catalog = FakeCatalog(times_square_places())
        self.model = FakeNarrationModel()
        self.photos = FakePhotoEnricher()
        self.store = InMemoryDocumentStore()

    def make_pipeline(self, store=None) -> ExperiencePipeline:
        return ExperiencePipeline(
            resolver=self.resolver,
            catalog=self.catalog,
            synthesizer=NarrationSynthesizer(self.model, self.photos),
            store=store or self.store,
            rng=random.Random(0),
        )

    @pytest.mark.asyncio
    async def test_times_square_end_to_end(self) -> None:
        experiences, source = await self.make_pipeline().get_or_generate(*TIMES_SQUARE, "user-1")

        assert source == "generated"
        assert len(experiences) >= 1
        input_ids = {p.place_id for p in times_square_places()}
        for experience in experiences:
            assert experience.id
            assert experience.location_key == "new_york_dr5ru7"
            assert experience.user_id == "user-1"
            assert experience.times_shown == 0
            assert len(experience.locations) >= 2
            assert {loc.place_id for loc in experience.locations} <= input_ids

        stops = [loc.place_id for e in experiences for loc in e.locations]
        assert len(stops) == len(set(stops))

        stored = await self.store.find(EXPERIENCES, location_key="new_york_dr5ru7")
        assert {d["id"] for d in stored} == {e.id for e in experiences}

    @pytest.mark.asyncio
    async def test_cache_hit_makes_no_provider_calls(self) -> None:
        pipeline = self.make_pipeline()
        first, _ = await pipeline.get_or_generate(*TIMES_SQUARE)
        catalog_calls = len(self.catalog.calls)
        model_calls = len(self.model.prompts)
        photo_calls = len(self.photos.calls)

        second, source = await pipeline.get_or_generate(40.7581, -73.9856, "someone-else")

        assert source == "cache"
        assert {e.id for e in second} == {e.id for e in first}
        assert len(self.catalog.calls) == catalog_calls
        assert len(self.model.prompts) == model_calls
        assert len(self.photos.calls) == photo_calls

    @pytest.mark.asyncio
    async def test_cache_hit_keeps_times_shown(self) -> None:
        pipeline = self.make_pipeline()
        await pipeline.get_or_generate(*TIMES_SQUARE)
        cached, _ = await pipeline.get_or_generate(*TIMES_SQUARE)
        assert all(e.times_shown == 0 for e in cached)

    @pytest.mark.asyncio
    async def test_anonymous_user_is_system(self) -> None:
        experiences, _ = await self.make_pipeline().get_or_generate(*TIMES_SQUARE)
        assert all(e.user_id == SYSTEM_USER_ID for e in experiences)

    @pytest.mark.asyncio
    async def test_missing_coordinates(self) -> None:
        with pytest.raises(ExperienceGenerationError) as exc_info:
            await self.make_pipeline().get_or_generate(None, -73.9855)
        assert exc_info.value.code == ErrorCode.INVALID_INPUT
        assert exc_info.value.status_code == 400
        assert self.resolver.calls == 0

    @pytest.mark.asyncio
    async def test_unresolved_location(self) -> None:
        self.resolver.name = None
        with pytest.raises(ExperienceGenerationError) as exc_info:
            await self.make_pipeline().get_or_generate(*TIMES_SQUARE)
        assert exc_info.value.code == ErrorCode.LOCATION_UNRESOLVED
        assert self.catalog.calls == []

    @pytest.mark.asyncio
    async def test_store_lookup_failure(self) -> None:
        with pytest.raises(ExperienceGenerationError) as exc_info:
            await self.make_pipeline(BrokenStore()).get_or_generate(*TIMES_SQUARE)
        assert exc_info.value.code == ErrorCode.STORAGE_ERROR
        assert self.catalog.calls == []

    @pytest.mark.asyncio
    async def test_store_insert_failure(self) -> None:
        with pytest.raises(ExperienceGenerationError) as exc_info:
            await self.make_pipeline(FailingInsertStore()).get_or_generate(*TIMES_SQUARE)
        assert exc_info.value.code == ErrorCode.STORAGE_ERROR
        assert "write refused" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_no_places(self) -> None:
        self.catalog.places = []
        with pytest.raises(ExperienceGenerationError) as exc_info:
            await self.make_pipeline().get_or_generate(*TIMES_SQUARE)
        assert exc_info.value.code == ErrorCode.NO_PLACES_FOUND
        assert self.model.prompts == []

    @pytest.mark.asyncio
    async def test_all_generation_fails(self) -> None:
        def respond(prompt: str) -> str:
            return "no json here"

        self.model = FakeNarrationModel(respond)
        with pytest.raises(ExperienceGenerationError) as exc_info:
            await self.make_pipeline().get_or_generate(*TIMES_SQUARE)
        assert exc_info.value.code == ErrorCode.GENERATION_FAILED
        assert await self.store.find(EXPERIENCES) == []

    @pytest.mark.asyncio
    async def test_sparse_area_widens_search(self) -> None:
        places = times_square_places()
        self.catalog = FakeCatalog([], by_radius={5000: places[:2], 10000: places})
        experiences, _ = await self.make_pipeline().get_or_generate(*TIMES_SQUARE)
        assert self.catalog.calls == [5000, 10000]
        assert experiences

    @pytest.mark.asyncio
    async def test_dense_area_single_search(self) -> None:
        await self.make_pipeline().get_or_generate(*TIMES_SQUARE)
        assert self.catalog.calls == [5000]
