"""Experience pipeline: coordinates in, narrated tours out.

    validate → resolve location name → build location key → store lookup
      hit  → return stored experiences (any user's)
      miss → nearby places → theme sets → concurrent narration → bulk insert

The first caller in a location cell pays for generation; later callers in
the same cell are served from the store without touching any provider.
"""

import logging
import random

from app.models import (
    ErrorCode,
    Experience,
    ExperienceGenerationError,
    Place,
)
from app.services.geocoding import GeoKeyResolver, normalize_key
from app.services.narration import NarrationSynthesizer
from app.services.places import PlaceCatalog
from app.services.store import DocumentStore
from app.services.themes import select_theme_sets

logger = logging.getLogger(__name__)

EXPERIENCES = "experiences"
SYSTEM_USER_ID = "system"
DEFAULT_RADIUS_METERS = 5000
EXPANDED_RADIUS_METERS = 10000
MIN_NEARBY_PLACES = 5


class ExperiencePipeline:
    """Orchestrates geocoding, place lookup, theming, narration and storage."""

    def __init__(
        self,
        resolver: GeoKeyResolver,
        catalog: PlaceCatalog,
        synthesizer: NarrationSynthesizer,
        store: DocumentStore,
        num_sets: int = 10,
        per_set: int = 4,
        rng: random.Random | None = None,
    ) -> None:
        self._resolver = resolver
        self._catalog = catalog
        self._synthesizer = synthesizer
        self._store = store
        self._num_sets = num_sets
        self._per_set = per_set
        self._rng = rng

    async def get_or_generate(
        self,
        lat: float | None,
        lon: float | None,
        user_id: str | None = None,
    ) -> tuple[list[Experience], str]:
        """Return stored experiences for the location cell, generating on miss.

        Returns:
            ``(experiences, source)`` where source is ``"cache"`` or ``"generated"``.

        Raises:
            ExperienceGenerationError: Missing coordinates, unresolvable
                location, no places, zero generated tours, or a storage failure.
        """
        if lat is None or lon is None:
            raise ExperienceGenerationError(
                ErrorCode.INVALID_INPUT,
                "Latitude and longitude are required.",
                "Please share your location to get tours.",
            )

        location_name = await self._resolver.resolve_location_name(lat, lon)
        if not location_name:
            raise ExperienceGenerationError(
                ErrorCode.LOCATION_UNRESOLVED,
                f"Could not resolve a location name for ({lat}, {lon})",
                "We couldn't figure out where you are. Please try again.",
            )

        location_key = normalize_key(location_name, lat, lon)
        logger.info(f"[PIPELINE] ({lat}, {lon}) → {location_key}")

        cached = await self._find_cached(location_key)
        if cached:
            logger.info(f"[PIPELINE] Returning {len(cached)} stored experiences for {location_key}")
            return cached, "cache"

        places = await self._fetch_places(lat, lon)
        if not places:
            raise ExperienceGenerationError(
                ErrorCode.NO_PLACES_FOUND,
                f"No points of interest found near ({lat}, {lon})",
                "We couldn't find any attractions nearby.",
            )

        theme_sets = select_theme_sets(
            places, lat, lon, num_sets=self._num_sets, per_set=self._per_set, rng=self._rng
        )
        generated = await self._synthesizer.synthesize(theme_sets, location_name)
        if not generated:
            raise ExperienceGenerationError(
                ErrorCode.GENERATION_FAILED,
                f"Failed to generate tour experiences for {location_key}",
                "We couldn't create tours right now. Please try again.",
            )

        experiences = [
            Experience(
                title=g.title,
                description=g.description,
                locations=g.locations,
                user_id=user_id or SYSTEM_USER_ID,
                location_key=location_key,
                times_shown=0,
            )
            for g in generated
        ]
        return await self._persist(experiences), "generated"

    async def _find_cached(self, location_key: str) -> list[Experience]:
        try:
            docs = await self._store.find(EXPERIENCES, location_key=location_key)
        except Exception as e:
            raise ExperienceGenerationError(ErrorCode.STORAGE_ERROR, str(e)) from e
        return [Experience.model_validate(doc) for doc in docs]

    async def _fetch_places(self, lat: float, lon: float) -> list[Place]:
        places = await self._catalog.get_nearby(lat, lon, DEFAULT_RADIUS_METERS)
        if len(places) < MIN_NEARBY_PLACES:
            logger.info(f"[PIPELINE] Only {len(places)} places nearby, widening search")
            places = places + await self._catalog.get_nearby(lat, lon, EXPANDED_RADIUS_METERS)

        unique: dict[str, Place] = {}
        for place in places:
            unique.setdefault(place.identity, place)
        return list(unique.values())

    async def _persist(self, experiences: list[Experience]) -> list[Experience]:
        try:
            ids = await self._store.insert_many(
                EXPERIENCES, [e.model_dump(mode="json", exclude={"id"}) for e in experiences]
            )
        except Exception as e:
            logger.error(f"[PIPELINE] Failed to save experiences: {e}")
            raise ExperienceGenerationError(ErrorCode.STORAGE_ERROR, str(e)) from e

        for experience, doc_id in zip(experiences, ids):
            experience.id = doc_id
        logger.info(f"[PIPELINE] Saved {len(experiences)} experiences")
        return experiences
