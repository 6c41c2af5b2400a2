"""Google Places client: nearby attractions and place photos.

PlaceCatalog:  Nearby Search (``type=tourist_attraction``), cached in-process
               for one hour per (lat, lon truncated to 4 decimals, radius).
PhotoEnricher: Place Details photos turned into photo-serving URLs.

Both return empty lists on provider failure; callers treat that as "no data".
"""

import logging
import os
from typing import Any
from urllib.parse import urlencode

import httpx
from dotenv import load_dotenv

from app.models import Place
from app.utils.cache import TTLCache
from app.utils.geo import truncate_coordinate

logger = logging.getLogger(__name__)

load_dotenv()

PLACES_CACHE_TTL_SECONDS = 60 * 60
DEFAULT_RADIUS_METERS = 5000
MAX_PHOTOS = 3


class _GooglePlacesClient:
    """Shared httpx client handling for the Places services."""

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._api_key = api_key or os.getenv("GOOGLE_PLACES_API_KEY", "")
        self._timeout = timeout
        self._client = client

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def _get_json(self, url: str, params: dict[str, Any]) -> dict[str, Any]:
        response = await self._get_client().get(url, params={**params, "key": self._api_key})
        response.raise_for_status()
        return response.json()


class PlaceCatalog(_GooglePlacesClient):
    """Nearby tourist attractions with a one-hour in-process cache."""

    NEARBY_URL = "https://maps.googleapis.com/maps/api/place/nearbysearch/json"

    def __init__(
        self,
        api_key: str | None = None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
        cache: TTLCache | None = None,
    ) -> None:
        super().__init__(api_key=api_key, timeout=timeout, client=client)
        self._cache = cache if cache is not None else TTLCache(
            max_size=500, ttl_seconds=PLACES_CACHE_TTL_SECONDS
        )

    @staticmethod
    def cache_key(lat: float, lon: float, radius: int) -> str:
        """``"40.7580,-73.9855,5000"``, coordinates truncated to ~11m."""
        return f"{truncate_coordinate(lat)},{truncate_coordinate(lon)},{radius}"

    @staticmethod
    def _to_place(result: dict[str, Any]) -> Place | None:
        location = (result.get("geometry") or {}).get("location") or {}
        if "lat" not in location or "lng" not in location or not result.get("name"):
            return None
        return Place(
            location_name=result["name"],
            lat=location["lat"],
            lon=location["lng"],
            place_id=result.get("place_id"),
            types=result.get("types") or [],
            rating=result.get("rating"),
            vicinity=result.get("vicinity"),
        )

    async def get_nearby(
        self, lat: float, lon: float, radius: int = DEFAULT_RADIUS_METERS
    ) -> list[Place]:
        key = self.cache_key(lat, lon, radius)
        cached = self._cache.get(key)
        if cached is not None:
            logger.info(f"[PLACES] Cache hit {key} ({len(cached)} places)")
            return cached

        try:
            data = await self._get_json(
                self.NEARBY_URL,
                {"location": f"{lat},{lon}", "radius": radius, "type": "tourist_attraction"},
            )
        except Exception as e:
            logger.warning(f"[PLACES] Nearby search failed for {key}: {e}")
            return []

        places = [p for p in (self._to_place(r) for r in data.get("results") or []) if p]
        self._cache.set(key, places, ttl_seconds=PLACES_CACHE_TTL_SECONDS)
        logger.info(f"[PLACES] Fetched {len(places)} places for {key}")
        return places


class PhotoEnricher(_GooglePlacesClient):
    """Photo URLs for a place via Place Details."""

    DETAILS_URL = "https://maps.googleapis.com/maps/api/place/details/json"
    PHOTO_URL = "https://maps.googleapis.com/maps/api/place/photo"

    def photo_url(self, photo_reference: str, max_width: int = 400) -> str:
        query = urlencode(
            {"maxwidth": max_width, "photoreference": photo_reference, "key": self._api_key}
        )
        return f"{self.PHOTO_URL}?{query}"

    async def get_photos(self, place_id: str | None) -> list[str]:
        """Return up to three photo URLs. Never raises."""
        if not place_id:
            return []
        try:
            data = await self._get_json(
                self.DETAILS_URL, {"place_id": place_id, "fields": "photos"}
            )
        except Exception as e:
            logger.info(f"[PLACES] Photo lookup failed for {place_id}: {e}")
            return []

        photos = (data.get("result") or {}).get("photos") or []
        return [
            self.photo_url(photo["photo_reference"])
            for photo in photos[:MAX_PHOTOS]
            if photo.get("photo_reference")
        ]
