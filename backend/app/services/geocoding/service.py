"""Reverse geocoding and location keys.

Turns raw coordinates into a human-readable locality name (Google Geocoding
API) and a normalized location key used to look up stored experiences.

Location key format: ``{name_lower_underscored}_{geohash6}``, e.g.
``new_york_dr5ru7``. A 6-character geohash cell is roughly 1.2km x 0.6km, so
nearby requests in the same named locality share a key while a large city
still gets several independent experience pools.
"""

import logging
import os
import re

import httpx
from dotenv import load_dotenv

from app.utils.geo import geohash_encode

logger = logging.getLogger(__name__)

load_dotenv()

GEOHASH_PRECISION = 6


def normalize_key(name: str, lat: float, lon: float) -> str:
    """Build the location key for a place name and coordinates.

    Deterministic: identical inputs always give the identical key.

    Example:
        >>> normalize_key("New York", 40.7580, -73.9855)
        'new_york_dr5ru7'
    """
    slug = re.sub(r"\s+", "_", name.strip().lower())
    return f"{slug}_{geohash_encode(lat, lon, GEOHASH_PRECISION)}"


class GeoKeyResolver:
    """Google Geocoding client for resolving coordinates to locality names."""

    GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

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
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def resolve_location_name(self, lat: float, lon: float) -> str | None:
        """Return the locality (or state/province) name for coordinates.

        Returns None when the provider has no usable result or the request
        fails; failures are logged, never raised.
        """
        try:
            response = await self._get_client().get(
                self.GEOCODE_URL,
                params={"latlng": f"{lat},{lon}", "key": self._api_key},
            )
            response.raise_for_status()
            results = response.json().get("results") or []
        except Exception as e:
            logger.warning(f"[GEO] Reverse geocoding failed for ({lat}, {lon}): {e}")
            return None

        if not results:
            logger.info(f"[GEO] No geocoding results for ({lat}, {lon})")
            return None

        components = results[0].get("address_components") or []
        for wanted in ("locality", "administrative_area_level_1"):
            for component in components:
                if wanted in (component.get("types") or []) and component.get("long_name"):
                    return component["long_name"]

        logger.info(f"[GEO] No locality component for ({lat}, {lon})")
        return None

    @staticmethod
    def normalize_key(name: str, lat: float, lon: float) -> str:
        return normalize_key(name, lat, lon)
