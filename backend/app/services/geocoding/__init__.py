"""Reverse geocoding and location-key normalization."""

from .service import GeoKeyResolver, normalize_key

__all__ = ["GeoKeyResolver", "normalize_key"]
