"""Google Places: nearby attractions and photos."""

from .service import PhotoEnricher, PlaceCatalog

__all__ = ["PhotoEnricher", "PlaceCatalog"]
