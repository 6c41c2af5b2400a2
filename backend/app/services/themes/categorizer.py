"""Place categorization by provider type tags.

Each place lands in exactly one category: the highest-precedence category
whose predicate matches its types. A museum inside a park is a museum.
"""

import logging
from typing import Callable

from app.models import Place

logger = logging.getLogger(__name__)


def _has_any(*wanted: str) -> Callable[[list[str]], bool]:
    wanted_set = set(wanted)
    return lambda types: bool(wanted_set.intersection(types))


def _is_historical(types: list[str]) -> bool:
    return any("historic" in t or "landmark" in t for t in types)


# Ordered highest precedence first. "other" is the catch-all.
CATEGORY_PRECEDENCE: list[tuple[str, Callable[[list[str]], bool]]] = [
    ("museums", _has_any("museum")),
    ("historical", _is_historical),
    ("nature", _has_any("park", "natural_feature")),
    ("entertainment", _has_any("amusement_park", "zoo", "aquarium")),
    (
        "religious",
        _has_any("church", "mosque", "temple", "synagogue", "hindu_temple", "place_of_worship"),
    ),
    ("arts", _has_any("art_gallery", "theater", "performing_arts_theater")),
    ("shopping", _has_any("department_store", "shopping_mall")),
    ("neighborhoods", _has_any("neighborhood", "sublocality")),
    ("landmarks", _has_any("point_of_interest", "tourist_attraction")),
]

CATEGORIES: list[str] = [name for name, _ in CATEGORY_PRECEDENCE] + ["other"]


def category_for(place: Place) -> str:
    """Return the single category a place belongs to."""
    types = [t.lower() for t in place.types]
    for name, predicate in CATEGORY_PRECEDENCE:
        if predicate(types):
            return name
    return "other"


def categorize(places: list[Place]) -> dict[str, list[Place]]:
    """Partition places into categories, one entry per place identity.

    Every category key is present (possibly empty), in precedence order.
    Repeated identities in the input keep their first occurrence.
    """
    categorized: dict[str, list[Place]] = {name: [] for name in CATEGORIES}
    seen: set[str] = set()
    for place in places:
        if place.identity in seen:
            continue
        seen.add(place.identity)
        categorized[category_for(place)].append(place)

    counts = {k: len(v) for k, v in categorized.items() if v}
    logger.debug(f"[THEMES] Categorized {len(seen)} places: {counts}")
    return categorized
