"""Themed location set selection.

Builds several non-overlapping sets of nearby places, each tagged with a
narrative theme. Closer places are favoured through weighted random
sampling (weight = 1 / squared degree distance), not guaranteed.

Selection is pure with respect to its inputs: the set of place identities
already used in this session is passed in and threaded through each theme
explicitly, never mutated in place.
"""

import logging
import random
from dataclasses import dataclass
from typing import Sequence, TypeVar

from app.models import Place, ThemeSet
from app.services.themes.categorizer import categorize
from app.utils.geo import distance_squared

logger = logging.getLogger(__name__)

T = TypeVar("T")

DISTANCE_EPSILON = 1e-4
FALLBACK_THEME = "Best Of The Area"
MIN_LOCATIONS_PER_SET = 2


@dataclass(frozen=True)
class ThemeDefinition:
    name: str
    categories: tuple[str, ...]


THEME_DEFINITIONS: list[ThemeDefinition] = [
    ThemeDefinition("Historical Highlights", ("historical", "landmarks", "religious")),
    ThemeDefinition("Arts & Culture", ("museums", "arts", "historical")),
    ThemeDefinition("Nature Escape", ("nature", "landmarks", "other")),
    ThemeDefinition("Religious Heritage", ("religious", "historical", "landmarks")),
    ThemeDefinition("Family Fun", ("entertainment", "nature", "landmarks")),
    ThemeDefinition("Local Neighborhoods", ("neighborhoods", "shopping", "landmarks")),
    ThemeDefinition("Hidden Gems", ("other", "landmarks", "neighborhoods")),
    ThemeDefinition("Architectural Marvels", ("historical", "religious", "landmarks")),
    ThemeDefinition("Photography Spots", ("nature", "landmarks", "historical")),
    ThemeDefinition("Cultural Immersion", ("museums", "arts", "neighborhoods", "shopping")),
]


def select_weighted_subset(
    items: Sequence[T],
    count: int,
    weights: Sequence[float],
    rng: random.Random | None = None,
) -> list[T]:
    """Weighted random sampling without replacement.

    Returns ``min(count, len(items))`` distinct items. Each draw picks a
    uniform value in ``[0, total_weight)`` and walks the weights subtracting
    until the remainder is non-positive. Items with weight <= 0 are never
    drawn while a positive-weight item remains; once only those remain the
    draw is uniform.
    """
    if len(items) != len(weights):
        raise ValueError("items and weights must be the same length")
    rng = rng or random
    pool = list(items)
    pool_weights = [float(w) for w in weights]
    selected: list[T] = []

    while len(selected) < count and pool:
        total = sum(w for w in pool_weights if w > 0)
        if total <= 0:
            index = rng.randrange(len(pool))
        else:
            remainder = rng.random() * total
            index = -1
            for i, weight in enumerate(pool_weights):
                if weight <= 0:
                    continue
                index = i
                remainder -= weight
                if remainder <= 0:
                    break
        selected.append(pool.pop(index))
        pool_weights.pop(index)

    return selected


def _weights_for(places: list[Place], user_lat: float, user_lon: float) -> list[float]:
    return [
        1.0 / distance_squared(p.lat, p.lon, user_lat, user_lon, DISTANCE_EPSILON)
        for p in places
    ]


def _unique_unused(places: list[Place], used: frozenset[str]) -> list[Place]:
    pool: list[Place] = []
    seen: set[str] = set()
    for place in places:
        if place.identity in used or place.identity in seen:
            continue
        seen.add(place.identity)
        pool.append(place)
    return pool


def _select_set(
    theme: str,
    candidates: list[Place],
    used: frozenset[str],
    user_lat: float,
    user_lon: float,
    per_set: int,
    rng: random.Random | None,
) -> tuple[ThemeSet | None, frozenset[str]]:
    """Pick one theme set from candidates; return it and the updated used-set."""
    pool = _unique_unused(candidates, used)
    if len(pool) < MIN_LOCATIONS_PER_SET:
        return None, used

    chosen = select_weighted_subset(pool, per_set, _weights_for(pool, user_lat, user_lon), rng)
    if len(chosen) < MIN_LOCATIONS_PER_SET:
        return None, used

    return (
        ThemeSet(theme=theme, locations=chosen),
        used | {place.identity for place in chosen},
    )


def select_theme_sets(
    places: list[Place],
    user_lat: float,
    user_lon: float,
    num_sets: int = 10,
    per_set: int = 4,
    used: frozenset[str] = frozenset(),
    rng: random.Random | None = None,
) -> list[ThemeSet]:
    """Build up to ``num_sets`` disjoint themed sets, plus an optional fallback.

    Args:
        places: Candidate places (any order, duplicates allowed).
        user_lat: User latitude; closer places are weighted higher.
        user_lon: User longitude.
        num_sets: How many theme definitions to try, in order.
        per_set: Maximum places per set.
        used: Place identities to exclude from the start.
        rng: Random source, for reproducible selection in tests.

    Returns:
        Theme sets in theme-definition order, the "Best Of The Area"
        fallback last. No place identity appears in more than one set.
    """
    categorized = categorize(places)
    theme_sets: list[ThemeSet] = []

    for definition in THEME_DEFINITIONS[:num_sets]:
        candidates = [p for category in definition.categories for p in categorized[category]]
        theme_set, used = _select_set(
            definition.name, candidates, used, user_lat, user_lon, per_set, rng
        )
        if theme_set is not None:
            theme_sets.append(theme_set)

    if len(theme_sets) < min(num_sets, 5):
        remaining = _unique_unused(places, used)
        if len(remaining) >= per_set:
            fallback, used = _select_set(
                FALLBACK_THEME, remaining, used, user_lat, user_lon, per_set, rng
            )
            if fallback is not None:
                theme_sets.append(fallback)

    logger.info(
        f"[THEMES] Selected {len(theme_sets)} theme sets from {len(places)} places: "
        f"{[s.theme for s in theme_sets]}"
    )
    return theme_sets
