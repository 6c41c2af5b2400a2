"""Location ratings and reviews.

One rating per (location, user); rating again overwrites. The running
average and count are kept on the location's tour description document.
"""

import logging

from app.models import ErrorCode, Rating, RatingSummary, ServiceError, utc_now
from app.services.store import DocumentStore

logger = logging.getLogger(__name__)

RATINGS = "ratings"
TOUR_DESCRIPTIONS = "tour_descriptions"


def summarize(ratings: list[Rating]) -> RatingSummary:
    if not ratings:
        return RatingSummary(average_rating=0.0, rating_count=0)
    average = sum(r.rating for r in ratings) / len(ratings)
    return RatingSummary(average_rating=round(average, 1), rating_count=len(ratings))


class RatingService:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def _require_location(self, location_id: str) -> None:
        if await self._store.get(TOUR_DESCRIPTIONS, location_id) is None:
            raise ServiceError(
                ErrorCode.NOT_FOUND,
                f"Location {location_id} not found",
                "We couldn't find that location.",
            )

    async def _ratings(self, location_id: str) -> list[Rating]:
        docs = await self._store.find(RATINGS, location_id=location_id)
        return [Rating.model_validate(doc) for doc in docs]

    async def rate(
        self, location_id: str, user_id: str, rating: int, comment: str = ""
    ) -> RatingSummary:
        """Record (or replace) a user's rating and return the new summary."""
        await self._require_location(location_id)

        existing = await self._store.find(RATINGS, location_id=location_id, user_id=user_id)
        if existing:
            await self._store.update(
                RATINGS,
                existing[0]["id"],
                {"rating": rating, "comment": comment, "updated_at": utc_now().isoformat()},
            )
        else:
            new = Rating(location_id=location_id, user_id=user_id, rating=rating, comment=comment)
            await self._store.insert(RATINGS, new.model_dump(mode="json"))

        summary = summarize(await self._ratings(location_id))
        await self._store.update(
            TOUR_DESCRIPTIONS,
            location_id,
            {"average_rating": summary.average_rating, "rating_count": summary.rating_count},
        )
        logger.info(
            f"[RATINGS] {location_id}: {summary.average_rating} ({summary.rating_count} ratings)"
        )
        return summary

    async def get(self, location_id: str) -> tuple[RatingSummary, list[Rating]]:
        await self._require_location(location_id)
        ratings = await self._ratings(location_id)
        return summarize(ratings), ratings

    async def has_rated(self, location_id: str, user_id: str) -> bool:
        return bool(await self._store.find(RATINGS, location_id=location_id, user_id=user_id))
