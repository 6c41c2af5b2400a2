"""User favorites.

A favorite is a ``favorites`` document ``{user_id, experience_id}``; the
experience also keeps a ``favorited_by`` list so the reverse lookup needs no
scan.
"""

import logging

from app.models import ErrorCode, Experience, ServiceError
from app.services.store import DocumentStore

logger = logging.getLogger(__name__)

EXPERIENCES = "experiences"
FAVORITES = "favorites"


class FavoritesService:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def _require_experience(self, experience_id: str) -> dict:
        doc = await self._store.get(EXPERIENCES, experience_id)
        if doc is None:
            raise ServiceError(
                ErrorCode.NOT_FOUND,
                f"Experience {experience_id} not found",
                "This tour no longer exists.",
            )
        return doc

    async def _find(self, user_id: str, experience_id: str) -> list[dict]:
        return await self._store.find(FAVORITES, user_id=user_id, experience_id=experience_id)

    async def add(self, user_id: str, experience_id: str) -> None:
        await self._require_experience(experience_id)
        if await self._find(user_id, experience_id):
            raise ServiceError(
                ErrorCode.INVALID_INPUT,
                "Experience already in favorites",
                "This tour is already in your favorites.",
            )
        await self._store.insert(FAVORITES, {"user_id": user_id, "experience_id": experience_id})
        await self._store.add_to_set(EXPERIENCES, experience_id, "favorited_by", user_id)
        logger.info(f"[FAVORITES] {user_id} + {experience_id}")

    async def remove(self, user_id: str, experience_id: str) -> None:
        for doc in await self._find(user_id, experience_id):
            await self._store.delete(FAVORITES, doc["id"])
        await self._store.pull(EXPERIENCES, experience_id, "favorited_by", user_id)
        logger.info(f"[FAVORITES] {user_id} - {experience_id}")

    async def is_favorite(self, user_id: str, experience_id: str) -> bool:
        return bool(await self._find(user_id, experience_id))

    async def list_for_user(self, user_id: str) -> list[Experience]:
        favorites = await self._store.find(FAVORITES, user_id=user_id)
        experiences: list[Experience] = []
        for fav in favorites:
            doc = await self._store.get(EXPERIENCES, fav["experience_id"])
            if doc is not None:
                experiences.append(Experience.model_validate(doc))
        return experiences

    async def favorited_by(self, experience_id: str) -> list[str]:
        doc = await self._require_experience(experience_id)
        return list(doc.get("favorited_by") or [])
