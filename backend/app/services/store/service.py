"""Document store service.

Abstract document store interface plus a Redis implementation (production)
and an in-memory implementation (local development and tests).

Documents are JSON-serializable dicts grouped into named collections. Each
stored document carries its store-assigned ``id``. Lookups support equality
filters; the Redis store keeps an index set per declared field so that
``find("experiences", location_key=...)`` does not scan the collection.
"""

import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from typing import Any
from uuid import uuid4

import redis.asyncio as redis
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

# Fields indexed by the Redis store, per collection.
DEFAULT_INDEXES: dict[str, tuple[str, ...]] = {
    "experiences": ("location_key", "user_id"),
    "favorites": ("user_id", "experience_id"),
    "ratings": ("location_id", "user_id"),
    "tour_descriptions": ("location_id",),
}


def _new_id() -> str:
    return uuid4().hex


def _matches(doc: dict[str, Any], filters: dict[str, Any]) -> bool:
    return all(doc.get(field) == value for field, value in filters.items())


class DocumentStore(ABC):
    """Abstract base class for document stores."""

    @abstractmethod
    async def insert(self, collection: str, doc: dict[str, Any]) -> str:
        """Store a document and return its id."""
        pass

    @abstractmethod
    async def insert_many(self, collection: str, docs: list[dict[str, Any]]) -> list[str]:
        """Store several documents in one operation and return their ids."""
        pass

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        pass

    @abstractmethod
    async def find(self, collection: str, **filters: Any) -> list[dict[str, Any]]:
        """Return documents whose fields equal every given filter value."""
        pass

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> bool:
        """Merge ``fields`` into a document. False if it does not exist."""
        pass

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        pass

    async def add_to_set(self, collection: str, doc_id: str, field: str, value: Any) -> bool:
        """Append ``value`` to a list field unless present.

        Returns True only if the value was added.
        """
        doc = await self.get(collection, doc_id)
        if doc is None:
            return False
        items = list(doc.get(field) or [])
        if value in items:
            return False
        items.append(value)
        return await self.update(collection, doc_id, {field: items})

    async def pull(self, collection: str, doc_id: str, field: str, value: Any) -> bool:
        """Remove ``value`` from a list field. Returns True if it was present."""
        doc = await self.get(collection, doc_id)
        if doc is None:
            return False
        items = list(doc.get(field) or [])
        if value not in items:
            return False
        return await self.update(
            collection, doc_id, {field: [item for item in items if item != value]}
        )

    async def close(self) -> None:
        pass


class InMemoryDocumentStore(DocumentStore):
    """Process-local store. Data is lost on restart."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    def _collection(self, name: str) -> dict[str, dict[str, Any]]:
        return self._collections.setdefault(name, {})

    async def insert(self, collection: str, doc: dict[str, Any]) -> str:
        stored = copy.deepcopy(doc)
        doc_id = stored.get("id") or _new_id()
        stored["id"] = doc_id
        self._collection(collection)[doc_id] = stored
        return doc_id

    async def insert_many(self, collection: str, docs: list[dict[str, Any]]) -> list[str]:
        return [await self.insert(collection, doc) for doc in docs]

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        doc = self._collection(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def find(self, collection: str, **filters: Any) -> list[dict[str, Any]]:
        return [
            copy.deepcopy(doc)
            for doc in self._collection(collection).values()
            if _matches(doc, filters)
        ]

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> bool:
        doc = self._collection(collection).get(doc_id)
        if doc is None:
            return False
        doc.update(copy.deepcopy(fields))
        doc["id"] = doc_id
        return True

    async def delete(self, collection: str, doc_id: str) -> bool:
        return self._collection(collection).pop(doc_id, None) is not None


class RedisDocumentStore(DocumentStore):
    """Redis-backed document store.

    Key layout:
        ``{prefix}:{collection}:{id}``                 JSON document
        ``{prefix}:{collection}:ids``                  set of ids
        ``{prefix}:{collection}:idx:{field}:{value}``  set of ids per indexed value
    """

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        prefix: str = "doc",
        indexes: dict[str, tuple[str, ...]] | None = None,
        client: redis.Redis | None = None,
    ) -> None:
        self._redis_url = redis_url
        self._prefix = prefix
        self._indexes = indexes if indexes is not None else DEFAULT_INDEXES
        self._client: redis.Redis | None = client

    async def connect(self) -> None:
        if self._client is None:
            self._client = redis.from_url(
                self._redis_url,
                encoding="utf-8",
                decode_responses=True,
            )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _ensure_connected(self) -> redis.Redis:
        if self._client is None:
            await self.connect()
        return self._client  # type: ignore

    # ── Key helpers ──────────────────────────────────────────────────

    def _doc_key(self, collection: str, doc_id: str) -> str:
        return f"{self._prefix}:{collection}:{doc_id}"

    def _ids_key(self, collection: str) -> str:
        return f"{self._prefix}:{collection}:ids"

    def _index_key(self, collection: str, field: str, value: Any) -> str:
        return f"{self._prefix}:{collection}:idx:{field}:{json.dumps(value)}"

    def _index_entries(self, collection: str, doc: dict[str, Any]) -> list[str]:
        return [
            self._index_key(collection, field, doc.get(field))
            for field in self._indexes.get(collection, ())
            if doc.get(field) is not None
        ]

    # ── Operations ───────────────────────────────────────────────────

    async def insert(self, collection: str, doc: dict[str, Any]) -> str:
        ids = await self.insert_many(collection, [doc])
        return ids[0]

    async def insert_many(self, collection: str, docs: list[dict[str, Any]]) -> list[str]:
        client = await self._ensure_connected()
        pipe = client.pipeline(transaction=True)
        ids: list[str] = []
        for doc in docs:
            stored = dict(doc)
            doc_id = stored.get("id") or _new_id()
            stored["id"] = doc_id
            pipe.set(self._doc_key(collection, doc_id), json.dumps(stored))
            pipe.sadd(self._ids_key(collection), doc_id)
            for index_key in self._index_entries(collection, stored):
                pipe.sadd(index_key, doc_id)
            ids.append(doc_id)
        await pipe.execute()
        logger.info(f"[STORE] Inserted {len(ids)} into {collection}")
        return ids

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        client = await self._ensure_connected()
        raw = await client.get(self._doc_key(collection, doc_id))
        if raw is None:
            return None
        return json.loads(raw)

    async def _load_many(self, collection: str, ids: list[str]) -> list[dict[str, Any]]:
        if not ids:
            return []
        client = await self._ensure_connected()
        raws = await client.mget([self._doc_key(collection, i) for i in ids])
        return [json.loads(raw) for raw in raws if raw is not None]

    async def find(self, collection: str, **filters: Any) -> list[dict[str, Any]]:
        client = await self._ensure_connected()
        indexed = [f for f in filters if f in self._indexes.get(collection, ())]
        if indexed:
            keys = [self._index_key(collection, f, filters[f]) for f in indexed]
            ids = await client.sinter(keys)
        else:
            ids = await client.smembers(self._ids_key(collection))
        docs = await self._load_many(collection, sorted(ids))
        return [doc for doc in docs if _matches(doc, filters)]

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> bool:
        client = await self._ensure_connected()
        current = await self.get(collection, doc_id)
        if current is None:
            return False
        updated = {**current, **fields, "id": doc_id}
        pipe = client.pipeline(transaction=True)
        for index_key in self._index_entries(collection, current):
            pipe.srem(index_key, doc_id)
        pipe.set(self._doc_key(collection, doc_id), json.dumps(updated))
        for index_key in self._index_entries(collection, updated):
            pipe.sadd(index_key, doc_id)
        await pipe.execute()
        return True

    async def delete(self, collection: str, doc_id: str) -> bool:
        client = await self._ensure_connected()
        current = await self.get(collection, doc_id)
        if current is None:
            return False
        pipe = client.pipeline(transaction=True)
        for index_key in self._index_entries(collection, current):
            pipe.srem(index_key, doc_id)
        pipe.srem(self._ids_key(collection), doc_id)
        pipe.delete(self._doc_key(collection, doc_id))
        await pipe.execute()
        return True


def create_document_store() -> DocumentStore:
    """Redis when ``REDIS_URL`` is set, otherwise in-memory."""
    redis_url = os.getenv("REDIS_URL")
    if redis_url:
        logger.info("[STORE] Using Redis document store")
        return RedisDocumentStore(redis_url=redis_url)
    logger.warning("[STORE] REDIS_URL not set, using in-memory document store")
    return InMemoryDocumentStore()
