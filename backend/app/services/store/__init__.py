"""Document store: Redis (production) or in-memory (development)."""

from .service import (
    DocumentStore,
    InMemoryDocumentStore,
    RedisDocumentStore,
    create_document_store,
)

__all__ = [
    "DocumentStore",
    "InMemoryDocumentStore",
    "RedisDocumentStore",
    "create_document_store",
]
