"""App feedback submissions."""

import logging

from app.models import Feedback
from app.services.store import DocumentStore

logger = logging.getLogger(__name__)

FEEDBACK = "feedback"


class FeedbackService:
    def __init__(self, store: DocumentStore) -> None:
        self._store = store

    async def submit(self, feedback: Feedback) -> str:
        doc_id = await self._store.insert(FEEDBACK, feedback.model_dump(mode="json"))
        logger.info(f"[FEEDBACK] {feedback.type} from {feedback.name}")
        return doc_id

    async def list_all(self) -> list[Feedback]:
        docs = await self._store.find(FEEDBACK)
        items = [Feedback.model_validate(doc) for doc in docs]
        return sorted(items, key=lambda f: f.created_at, reverse=True)
