"""
Repository for user feedback documents.
"""
from typing import Any, Dict, List, Optional

from app.db import collections
from app.db.base import DocumentStore
from app.models.base import utcnow
from app.models.feedback import Feedback


class FeedbackRepository:
    """Repository for `feedbacks` collection operations."""

    @staticmethod
    async def create(store: DocumentStore, feedback: Feedback, feedback_id: str) -> Feedback:
        """
        Raises:
            AlreadyExists: feedback_id is already used
        """
        await store.create(collections.FEEDBACKS, feedback.to_document(), doc_id=feedback_id)
        return feedback.model_copy(update={"id": feedback_id})

    @staticmethod
    async def get(store: DocumentStore, feedback_id: str) -> Optional[Feedback]:
        data = await store.get(collections.FEEDBACKS, feedback_id)
        return Feedback.from_document(feedback_id, data) if data is not None else None

    @staticmethod
    async def list_filtered(
        store: DocumentStore,
        category: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> List[Feedback]:
        """Feedback newest first, optionally filtered by category and/or user."""
        filters = []
        if category:
            filters.append(("category", category))
        if user_id:
            filters.append(("userId", user_id))
        docs = await store.query(collections.FEEDBACKS, filters=filters or None)
        items = [Feedback.from_document(doc_id, data) for doc_id, data in docs]
        return sorted(
            items,
            key=lambda f: f.created_at.timestamp() if f.created_at else 0,
            reverse=True
        )

    @staticmethod
    async def update(store: DocumentStore, feedback_id: str, fields: Dict[str, Any]) -> None:
        """
        Raises:
            NotFound: No such feedback
        """
        await store.update(collections.FEEDBACKS, feedback_id, {**fields, "updatedAt": utcnow()})

    @staticmethod
    async def delete(store: DocumentStore, feedback_id: str) -> None:
        await store.delete(collections.FEEDBACKS, feedback_id)
