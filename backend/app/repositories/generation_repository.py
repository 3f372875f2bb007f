"""
Repository for generation history documents.
"""
from typing import List, Optional

from app.db import collections
from app.db.base import DocumentStore
from app.models.generation import Generation


class GenerationRepository:
    """Repository for `generations` collection operations."""

    @staticmethod
    async def create(store: DocumentStore, generation: Generation) -> str:
        """
        Write a generation record.

        Raises:
            AlreadyExists: If generation.id is set and already used
        """
        return await store.create(
            collections.GENERATIONS,
            generation.to_document(),
            doc_id=generation.id
        )

    @staticmethod
    async def get(store: DocumentStore, generation_id: str) -> Optional[Generation]:
        data = await store.get(collections.GENERATIONS, generation_id)
        return Generation.from_document(generation_id, data) if data is not None else None

    @staticmethod
    async def list_all(store: DocumentStore, limit: Optional[int] = None) -> List[Generation]:
        """All generations, newest first."""
        docs = await store.query(
            collections.GENERATIONS,
            order_by="createdAt",
            descending=True,
            limit=limit
        )
        return [Generation.from_document(doc_id, data) for doc_id, data in docs]

    @staticmethod
    async def list_by_user(store: DocumentStore, user_id: str) -> List[Generation]:
        docs = await store.query(collections.GENERATIONS, filters=[("userId", user_id)])
        return GenerationRepository._newest_first(docs)

    @staticmethod
    async def list_by_style_name(store: DocumentStore, style_name: str) -> List[Generation]:
        docs = await store.query(collections.GENERATIONS, filters=[("styleName", style_name)])
        return GenerationRepository._newest_first(docs)

    @staticmethod
    async def delete(store: DocumentStore, generation_id: str) -> None:
        await store.delete(collections.GENERATIONS, generation_id)

    @staticmethod
    def _newest_first(docs) -> List[Generation]:
        # Sorted client-side: equality filter + order_by needs a composite index in Firestore
        generations = [Generation.from_document(doc_id, data) for doc_id, data in docs]
        return sorted(
            generations,
            key=lambda g: g.created_at.timestamp() if g.created_at else 0,
            reverse=True
        )
