"""
Repository for visitor presence documents.
"""
from typing import Any, Dict, List, Optional

from app.db import collections
from app.db.base import DocumentStore
from app.models.visitor import Visitor


class VisitorRepository:
    """Repository for `visitors` collection operations."""

    @staticmethod
    async def get(store: DocumentStore, session_id: str) -> Optional[Visitor]:
        data = await store.get(collections.VISITORS, session_id)
        return Visitor.from_document(session_id, data) if data is not None else None

    @staticmethod
    async def merge(store: DocumentStore, session_id: str, fields: Dict[str, Any]) -> None:
        await store.set(collections.VISITORS, session_id, fields, merge=True)

    @staticmethod
    async def list_all(store: DocumentStore) -> List[Visitor]:
        docs = await store.query(collections.VISITORS)
        return [Visitor.from_document(doc_id, data) for doc_id, data in docs]
