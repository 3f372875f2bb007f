"""
Repository for style documents.
"""
from typing import Any, Dict, List, Optional

from app.db import collections
from app.db.base import DocumentStore
from app.models.base import utcnow
from app.models.style import Style, StyleStatus


class StyleRepository:
    """Repository for `styles` collection operations."""

    @staticmethod
    async def list_all(store: DocumentStore) -> List[Style]:
        """All styles, newest first (styles without createdAt last)."""
        docs = await store.query(collections.STYLES)
        styles = [Style.from_document(doc_id, data) for doc_id, data in docs]
        dated = sorted((s for s in styles if s.created_at), key=lambda s: s.created_at.timestamp(), reverse=True)
        return dated + [s for s in styles if not s.created_at]

    @staticmethod
    async def list_active(store: DocumentStore) -> List[Style]:
        return [s for s in await StyleRepository.list_all(store) if s.is_active]

    @staticmethod
    async def get(store: DocumentStore, style_id: str) -> Optional[Style]:
        data = await store.get(collections.STYLES, style_id)
        return Style.from_document(style_id, data) if data is not None else None

    @staticmethod
    async def create(store: DocumentStore, style: Style) -> Style:
        """
        Create a style. Timestamps are set here.

        Returns:
            The stored style including its generated id
        """
        now = utcnow()
        style = style.model_copy(update={"created_at": now, "updated_at": now})
        style_id = await store.create(collections.STYLES, style.to_document())
        return style.model_copy(update={"id": style_id})

    @staticmethod
    async def update(store: DocumentStore, style_id: str, fields: Dict[str, Any]) -> None:
        """
        Update style fields.

        Args:
            store: Document store
            style_id: Style ID
            fields: camelCase document fields to replace
        """
        await store.update(collections.STYLES, style_id, {**fields, "updatedAt": utcnow()})

    @staticmethod
    async def set_status(store: DocumentStore, style_id: str, status: StyleStatus) -> None:
        await StyleRepository.update(store, style_id, {"status": status.value})

    @staticmethod
    async def delete(store: DocumentStore, style_id: str) -> None:
        await store.delete(collections.STYLES, style_id)
