"""
Repository for favorite styles.
"""
from typing import List, Optional

from app.db import collections
from app.db.base import DocumentStore
from app.models.favorite import Favorite, favorite_id


class FavoriteRepository:
    """Repository for `favorites` collection operations."""

    @staticmethod
    async def save(store: DocumentStore, favorite: Favorite) -> Favorite:
        """Write (or overwrite) the favorite of favorite.user_id for favorite.style_id."""
        doc_id = favorite_id(favorite.user_id, favorite.style_id)
        await store.set(collections.FAVORITES, doc_id, favorite.to_document())
        return favorite.model_copy(update={"id": doc_id})

    @staticmethod
    async def get(store: DocumentStore, user_id: str, style_id: str) -> Optional[Favorite]:
        doc_id = favorite_id(user_id, style_id)
        data = await store.get(collections.FAVORITES, doc_id)
        return Favorite.from_document(doc_id, data) if data is not None else None

    @staticmethod
    async def list_by_user(store: DocumentStore, user_id: str) -> List[Favorite]:
        """A user's favorites, newest first."""
        docs = await store.query(collections.FAVORITES, filters=[("userId", user_id)])
        favorites = [Favorite.from_document(doc_id, data) for doc_id, data in docs]
        return sorted(
            favorites,
            key=lambda f: f.created_at.timestamp() if f.created_at else 0,
            reverse=True
        )

    @staticmethod
    async def delete(store: DocumentStore, user_id: str, style_id: str) -> None:
        await store.delete(collections.FAVORITES, favorite_id(user_id, style_id))

    @staticmethod
    async def delete_by_user(store: DocumentStore, user_id: str) -> int:
        docs = await store.query(collections.FAVORITES, filters=[("userId", user_id)])
        for doc_id, _ in docs:
            await store.delete(collections.FAVORITES, doc_id)
        return len(docs)
