"""
Favorite styles of signed-in users.
"""
import logging
from typing import List

from app.db.base import DocumentStore
from app.models.base import utcnow
from app.models.favorite import Favorite
from app.repositories.favorite_repository import FavoriteRepository
from app.services.style_service import StyleService

logger = logging.getLogger(__name__)


class FavoriteService:
    """Add, remove and list a user's favorite styles."""

    @staticmethod
    async def add_favorite(store: DocumentStore, user_id: str, style_id: str) -> Favorite:
        """
        Favorite a style, storing a copy of it.

        Favoriting the same style twice refreshes the stored copy.

        Raises:
            StyleNotFound: Unknown style
        """
        style = await StyleService.get_style(store, style_id)
        favorite = Favorite(
            user_id=user_id,
            style_id=style_id,
            style=style,
            created_at=utcnow()
        )
        saved = await FavoriteRepository.save(store, favorite)
        logger.info(f"User {user_id} favorited style {style_id}")
        return saved

    @staticmethod
    async def remove_favorite(store: DocumentStore, user_id: str, style_id: str) -> None:
        await FavoriteRepository.delete(store, user_id, style_id)
        logger.info(f"User {user_id} removed favorite {style_id}")

    @staticmethod
    async def is_favorite(store: DocumentStore, user_id: str, style_id: str) -> bool:
        return await FavoriteRepository.get(store, user_id, style_id) is not None

    @staticmethod
    async def list_favorites(store: DocumentStore, user_id: str) -> List[Favorite]:
        return await FavoriteRepository.list_by_user(store, user_id)

    @staticmethod
    async def favorite_style_ids(store: DocumentStore, user_id: str) -> List[str]:
        favorites = await FavoriteRepository.list_by_user(store, user_id)
        return [f.style_id for f in favorites]
