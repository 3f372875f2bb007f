"""
Generation history and user data removal.

Deleting a generation removes the record first; hosted images are then
deleted best-effort, so a storage hiccup never resurrects a record.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional

from app.db import collections
from app.db.base import DocumentStore
from app.exceptions import GenerationNotFound, NotOwner
from app.models.generation import Generation
from app.repositories.favorite_repository import FavoriteRepository
from app.repositories.generation_repository import GenerationRepository
from app.storage.image_host import ImageHost

logger = logging.getLogger(__name__)


@dataclass
class PurgeResult:
    generations_deleted: int
    images_deleted: int
    images_failed: int


class GenerationHistoryService:
    """Read and delete generation records."""

    @staticmethod
    async def list_generations(
        store: DocumentStore,
        user_id: Optional[str] = None,
        style_name: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[Generation]:
        """Generations newest first, filtered by user or by style name."""
        if user_id:
            generations = await GenerationRepository.list_by_user(store, user_id)
        elif style_name:
            generations = await GenerationRepository.list_by_style_name(store, style_name)
        else:
            return await GenerationRepository.list_all(store, limit=limit)
        return generations[:limit] if limit else generations

    @staticmethod
    async def style_names(store: DocumentStore) -> List[str]:
        """Distinct style names used by generations, sorted."""
        generations = await GenerationRepository.list_all(store)
        return sorted({g.style_name for g in generations if g.style_name})

    @staticmethod
    async def get_generation(store: DocumentStore, generation_id: str) -> Generation:
        generation = await GenerationRepository.get(store, generation_id)
        if generation is None:
            raise GenerationNotFound(generation_id)
        return generation

    @staticmethod
    async def delete_own(store: DocumentStore, user_id: str, generation_id: str) -> None:
        """
        Delete a generation owned by `user_id`.

        Raises:
            GenerationNotFound: Unknown generation
            NotOwner: Generation belongs to someone else
        """
        generation = await GenerationHistoryService.get_generation(store, generation_id)
        if generation.user_id != user_id:
            raise NotOwner(f"Generation {generation_id} does not belong to user {user_id}")
        await GenerationRepository.delete(store, generation_id)
        logger.info(f"User {user_id} deleted generation {generation_id}")

    @staticmethod
    async def delete_as_admin(
        store: DocumentStore,
        image_host: ImageHost,
        generation_id: str,
        delete_images: bool = True
    ) -> int:
        """
        Delete a generation and, optionally, its hosted images.

        Returns:
            Number of hosted images deleted

        Raises:
            GenerationNotFound: Unknown generation
        """
        generation = await GenerationHistoryService.get_generation(store, generation_id)
        await GenerationRepository.delete(store, generation_id)
        logger.info(f"Admin deleted generation {generation_id}")

        if not delete_images:
            return 0

        urls = [u for u in [generation.original_image_url, *generation.generated_image_urls] if u]
        results = await asyncio.gather(
            *(image_host.delete_url(url) for url in urls),
            return_exceptions=True
        )
        deleted = 0
        for url, result in zip(urls, results):
            if isinstance(result, Exception):
                logger.warning(f"Failed to delete hosted image {url}: {result}")
            elif result:
                deleted += 1
        return deleted

    @staticmethod
    async def purge_user(store: DocumentStore, image_host: ImageHost, user_id: str) -> PurgeResult:
        """
        Remove all data of a user: token account, generations, favorites and
        hosted images.
        """
        generations = await GenerationRepository.list_by_user(store, user_id)
        for generation in generations:
            await GenerationRepository.delete(store, generation.id)
        await store.delete(collections.USER_TOKENS, user_id)
        await FavoriteRepository.delete_by_user(store, user_id)

        images_deleted, images_failed = 0, 0
        if image_host.is_configured:
            images_deleted, images_failed = await image_host.delete_user_images(user_id)

        logger.warning(
            f"Purged user {user_id}: {len(generations)} generations, "
            f"{images_deleted} images deleted, {images_failed} failed"
        )
        return PurgeResult(
            generations_deleted=len(generations),
            images_deleted=images_deleted,
            images_failed=images_failed
        )
