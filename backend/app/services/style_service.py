"""
Style catalog service.
Wraps StyleRepository with search, trending and bulk admin operations.
"""
import logging
import random
import string
import time
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from app.db.base import DocumentStore
from app.exceptions import StyleNotFound
from app.models.style import Style, StyleStatus
from app.repositories.generation_repository import GenerationRepository
from app.repositories.style_repository import StyleRepository

logger = logging.getLogger(__name__)

TRENDING_LIMIT = 6


def normalize_prompt(prompt: str) -> str:
    """Trimmed and lowercased. Used for duplicate detection."""
    return prompt.strip().lower()


@dataclass
class ImportResult:
    created: int
    skipped: int
    styles: List[Style]


class StyleService:
    """Service for the style catalog."""

    @staticmethod
    async def list_styles(store: DocumentStore, active_only: bool = False) -> List[Style]:
        if active_only:
            return await StyleRepository.list_active(store)
        return await StyleRepository.list_all(store)

    @staticmethod
    async def get_style(store: DocumentStore, style_id: str) -> Style:
        style = await StyleRepository.get(store, style_id)
        if style is None:
            raise StyleNotFound(style_id)
        return style

    @staticmethod
    async def create_style(store: DocumentStore, style: Style) -> Style:
        created = await StyleRepository.create(store, style)
        logger.info(f"Style created: {created.id} ({created.name})")
        return created

    @staticmethod
    async def update_style(store: DocumentStore, style_id: str, fields: Dict[str, Any]) -> Style:
        """
        Update a style.

        Args:
            store: Document store
            style_id: Style ID
            fields: camelCase fields to change

        Raises:
            StyleNotFound: Unknown style
        """
        existing = await StyleService.get_style(store, style_id)
        # validate the merged result before writing
        merged = Style.from_document(style_id, {**existing.to_document(), **fields})
        changes = {key: value for key, value in merged.to_document().items() if key in fields}
        if changes:
            await StyleRepository.update(store, style_id, changes)
        return await StyleService.get_style(store, style_id)

    @staticmethod
    async def delete_style(store: DocumentStore, style_id: str) -> None:
        await StyleService.get_style(store, style_id)
        await StyleRepository.delete(store, style_id)
        logger.info(f"Style deleted: {style_id}")

    @staticmethod
    async def delete_all(store: DocumentStore) -> int:
        """Delete every style. Returns the number deleted."""
        styles = await StyleRepository.list_all(store)
        for style in styles:
            await StyleRepository.delete(store, style.id)
        logger.warning(f"Deleted all {len(styles)} styles")
        return len(styles)

    @staticmethod
    async def search_by_name(store: DocumentStore, query: str, active_only: bool = False) -> List[Style]:
        """Case-insensitive substring match on the style name."""
        needle = query.strip().lower()
        styles = await StyleService.list_styles(store, active_only=active_only)
        if not needle:
            return styles
        return [s for s in styles if needle in s.name.lower()]

    @staticmethod
    async def trending(store: DocumentStore, limit: int = TRENDING_LIMIT) -> List[Style]:
        """
        Most used active styles.

        Usage is counted from generation records. When no active style has
        been used yet, the first `limit` active styles are returned.
        """
        active = await StyleRepository.list_active(store)
        generations = await GenerationRepository.list_all(store)
        usage = Counter(g.style_id for g in generations)

        used = [s for s in active if usage[s.id] > 0]
        if not used:
            return active[:limit]
        # sorted() is stable, so ties keep catalog order
        return sorted(used, key=lambda s: usage[s.id], reverse=True)[:limit]

    @staticmethod
    async def bulk_update_status(
        store: DocumentStore,
        status: StyleStatus,
        category: Optional[str] = None
    ) -> int:
        """
        Set status on every style, or on those in `category`.

        Returns:
            Number of styles changed
        """
        styles = await StyleRepository.list_all(store)
        if category is not None:
            wanted = category.strip().lower()
            styles = [s for s in styles if (s.category or "").strip().lower() == wanted]

        changed = 0
        for style in styles:
            if style.status != status.value:
                await StyleRepository.set_status(store, style.id, status)
                changed += 1
        logger.info(f"Bulk status update: {changed} style(s) set to {status.value} (category={category})")
        return changed

    @staticmethod
    async def import_styles(store: DocumentStore, items: List[Dict[str, Any]]) -> ImportResult:
        """
        Import styles from a JSON array.

        Each item needs string `prompt` and `imageUrl`; `status`, `category`
        and `tags` are optional. Items whose normalised prompt already exists
        in the catalog, or earlier in the same batch, are skipped.

        Raises:
            ValueError: An item is malformed (message names its 1-based position)
        """
        for position, item in enumerate(items, start=1):
            if not isinstance(item, dict):
                raise ValueError(f"Item {position}: expected an object")
            if not isinstance(item.get("prompt"), str) or not item["prompt"].strip():
                raise ValueError(f"Item {position}: 'prompt' must be a non-empty string")
            if not isinstance(item.get("imageUrl"), str):
                raise ValueError(f"Item {position}: 'imageUrl' must be a string")

        seen = {normalize_prompt(s.prompt) for s in await StyleRepository.list_all(store)}
        timestamp = int(time.time() * 1000)
        created: List[Style] = []
        skipped = 0

        for item in items:
            key = normalize_prompt(item["prompt"])
            if key in seen:
                skipped += 1
                continue
            seen.add(key)

            category = item.get("category")
            category = category.strip() if isinstance(category, str) else ""
            tags = item.get("tags") or []
            suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=4))
            style = Style(
                name=f"STYLE-{timestamp}-{len(created) + 1}-{suffix}",
                prompt=item["prompt"].strip(),
                image_url=item["imageUrl"].strip(),
                status=StyleStatus.INACTIVE if item.get("status") == StyleStatus.INACTIVE.value else StyleStatus.ACTIVE,
                category=category or None,
                tags=[t.strip() for t in tags if isinstance(t, str) and t.strip()] if isinstance(tags, list) else [],
            )
            created.append(await StyleRepository.create(store, style))

        logger.info(f"Style import: {len(created)} created, {skipped} skipped as duplicates")
        return ImportResult(created=len(created), skipped=skipped, styles=created)
