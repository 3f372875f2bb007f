"""
Async facade over the R2 client for image uploads.

boto3 is blocking, so calls run in a worker thread. Object keys follow
`{kind}/{owner}/{filename}`. Clients may upload UPLOAD_KINDS; feedback
screenshots are stored by the server only.
"""
import asyncio
import logging
import secrets
import time
from typing import Optional

from app.storage.r2_client import R2Client, get_r2_client
from app.utils.images import detect_image_type

logger = logging.getLogger(__name__)

UPLOAD_KINDS = ("original", "generated", "style")
STORED_KINDS = UPLOAD_KINDS + ("feedback",)


def build_object_key(kind: str, owner: Optional[str], filename: str) -> str:
    return f"{kind}/{owner or 'anonymous'}/{filename}"


class ImageHost:
    """The application's own image host."""

    def __init__(self, client: Optional[R2Client] = None):
        self._client = client or get_r2_client()

    @property
    def is_configured(self) -> bool:
        return self._client.is_configured

    async def upload(
        self,
        data: bytes,
        kind: str,
        owner: Optional[str] = None,
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
        watermark: bool = True
    ) -> str:
        """
        Store image bytes and return their public URL.

        Args:
            data: Image bytes (must be non-empty)
            kind: One of STORED_KINDS
            owner: User id (None for anonymous uploads and styles)
            filename: Object file name; generated from kind and time if omitted
            content_type: Declared MIME type, corrected from magic bytes
            watermark: Stored as object metadata for the image server

        Raises:
            ValueError: Empty data or unknown kind
            RuntimeError: Image host not configured
        """
        if not data:
            raise ValueError("Empty image data")
        if kind not in STORED_KINDS:
            raise ValueError(f"Invalid upload type: {kind}")

        ext, mime = detect_image_type(data, content_type)
        if filename is None:
            filename = f"{kind}_{int(time.time() * 1000)}_{secrets.token_hex(3)}.{ext}"
        key = build_object_key(kind, owner, filename)

        url = await asyncio.to_thread(
            self._client.upload_bytes,
            key,
            data,
            mime,
            {"watermark": "1" if watermark else "0"},
        )
        logger.info(f"Stored {kind} image {key} ({len(data)} bytes)")
        return url

    def owns(self, url: str) -> bool:
        return self._client.key_from_url(url) is not None

    async def delete_url(self, url: str) -> bool:
        """
        Delete a hosted image by its public URL.

        Returns:
            True if deleted; False for foreign URLs or failed deletes
        """
        key = self._client.key_from_url(url)
        if key is None:
            logger.debug(f"Skipping delete of foreign URL {url}")
            return False
        return await asyncio.to_thread(self._client.delete_object, key)

    async def delete_user_images(self, user_id: str) -> tuple[int, int]:
        """Delete all originals and generated images of a user."""
        deleted = 0
        failed = 0
        for kind in ("original", "generated"):
            ok, bad = await asyncio.to_thread(
                self._client.delete_prefix,
                build_object_key(kind, user_id, "")
            )
            deleted += ok
            failed += bad
        return (deleted, failed)
