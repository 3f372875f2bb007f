"""
Re-hosting of AI results onto the app's own image host.

Provider result URLs point at a third-party CDN and expire, so every result
is downloaded and stored in R2 before it is recorded anywhere.

Per image: server-side save (browser User-Agent download, type sniffing,
deterministic file name), falling back to a plain download pushed through
the regular upload path. Images still unsaved after that get exactly one
more server-side attempt. Saves run concurrently; results keep input order.
"""
import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import httpx

from app.config import settings
from app.storage.image_host import ImageHost
from app.utils.images import detect_image_type, is_image
from app.utils.metrics import images_rehosted_total

logger = logging.getLogger(__name__)

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)


@dataclass
class RehostResult:
    """Outcome of re-hosting one generation's images."""
    urls: List[str] = field(default_factory=list)  # saved URLs in input order
    failed_indices: List[int] = field(default_factory=list)

    @property
    def failed_count(self) -> int:
        return len(self.failed_indices)

    @property
    def is_partial(self) -> bool:
        return bool(self.urls) and bool(self.failed_indices)


class ImageRehoster:
    """Copies remote images to the image host with fallback and one retry pass."""

    def __init__(
        self,
        image_host: ImageHost,
        http_client: Optional[httpx.AsyncClient] = None,
        watermark: bool = True
    ):
        self.image_host = image_host
        self.watermark = watermark
        self._http_client = http_client

    async def _download(self, url: str, headers: Optional[dict] = None) -> Tuple[bytes, Optional[str]]:
        if self._http_client is not None:
            response = await self._http_client.get(url, headers=headers)
        else:
            async with httpx.AsyncClient(
                timeout=settings.rehost_download_timeout,
                follow_redirects=True
            ) as client:
                response = await client.get(url, headers=headers)

        response.raise_for_status()
        if not response.content:
            raise ValueError(f"Downloaded image is empty: {url}")
        content_type = response.headers.get("content-type")
        if not is_image(response.content, content_type):
            raise ValueError(f"Downloaded body is not an image ({content_type}): {url}")
        return response.content, content_type

    async def save_primary(self, url: str, index: int, owner: Optional[str]) -> str:
        """
        Server-side save of one result image.

        Args:
            url: Provider result URL
            index: Position of the image in the generation
            owner: User id (None for anonymous generations)

        Returns:
            Public URL on the image host

        Raises:
            httpx.HTTPError, ValueError, RuntimeError: Download or upload failed
        """
        data, content_type = await self._download(
            url,
            headers={"User-Agent": BROWSER_USER_AGENT, "Accept": "image/*,*/*;q=0.8"}
        )
        ext, mime = detect_image_type(data, content_type, url)
        filename = f"generated_{int(time.time() * 1000)}_{index}.{ext}"
        return await self.image_host.upload(
            data,
            kind="generated",
            owner=owner,
            filename=filename,
            content_type=mime,
            watermark=self.watermark
        )

    async def save_fallback(self, url: str, index: int, owner: Optional[str]) -> str:
        """Plain download, then the same upload path used by POST /upload."""
        data, content_type = await self._download(url)
        return await self.image_host.upload(
            data,
            kind="generated",
            owner=owner,
            content_type=content_type,
            watermark=self.watermark
        )

    async def _save_with_fallback(self, url: str, index: int, owner: Optional[str]) -> Optional[str]:
        try:
            saved = await self.save_primary(url, index, owner)
            images_rehosted_total.labels(outcome="primary").inc()
            return saved
        except Exception as e:
            logger.warning(f"Server-side save failed for image {index}: {e}; trying fallback")

        try:
            saved = await self.save_fallback(url, index, owner)
            images_rehosted_total.labels(outcome="fallback").inc()
            return saved
        except Exception as e:
            logger.warning(f"Fallback save failed for image {index}: {e}")
            return None

    async def _retry(self, url: str, index: int, owner: Optional[str]) -> Optional[str]:
        try:
            saved = await self.save_primary(url, index, owner)
            images_rehosted_total.labels(outcome="retried").inc()
            return saved
        except Exception as e:
            logger.error(f"Retry failed for image {index}: {e}")
            images_rehosted_total.labels(outcome="failed").inc()
            return None

    async def rehost_all(self, urls: List[str], owner: Optional[str]) -> RehostResult:
        """
        Save every URL; retry failures once; drop what still fails.

        Args:
            urls: Provider result URLs
            owner: User id (None for anonymous generations)

        Returns:
            RehostResult with saved URLs in input order and failed indices
        """
        saved: List[Optional[str]] = list(await asyncio.gather(
            *(self._save_with_fallback(url, index, owner) for index, url in enumerate(urls))
        ))

        failed = [index for index, result in enumerate(saved) if result is None]
        if failed:
            logger.info(f"Retrying {len(failed)} of {len(urls)} images")
            retried = await asyncio.gather(*(self._retry(urls[i], i, owner) for i in failed))
            for index, result in zip(failed, retried):
                saved[index] = result

        result = RehostResult(
            urls=[url for url in saved if url is not None],
            failed_indices=[index for index, url in enumerate(saved) if url is None]
        )
        if result.failed_indices:
            logger.warning(
                f"{result.failed_count} of {len(urls)} images could not be saved: {result.failed_indices}"
            )
        return result
