"""
Freepik image generation provider.

Task-based API:
    POST {endpoint}            {"prompt", "reference_images": [base64]} -> data.task_id
    GET  {endpoint}/{task_id}  -> data.status, data.generated

The task is polled at a fixed interval until COMPLETED, FAILED/CANCELLED, or
the wall-clock deadline passes.
"""
import asyncio
import base64
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx

from app.ai.base import ImageGenerationProvider, build_prompt
from app.config import settings
from app.exceptions import GenerationFailed, GenerationTimeout, ProviderNotConfigured
from app.utils.ai_metrics import track_ai_provider_metrics_async

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-freepik-api-key"
TERMINAL_FAILURES = ("FAILED", "CANCELLED")


class FreepikProvider(ImageGenerationProvider):
    """
    Freepik (Gemini image preview) provider.

    The API key is resolved by the factory (environment first, then the
    settings/ai document) and passed in.
    """

    name = "freepik"

    def __init__(
        self,
        api_key: Optional[str],
        endpoint: Optional[str] = None,
        poll_timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    ):
        self.api_key = (api_key or "").strip()
        self.endpoint = (endpoint or settings.ai_endpoint).rstrip("/")
        self.poll_timeout = poll_timeout if poll_timeout is not None else settings.ai_poll_timeout
        self.poll_interval = poll_interval if poll_interval is not None else settings.ai_poll_interval
        self._http_client = http_client
        self._sleep = sleep

    def is_configured(self) -> bool:
        return bool(self.api_key)

    def _headers(self) -> Dict[str, str]:
        return {API_KEY_HEADER: self.api_key, "Accept": "application/json"}

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is not None:
            return self._http_client
        return httpx.AsyncClient(timeout=settings.ai_request_timeout)

    @track_ai_provider_metrics_async("freepik", "generate")
    async def generate(self, image_bytes: bytes, prompt: str) -> List[str]:
        if not self.is_configured():
            raise ProviderNotConfigured(
                "AI API key not configured. Set AI_API_KEY or save it in admin settings."
            )

        payload = {
            "prompt": build_prompt(prompt),
            "reference_images": [base64.b64encode(image_bytes).decode("ascii")],
        }

        client = self._client()
        try:
            created = await self._request(client, "POST", self.endpoint, json=payload)
            data = created.get("data") or {}

            # Some models answer synchronously
            if data.get("status") == "COMPLETED" and data.get("generated"):
                return self._urls(data)

            task_id = data.get("task_id")
            if not task_id:
                raise GenerationFailed("No task_id received from AI service")

            logger.info(f"AI task {task_id} created, polling for result")
            return await self._poll(client, task_id)
        finally:
            if self._http_client is None:
                await client.aclose()

    async def _poll(self, client: httpx.AsyncClient, task_id: str) -> List[str]:
        deadline = time.monotonic() + self.poll_timeout

        while time.monotonic() < deadline:
            body = await self._request(client, "GET", f"{self.endpoint}/{task_id}")
            data = body.get("data") or {}
            status = data.get("status")

            if status == "COMPLETED":
                return self._urls(data)
            if status in TERMINAL_FAILURES:
                raise GenerationFailed(f"Task {status}")

            await self._sleep(self.poll_interval)

        raise GenerationTimeout(f"Timeout waiting for result of task {task_id}")

    async def _request(self, client: httpx.AsyncClient, method: str, url: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            raise GenerationFailed(f"Image generation service unreachable: {e}") from e

        if response.status_code >= 400:
            raise GenerationFailed(
                f"Image generation service error ({response.status_code}): {response.text[:200]}"
            )
        try:
            return response.json()
        except ValueError as e:
            raise GenerationFailed("Invalid JSON from image generation service") from e

    @staticmethod
    def _urls(data: Dict[str, Any]) -> List[str]:
        urls = [url for url in data.get("generated") or [] if isinstance(url, str) and url]
        if not urls:
            raise GenerationFailed("No generated images returned")
        return urls

    @track_ai_provider_metrics_async("freepik", "test_connection")
    async def test_connection(self) -> bool:
        """
        Send a minimal request to validate the key.

        401/403 means the key is rejected; any other status (400 included)
        means the key itself was accepted.
        """
        if not self.is_configured():
            return False

        client = self._client()
        try:
            response = await client.post(
                self.endpoint,
                headers=self._headers(),
                json={"prompt": "test image"}
            )
        except httpx.HTTPError as e:
            raise GenerationFailed(f"Image generation service unreachable: {e}") from e
        finally:
            if self._http_client is None:
                await client.aclose()

        return response.status_code not in (401, 403)
