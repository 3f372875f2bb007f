"""
Image generation provider factory.
Builds the configured provider with its API key resolved at call time, so a
key saved by an admin takes effect without a restart.
"""
import logging
from typing import Optional

from app.ai.base import ImageGenerationProvider
from app.ai.freepik_provider import FreepikProvider
from app.db.base import DocumentStore
from app.services.settings_service import SettingsService

logger = logging.getLogger(__name__)


async def get_image_provider(
    store: DocumentStore,
    api_key: Optional[str] = None
) -> ImageGenerationProvider:
    """
    Factory function to get the image generation provider.

    Key resolution: explicit api_key argument, then AI_API_KEY environment
    variable, then the settings/ai document.

    Args:
        store: Document store (for the settings/ai fallback)
        api_key: Optional key override (used by the admin connection test)

    Returns:
        ImageGenerationProvider instance (check is_configured() before use)
    """
    key = api_key.strip() if api_key else await SettingsService.get_ai_api_key(store)
    if not key:
        logger.warning("AI API key not configured (env AI_API_KEY or settings/ai)")
    return FreepikProvider(api_key=key)
