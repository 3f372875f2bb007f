"""
Runtime settings stored in the `settings` collection.

Each document falls back to environment defaults (app.config) for fields
that were never saved, so a fresh project works without admin setup.
"""
import logging
from typing import Optional

from app.config import settings
from app.db import collections
from app.db.base import DocumentStore
from app.models.settings import (
    AiSettings,
    BetaTesterSettings,
    GeneralSettings,
    MidtransConfig,
    TokenSettings,
)

logger = logging.getLogger(__name__)

TOKENS_DOC = "tokens"
AI_DOC = "ai"
MIDTRANS_DOC = "midtrans"
GENERAL_DOC = "general"
BETA_TESTER_DOC = "betaTester"


class SettingsService:
    """Read and write admin-editable settings documents."""

    @staticmethod
    async def get_token_settings(store: DocumentStore) -> TokenSettings:
        """Pricing settings merged over environment defaults."""
        defaults = TokenSettings(
            initial_tokens=settings.initial_tokens,
            token_cost_per_generate=settings.token_cost_per_generate,
            max_anonymous_generations=settings.max_anonymous_generations,
        )
        data = await store.get(collections.SETTINGS, TOKENS_DOC) or {}
        return TokenSettings.from_document(TOKENS_DOC, {**defaults.to_document(), **data})

    @staticmethod
    async def save_token_settings(store: DocumentStore, token_settings: TokenSettings) -> None:
        await store.set(collections.SETTINGS, TOKENS_DOC, token_settings.to_document(), merge=True)
        logger.info(
            f"Token settings updated: initial={token_settings.initial_tokens}, "
            f"cost={token_settings.token_cost_per_generate}, "
            f"anonymous_max={token_settings.max_anonymous_generations}"
        )

    @staticmethod
    async def get_ai_api_key(store: DocumentStore) -> Optional[str]:
        """
        Resolve the AI API key.

        The AI_API_KEY environment variable wins over the settings/ai document.

        Returns:
            API key, or None if neither source has a usable value
        """
        if settings.ai_api_key and settings.ai_api_key.strip():
            return settings.ai_api_key.strip()

        data = await store.get(collections.SETTINGS, AI_DOC)
        if data is None:
            return None
        api_key = AiSettings.from_document(AI_DOC, data).api_key.strip()
        return api_key or None

    @staticmethod
    async def save_ai_api_key(store: DocumentStore, api_key: str) -> None:
        await store.set(collections.SETTINGS, AI_DOC, AiSettings(api_key=api_key.strip()).to_document(), merge=True)
        logger.info("AI API key updated")

    @staticmethod
    async def get_midtrans_config(store: DocumentStore) -> Optional[MidtransConfig]:
        """
        Midtrans keys from settings/midtrans, else from the environment.

        Returns:
            MidtransConfig, or None if no complete key pair is configured
        """
        data = await store.get(collections.SETTINGS, MIDTRANS_DOC)
        if data and data.get("serverKey") and data.get("clientKey"):
            return MidtransConfig.from_document(MIDTRANS_DOC, data)

        if settings.midtrans_server_key and settings.midtrans_client_key:
            return MidtransConfig(
                server_key=settings.midtrans_server_key,
                client_key=settings.midtrans_client_key,
                is_production=settings.midtrans_is_production,
            )
        return None

    @staticmethod
    async def save_midtrans_config(store: DocumentStore, config: MidtransConfig) -> None:
        await store.set(collections.SETTINGS, MIDTRANS_DOC, config.to_document())
        logger.info(f"Midtrans config updated (production={config.is_production})")

    @staticmethod
    async def get_general_settings(store: DocumentStore) -> GeneralSettings:
        data = await store.get(collections.SETTINGS, GENERAL_DOC) or {}
        return GeneralSettings.from_document(GENERAL_DOC, data)

    @staticmethod
    async def save_general_settings(store: DocumentStore, general: GeneralSettings) -> None:
        await store.set(collections.SETTINGS, GENERAL_DOC, general.to_document(), merge=True)
        logger.info(f"General settings updated: website_name={general.website_name}")

    @staticmethod
    async def get_beta_tester_settings(store: DocumentStore) -> BetaTesterSettings:
        data = await store.get(collections.SETTINGS, BETA_TESTER_DOC) or {}
        return BetaTesterSettings.from_document(BETA_TESTER_DOC, data)

    @staticmethod
    async def save_beta_tester_settings(store: DocumentStore, beta: BetaTesterSettings) -> None:
        await store.set(collections.SETTINGS, BETA_TESTER_DOC, beta.to_document(), merge=True)
        logger.info(
            f"Beta tester settings updated: free_tokens={beta.free_tokens}, "
            f"registration_enabled={beta.registration_enabled}"
        )
