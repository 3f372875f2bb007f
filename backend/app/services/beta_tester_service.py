"""
Beta tester program.

Registering grants the freeTokens bonus from settings/betaTester once per
user. Beta status only counts while registration is enabled, so closing
the program hides beta features without deleting registrations.
"""
import logging
from typing import List, Optional

from app.db import collections
from app.db.base import DocumentStore, Transaction
from app.exceptions import AlreadyBetaTester, BetaRegistrationClosed
from app.models.base import utcnow
from app.models.beta_tester import BetaTester
from app.models.tokens import UserTokenData
from app.services.settings_service import SettingsService

logger = logging.getLogger(__name__)


class BetaTesterService:

    @staticmethod
    async def get_tester(store: DocumentStore, user_id: str) -> Optional[BetaTester]:
        data = await store.get(collections.BETA_TESTERS, user_id)
        return BetaTester.from_document(user_id, data) if data is not None else None

    @staticmethod
    async def is_registered(store: DocumentStore, user_id: str) -> bool:
        return await BetaTesterService.get_tester(store, user_id) is not None

    @staticmethod
    async def is_beta_tester(store: DocumentStore, user_id: str) -> bool:
        """Registered and the program is currently open."""
        beta = await SettingsService.get_beta_tester_settings(store)
        if not beta.registration_enabled:
            return False
        return await BetaTesterService.is_registered(store, user_id)

    @staticmethod
    async def register(store: DocumentStore, user_id: str, email: Optional[str]) -> BetaTester:
        """
        Register the user and credit the free tokens in one transaction.

        Raises:
            BetaRegistrationClosed: Registration disabled in settings
            ValueError: User has no email address
            AlreadyBetaTester: User registered before
        """
        beta = await SettingsService.get_beta_tester_settings(store)
        if not beta.registration_enabled:
            raise BetaRegistrationClosed("Beta tester registration is currently closed")
        if not email:
            raise ValueError("Email is required to register as a beta tester")

        async def _register(transaction: Transaction) -> BetaTester:
            if await transaction.get(collections.BETA_TESTERS, user_id) is not None:
                raise AlreadyBetaTester(user_id)

            now = utcnow()
            tokens_data = await transaction.get(collections.USER_TOKENS, user_id)
            if tokens_data is None:
                account = UserTokenData(user_id=user_id, tokens=beta.free_tokens, created_at=now, updated_at=now)
                transaction.create(collections.USER_TOKENS, user_id, account.to_document())
            else:
                current = UserTokenData.from_document(user_id, tokens_data).tokens
                transaction.update(collections.USER_TOKENS, user_id, {
                    "tokens": current + beta.free_tokens,
                    "updatedAt": now,
                })

            tester = BetaTester(
                user_id=user_id,
                email=email,
                free_tokens_received=beta.free_tokens,
                registered_at=now
            )
            transaction.create(collections.BETA_TESTERS, user_id, tester.to_document())
            return tester.model_copy(update={"id": user_id})

        tester = await store.run_transaction(_register)
        logger.info(f"User {user_id} registered as beta tester (+{beta.free_tokens} tokens)")
        return tester

    @staticmethod
    async def list_testers(store: DocumentStore) -> List[BetaTester]:
        """All registrations, newest first."""
        docs = await store.query(collections.BETA_TESTERS)
        testers = [BetaTester.from_document(doc_id, data) for doc_id, data in docs]
        return sorted(
            testers,
            key=lambda t: t.registered_at.timestamp() if t.registered_at else 0,
            reverse=True
        )
