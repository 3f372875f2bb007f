"""
Token service for managing generation credits ("diamonds").
Provides atomic debit/credit operations with safety checks.
Balances live at userTokens/{userId}; one successful generation costs
tokenCostPerGenerate tokens.
"""
import logging
from typing import Optional

from app.db import collections
from app.db.base import DocumentStore, Transaction
from app.models.base import utcnow
from app.models.tokens import UserTokenData

logger = logging.getLogger(__name__)


class TokenService:
    """Service for token balance management with atomic operations."""

    @staticmethod
    async def get_account(store: DocumentStore, user_id: str) -> Optional[UserTokenData]:
        data = await store.get(collections.USER_TOKENS, user_id)
        return UserTokenData.from_document(user_id, data) if data is not None else None

    @staticmethod
    async def get_balance(store: DocumentStore, user_id: str) -> int:
        """
        Get current token balance for user.

        Args:
            store: Document store
            user_id: Firebase uid

        Returns:
            Current balance (0 if the user has no token document)
        """
        account = await TokenService.get_account(store, user_id)
        return account.tokens if account else 0

    @staticmethod
    async def ensure_account(store: DocumentStore, user_id: str, initial_tokens: int) -> UserTokenData:
        """
        Create the user's token document on first sign-in.

        Existing accounts are returned untouched.

        Args:
            store: Document store
            user_id: Firebase uid
            initial_tokens: Starting balance for new accounts

        Returns:
            The (possibly new) token account
        """
        async def _ensure(transaction: Transaction) -> UserTokenData:
            data = await transaction.get(collections.USER_TOKENS, user_id)
            if data is not None:
                return UserTokenData.from_document(user_id, data)
            now = utcnow()
            account = UserTokenData(
                user_id=user_id,
                tokens=initial_tokens,
                created_at=now,
                updated_at=now
            )
            transaction.create(collections.USER_TOKENS, user_id, account.to_document())
            logger.info(f"Created token account for user {user_id} with {initial_tokens} tokens")
            return account.model_copy(update={"id": user_id})

        return await store.run_transaction(_ensure)

    @staticmethod
    async def debit(store: DocumentStore, user_id: str, amount: int) -> bool:
        """
        Atomically debit tokens from user balance.
        The decrement only happens if the resulting balance stays >= 0.

        Args:
            store: Document store
            user_id: Firebase uid
            amount: Tokens to debit

        Returns:
            True if debit successful, False if insufficient tokens

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError("Cannot debit negative amount")
        if amount == 0:
            return True

        async def _debit(transaction: Transaction) -> bool:
            data = await transaction.get(collections.USER_TOKENS, user_id)
            if data is None:
                return False
            account = UserTokenData.from_document(user_id, data)
            if account.tokens < amount:
                return False
            transaction.update(collections.USER_TOKENS, user_id, {
                "tokens": account.tokens - amount,
                "updatedAt": utcnow(),
            })
            return True

        debited = await store.run_transaction(_debit)
        if not debited:
            logger.warning(f"Debit of {amount} tokens refused for user {user_id}: insufficient balance")
        return debited

    @staticmethod
    async def credit(store: DocumentStore, user_id: str, amount: int) -> None:
        """
        Credit (add) tokens to user balance.
        Creates the token document if the user has none yet.

        Args:
            store: Document store
            user_id: Firebase uid
            amount: Tokens to add (must be positive)

        Raises:
            ValueError: If amount is negative or zero
        """
        if amount <= 0:
            raise ValueError("Credit amount must be positive")

        await store.increment(
            collections.USER_TOKENS,
            user_id,
            "tokens",
            amount,
            extra={"userId": user_id, "updatedAt": utcnow()}
        )
        logger.info(f"Credited {amount} tokens to user {user_id}")

    @staticmethod
    async def set_balance(store: DocumentStore, user_id: str, tokens: int) -> None:
        """
        Overwrite a user's balance. Admin-only operation.

        Raises:
            ValueError: If tokens is negative
        """
        if tokens < 0:
            raise ValueError("Token balance cannot be negative")

        now = utcnow()
        await store.set(
            collections.USER_TOKENS,
            user_id,
            {"userId": user_id, "tokens": tokens, "updatedAt": now},
            merge=True
        )
        logger.info(f"Token balance of user {user_id} set to {tokens}")
