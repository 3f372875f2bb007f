"""
Quota/balance guard for generation requests.

Authenticated users pay tokenCostPerGenerate tokens per generation.
Anonymous visitors get maxAnonymousGenerations free generations per UTC
calendar day, counted in anonymousUsers/{anonymousId}.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from app.db import collections
from app.db.base import DocumentStore, Transaction
from app.exceptions import InsufficientBalance, QuotaExceeded
from app.models.base import utcnow
from app.models.settings import TokenSettings
from app.models.tokens import AnonymousUsageRecord
from app.services.token_service import TokenService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Identity:
    """Who is generating: a Firebase uid or an anonymous fingerprint."""
    user_id: Optional[str] = None
    anonymous_id: Optional[str] = None

    def __post_init__(self):
        if not self.user_id and not self.anonymous_id:
            raise ValueError("Identity needs a user_id or an anonymous_id")

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)


class QuotaGuard:
    """
    Decides whether a generation may proceed and records anonymous usage.

    The clock is injectable so tests can simulate a date rollover.
    """

    def __init__(self, store: DocumentStore, clock: Callable[[], datetime] = utcnow):
        self.store = store
        self.clock = clock

    def today(self) -> str:
        """Current UTC calendar day as YYYY-MM-DD."""
        return self.clock().strftime("%Y-%m-%d")

    async def get_anonymous_count(self, anonymous_id: str) -> int:
        data = await self.store.get(collections.ANONYMOUS_USERS, anonymous_id)
        if data is None:
            return 0
        return AnonymousUsageRecord.from_document(anonymous_id, data).count_for(self.today())

    async def remaining_anonymous(self, anonymous_id: str, max_generations: int) -> int:
        count = await self.get_anonymous_count(anonymous_id)
        return max(0, max_generations - count)

    async def check(self, identity: Identity, token_settings: TokenSettings) -> None:
        """
        Allow or refuse a generation request.

        Args:
            identity: Requesting user or anonymous visitor
            token_settings: Current pricing (cost and anonymous maximum)

        Raises:
            InsufficientBalance: Authenticated balance below the cost
            QuotaExceeded: Anonymous visitor used up today's generations
        """
        if identity.is_authenticated:
            cost = token_settings.token_cost_per_generate
            balance = await TokenService.get_balance(self.store, identity.user_id)
            if balance < cost:
                logger.info(f"User {identity.user_id} blocked: balance {balance} < cost {cost}")
                raise InsufficientBalance(balance=balance, cost=cost)
            return

        limit = token_settings.max_anonymous_generations
        count = await self.get_anonymous_count(identity.anonymous_id)
        if count >= limit:
            logger.info(f"Anonymous {identity.anonymous_id} blocked: {count}/{limit} today")
            raise QuotaExceeded(anonymous_id=identity.anonymous_id, used=count, limit=limit)

    async def record_anonymous_generation(self, anonymous_id: str) -> int:
        """
        Count one generation for an anonymous visitor.

        Same day increments, a new day restarts at 1, a new visitor starts at 1.

        Returns:
            The visitor's count for today after recording
        """
        today = self.today()
        now = self.clock()

        async def _record(transaction: Transaction) -> int:
            data = await transaction.get(collections.ANONYMOUS_USERS, anonymous_id)
            if data is None:
                record = AnonymousUsageRecord(
                    anonymous_id=anonymous_id,
                    today_generation_count=1,
                    last_generated_date=today,
                    first_seen_at=now,
                    last_generated_at=now,
                )
                transaction.set(collections.ANONYMOUS_USERS, anonymous_id, record.to_document())
                return 1

            count = AnonymousUsageRecord.from_document(anonymous_id, data).count_for(today) + 1
            transaction.update(collections.ANONYMOUS_USERS, anonymous_id, {
                "todayGenerationCount": count,
                "lastGeneratedDate": today,
                "lastGeneratedAt": now,
            })
            return count

        return await self.store.run_transaction(_record)
