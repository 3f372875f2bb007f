"""
Token balance and anonymous usage records.

UserTokenData lives at userTokens/{userId}; AnonymousUsageRecord at
anonymousUsers/{anonymousId}. Both are mutated only through atomic
increments or transactions in the services layer.
"""
from datetime import datetime
from typing import Optional

from pydantic import Field

from app.models.base import DocumentModel


class UserTokenData(DocumentModel):
    """Token balance of an authenticated user."""

    user_id: Optional[str] = None
    tokens: int = Field(0, ge=0)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AnonymousUsageRecord(DocumentModel):
    """
    Daily free-generation counter keyed by a browser fingerprint.

    last_generated_date is a UTC calendar day ("YYYY-MM-DD"); the count only
    applies while it equals today.
    """

    anonymous_id: Optional[str] = None
    today_generation_count: int = Field(0, ge=0)
    last_generated_date: Optional[str] = None
    first_seen_at: Optional[datetime] = None
    last_generated_at: Optional[datetime] = None

    def count_for(self, today: str) -> int:
        """Generations used on `today` (0 once the stored day has passed)."""
        if self.last_generated_date != today:
            return 0
        return self.today_generation_count
