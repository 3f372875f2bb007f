"""
Admin dashboard analytics computed from store documents.
"""
import logging
from collections import Counter
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from app.db import collections
from app.db.base import DocumentStore
from app.models.base import utcnow
from app.models.generation import Generation
from app.models.topup import TopupStatus
from app.repositories.generation_repository import GenerationRepository
from app.repositories.style_repository import StyleRepository
from app.repositories.topup_repository import TopupRepository

logger = logging.getLogger(__name__)

PERIOD_DAYS: Dict[str, Optional[int]] = {
    "7days": 7,
    "30days": 30,
    "90days": 90,
    "all": None,
}


class AnalyticsService:
    """Dashboard aggregates."""

    @staticmethod
    async def totals(store: DocumentStore) -> Dict[str, int]:
        """Catalog, usage and revenue totals."""
        styles = await StyleRepository.list_all(store)
        settled = await TopupRepository.list_transactions(store, status=TopupStatus.SETTLEMENT.value)
        return {
            "styles": len(styles),
            "activeStyles": sum(1 for s in styles if s.is_active),
            "generations": await store.count(collections.GENERATIONS),
            "users": await store.count(collections.USER_TOKENS),
            "anonymousUsers": await store.count(collections.ANONYMOUS_USERS),
            "settledTransactions": len(settled),
            "revenue": sum(t.price for t in settled),
        }

    @staticmethod
    def generations_per_day(
        generations: List[Generation],
        period: str = "7days",
        today: Optional[date] = None
    ) -> List[Dict[str, object]]:
        """
        Bucket generations by UTC calendar day.

        Bounded periods list every day (zero-filled) ending today; `all`
        lists only days that have generations.

        Raises:
            ValueError: Unknown period
        """
        if period not in PERIOD_DAYS:
            raise ValueError(f"Unknown period: {period}")
        days = PERIOD_DAYS[period]
        today = today or utcnow().date()

        counts = Counter(
            _utc_date(g.created_at).isoformat() for g in generations if g.created_at
        )
        if days is None:
            return [{"date": day, "count": counts[day]} for day in sorted(counts)]

        start = today - timedelta(days=days - 1)
        buckets = []
        for offset in range(days):
            day = (start + timedelta(days=offset)).isoformat()
            buckets.append({"date": day, "count": counts[day]})
        return buckets

    @staticmethod
    def popular_styles(generations: List[Generation], limit: int = 5) -> List[Dict[str, object]]:
        usage = Counter(g.style_name for g in generations if g.style_name)
        return [{"styleName": name, "count": count} for name, count in usage.most_common(limit)]

    @staticmethod
    async def dashboard(
        store: DocumentStore,
        period: str = "7days",
        recent_limit: int = 10,
        clock: Callable[[], datetime] = utcnow
    ) -> Dict[str, object]:
        """Everything the admin dashboard shows, in one payload."""
        generations = await GenerationRepository.list_all(store)
        return {
            "totals": await AnalyticsService.totals(store),
            "period": period,
            "generationsPerDay": AnalyticsService.generations_per_day(
                generations, period, today=clock().date()
            ),
            "popularStyles": AnalyticsService.popular_styles(generations),
            "recentGenerations": [
                g.model_dump(by_alias=True, mode="json") for g in generations[:recent_limit]
            ],
        }


def _utc_date(value: datetime) -> date:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.date()
