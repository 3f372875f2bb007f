"""
Visitor presence tracking for the admin dashboard.

The web app pings on every page view with a per-browser session id. A
visitor counts as active while their last ping is within ACTIVE_WINDOW.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from app.db.base import DocumentStore
from app.models.base import utcnow
from app.repositories.visitor_repository import VisitorRepository

logger = logging.getLogger(__name__)

ACTIVE_WINDOW = timedelta(minutes=5)


@dataclass
class VisitorStats:
    active: int
    today: int
    total: int


class VisitorService:
    """Record page views and count visitors."""

    @staticmethod
    async def track(
        store: DocumentStore,
        session_id: str,
        page: str,
        user_id: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
        referrer: Optional[str] = None,
        now: Optional[datetime] = None
    ) -> None:
        """
        Upsert visitors/{session_id}.

        createdAt is written on the first ping of a session only; later
        pings refresh page, lastSeenAt and the request details.
        """
        now = now or utcnow()
        fields = {
            "sessionId": session_id,
            "page": page,
            "userId": user_id,
            "ipAddress": ip_address,
            "userAgent": user_agent,
            "referrer": referrer,
            "isActive": True,
            "lastSeenAt": now,
        }
        existing = await VisitorRepository.get(store, session_id)
        if existing is None or existing.created_at is None:
            fields["createdAt"] = now
        await VisitorRepository.merge(store, session_id, fields)

    @staticmethod
    async def stats(store: DocumentStore, now: Optional[datetime] = None) -> VisitorStats:
        """
        Active, today's and total visitor counts.

        "Today" starts at midnight UTC.
        """
        now = now or utcnow()
        active_since = now - ACTIVE_WINDOW
        day_start = now.replace(hour=0, minute=0, second=0, microsecond=0)

        visitors = await VisitorRepository.list_all(store)
        active = sum(
            1 for v in visitors
            if v.is_active and v.last_seen_at is not None and v.last_seen_at >= active_since
        )
        today = sum(1 for v in visitors if v.created_at is not None and v.created_at >= day_start)
        return VisitorStats(active=active, today=today, total=len(visitors))
