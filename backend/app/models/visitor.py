"""
Site visitor presence record, one per browser session (visitors/{sessionId}).
"""
from datetime import datetime
from typing import Optional

from app.models.base import DocumentModel


class Visitor(DocumentModel):
    """Visitor document in the `visitors` collection."""

    session_id: str
    page: str
    user_id: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    referrer: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None
