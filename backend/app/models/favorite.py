"""
Favorite styles of a user.

One document per (user, style) pair at favorites/{userId}_{styleId}. The
style is copied into the favorite so the list still renders after the
style is edited or removed from the catalog.
"""
from datetime import datetime
from typing import Optional

from app.models.base import DocumentModel
from app.models.style import Style


def favorite_id(user_id: str, style_id: str) -> str:
    return f"{user_id}_{style_id}"


class Favorite(DocumentModel):
    """Favorite document in the `favorites` collection."""

    user_id: str
    style_id: str
    style: Style
    created_at: Optional[datetime] = None
