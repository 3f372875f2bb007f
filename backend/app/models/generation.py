"""
Generation history record.
Append-only; one per successful generation.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.models.base import DocumentModel


class GeoLocation(BaseModel):
    """Best-effort requester location."""
    country: Optional[str] = None
    city: Optional[str] = None
    ip: Optional[str] = None


class Generation(DocumentModel):
    """Generation document in the `generations` collection."""

    user_id: Optional[str] = None  # None for anonymous generations
    anonymous_id: Optional[str] = None
    style_id: str
    style_name: str
    original_image_url: str = ""
    generated_image_urls: List[str] = Field(default_factory=list)
    location: Optional[GeoLocation] = None
    created_at: Optional[datetime] = None
