"""
Style catalog record.
A style carries the default prompt the generation pipeline sends to the AI.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import Field

from app.models.base import DocumentModel


class StyleStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class Style(DocumentModel):
    """Style document in the `styles` collection."""

    name: str
    prompt: str
    image_url: str = ""
    status: StyleStatus = StyleStatus.ACTIVE
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return self.status == StyleStatus.ACTIVE.value
