"""
Pydantic schemas for style endpoints.
"""
from typing import List, Optional

from pydantic import Field

from app.models.style import StyleStatus
from app.schemas.base import ApiModel


class StyleCreate(ApiModel):
    name: str = Field(..., min_length=1)
    prompt: str = Field(..., min_length=1)
    image_url: str = ""
    status: StyleStatus = StyleStatus.ACTIVE
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)


class StyleUpdate(ApiModel):
    """Partial update; omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1)
    prompt: Optional[str] = Field(None, min_length=1)
    image_url: Optional[str] = None
    status: Optional[StyleStatus] = None
    category: Optional[str] = None
    tags: Optional[List[str]] = None


class BulkStatusRequest(ApiModel):
    status: StyleStatus
    category: Optional[str] = Field(None, description="Only styles in this category; all when omitted")


class BulkStatusResponse(ApiModel):
    updated: int


class ImportResponse(ApiModel):
    created: int
    skipped: int


class DeleteAllResponse(ApiModel):
    deleted: int
