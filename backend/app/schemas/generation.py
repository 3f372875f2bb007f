"""
Pydantic schemas for generation, quota and upload endpoints.
"""
from typing import List, Optional

from pydantic import Field

from app.schemas.base import ApiModel


class GenerateResponse(ApiModel):
    """Result of POST /api/ai/generate."""
    ok: bool = True
    images: List[str]
    original_image_url: str = ""
    failed_count: int = 0
    partial: bool = False
    generation_id: Optional[str] = None
    tokens_remaining: Optional[int] = None
    anonymous_remaining: Optional[int] = None


class QuotaResponse(ApiModel):
    """What the caller can still generate."""
    authenticated: bool
    cost: int
    tokens: Optional[int] = None
    can_generate: bool
    anonymous_used: Optional[int] = None
    anonymous_limit: Optional[int] = None
    anonymous_remaining: Optional[int] = None


class UploadResponse(ApiModel):
    ok: bool = True
    url: str


class SaveGeneratedRequest(ApiModel):
    """Body of POST /api/image/save-generated."""
    image_url: str = Field(..., min_length=1, description="Provider result URL to re-host")
    user_id: Optional[str] = Field(None, description="Owner folder; anonymous when omitted")
    index: int = Field(0, ge=0, description="Position of the image in its result set")
