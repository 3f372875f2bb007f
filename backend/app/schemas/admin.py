"""
Pydantic schemas for admin endpoints.
"""
from typing import Optional

from pydantic import Field

from app.schemas.base import ApiModel


class TokenAddRequest(ApiModel):
    amount: int = Field(..., gt=0)


class TokenSetRequest(ApiModel):
    tokens: int = Field(..., ge=0)


class UserTokensResponse(ApiModel):
    user_id: str
    tokens: int


class ApiKeyRequest(ApiModel):
    api_key: str = Field(..., min_length=1)


class ApiKeyTestRequest(ApiModel):
    api_key: Optional[str] = Field(None, description="Key to test; the saved key when omitted")


class ApiKeyStatusResponse(ApiModel):
    configured: bool
    source: Optional[str] = None


class ConnectionTestResponse(ApiModel):
    ok: bool
    message: str


class PurgeResponse(ApiModel):
    ok: bool = True
    generations_deleted: int
    images_deleted: int
    images_failed: int


class DeleteGenerationResponse(ApiModel):
    ok: bool = True
    images_deleted: int = 0
