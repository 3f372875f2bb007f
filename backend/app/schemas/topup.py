"""
Pydantic schemas for top-up and payment endpoints.
"""
from typing import Optional

from pydantic import Field

from app.schemas.base import ApiModel


class CreateTopupRequest(ApiModel):
    package_id: str = Field(..., min_length=1, description="Top-up plan id")


class CreateTopupResponse(ApiModel):
    ok: bool = True
    token: str
    redirect_url: Optional[str] = None
    order_id: str
    transaction_id: str


class CompleteTopupRequest(ApiModel):
    order_id: str = Field(..., min_length=1)


class TopupStatusResponse(ApiModel):
    ok: bool = True
    order_id: str
    status: Optional[str] = None
    credited: bool = False
