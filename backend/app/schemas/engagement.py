"""
Pydantic schemas for feedback, visitor tracking and the beta tester program.
"""
from typing import Optional

from pydantic import Field

from app.models.feedback import FeedbackStatus
from app.schemas.base import ApiModel


class VisitorTrackRequest(ApiModel):
    session_id: str = Field(..., min_length=1)
    page: str = Field(..., min_length=1)
    user_id: Optional[str] = None


class VisitorTrackResponse(ApiModel):
    ok: bool = True
    warning: Optional[str] = None


class VisitorStatsResponse(ApiModel):
    active: int
    today: int
    total: int


class FeedbackUpdateRequest(ApiModel):
    status: Optional[FeedbackStatus] = None
    admin_notes: Optional[str] = None


class UnreadCountResponse(ApiModel):
    unread: int


class BetaCheckResponse(ApiModel):
    is_registered: bool
    is_beta_tester: bool
    registration_enabled: bool


class BetaRegisterResponse(ApiModel):
    ok: bool = True
    free_tokens_received: int
    tokens: int
