"""
Pydantic schemas for API request/response validation.
"""
from app.schemas.base import ApiModel
from app.schemas.engagement import (
    BetaCheckResponse,
    BetaRegisterResponse,
    FeedbackUpdateRequest,
    UnreadCountResponse,
    VisitorStatsResponse,
    VisitorTrackRequest,
    VisitorTrackResponse,
)
from app.schemas.generation import GenerateResponse, QuotaResponse, SaveGeneratedRequest, UploadResponse
from app.schemas.style import (
    BulkStatusRequest,
    BulkStatusResponse,
    DeleteAllResponse,
    ImportResponse,
    StyleCreate,
    StyleUpdate,
)
from app.schemas.topup import (
    CompleteTopupRequest,
    CreateTopupRequest,
    CreateTopupResponse,
    TopupStatusResponse,
)

__all__ = [
    "ApiModel",
    "GenerateResponse",
    "QuotaResponse",
    "SaveGeneratedRequest",
    "UploadResponse",
    "BulkStatusRequest",
    "BulkStatusResponse",
    "DeleteAllResponse",
    "ImportResponse",
    "StyleCreate",
    "StyleUpdate",
    "CompleteTopupRequest",
    "CreateTopupRequest",
    "CreateTopupResponse",
    "TopupStatusResponse",
    "BetaCheckResponse",
    "BetaRegisterResponse",
    "FeedbackUpdateRequest",
    "UnreadCountResponse",
    "VisitorStatsResponse",
    "VisitorTrackRequest",
    "VisitorTrackResponse",
]
