"""
Page view tracking for the admin "visitors online" counter.
"""
import logging

from fastapi import APIRouter, Depends, Request
from google.api_core.exceptions import GoogleAPICallError

from app.database import get_store
from app.db.base import DocumentStore
from app.schemas.engagement import VisitorTrackRequest, VisitorTrackResponse
from app.services.visitor_service import VisitorService

router = APIRouter()
logger = logging.getLogger(__name__)


def client_ip(request: Request) -> str:
    """First x-forwarded-for hop, else x-real-ip."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.headers.get("x-real-ip") or "unknown"


@router.post("/track", response_model=VisitorTrackResponse, response_model_exclude_none=True)
async def track_visitor(
    body: VisitorTrackRequest,
    request: Request,
    store: DocumentStore = Depends(get_store)
):
    """
    Record a page view. No auth required.

    Tracking never breaks the page: store errors are logged and answered
    with ok and a warning.
    """
    try:
        await VisitorService.track(
            store,
            session_id=body.session_id,
            page=body.page,
            user_id=body.user_id,
            ip_address=client_ip(request),
            user_agent=request.headers.get("user-agent") or "unknown",
            referrer=request.headers.get("referer"),
        )
    except GoogleAPICallError as e:
        logger.warning(f"Visitor tracking failed for session {body.session_id}: {e}")
        return VisitorTrackResponse(warning="Visitor tracking unavailable")
    return VisitorTrackResponse()
