"""
Webhook endpoints for external services.
Handles Midtrans payment notifications for diamond top-ups.
"""
import json
import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from app.api.deps import get_payment_gateway
from app.database import get_store
from app.db.base import DocumentStore
from app.services.midtrans_service import MidtransClient
from app.services.topup_service import TopupService

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/midtrans/callback")
async def midtrans_callback_ping():
    """Reachability check used when registering the notification URL."""
    return {"ok": True, "message": "Midtrans callback endpoint is active"}


@router.post("/midtrans/callback")
async def midtrans_callback(
    request: Request,
    store: DocumentStore = Depends(get_store),
    gateway: MidtransClient = Depends(get_payment_gateway),
    midtrans_signature: str = Header(None, alias="x-midtrans-signature")
):
    """
    Midtrans HTTP notification endpoint.

    Security:
    - signature_key (body) or x-midtrans-signature (header) is verified
      against our server key; unsigned notifications are re-checked with
      the gateway
    - Settlement is idempotent, so redelivered notifications are safe

    Unknown orders answer 200 with ok=false so Midtrans stops retrying.
    """
    body = await request.body()
    try:
        notification = json.loads(body)
    except json.JSONDecodeError as e:
        logger.error(f"Invalid notification payload: {e}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid payload: {str(e)}"
        )
    if not isinstance(notification, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload")

    if midtrans_signature and not notification.get("signature_key"):
        notification["signature_key"] = midtrans_signature

    try:
        outcome = await TopupService.handle_notification(store, gateway, notification)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if not outcome.found:
        return {"ok": False, "error": "Transaction not found", "orderId": outcome.order_id}
    return {
        "ok": True,
        "orderId": outcome.order_id,
        "status": outcome.status,
        "credited": outcome.credited,
    }
