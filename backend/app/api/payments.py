"""
Top-up API endpoints.
Handles plan listing, Midtrans Snap checkout creation and payment completion.
"""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.deps import get_payment_gateway
from app.auth.dependencies import CurrentUser, get_current_user
from app.database import get_store
from app.db.base import DocumentStore
from app.models.topup import TopupPlan, TopupTransaction
from app.repositories.topup_repository import TopupRepository
from app.schemas.base import ApiModel
from app.schemas.topup import (
    CompleteTopupRequest,
    CreateTopupRequest,
    CreateTopupResponse,
    TopupStatusResponse,
)
from app.services.midtrans_service import MidtransClient
from app.services.settings_service import SettingsService
from app.services.topup_service import TopupService

router = APIRouter()
logger = logging.getLogger(__name__)


class GatewayConfigResponse(ApiModel):
    """Public part of the gateway config, for loading Snap in the browser."""
    client_key: str
    is_production: bool
    snap_url: str


@router.get("/topups/plans", response_model=List[TopupPlan])
async def list_plans(store: DocumentStore = Depends(get_store)):
    """Purchasable diamond packages ordered for display."""
    return await TopupService.get_plans(store)


@router.get("/topups/history", response_model=List[TopupTransaction])
async def topup_history(
    store: DocumentStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    """The caller's top-up transactions, newest first."""
    return await TopupRepository.list_transactions(store, user_id=current_user.uid)


@router.get("/midtrans/config", response_model=GatewayConfigResponse)
async def gateway_config(store: DocumentStore = Depends(get_store)):
    config = await SettingsService.get_midtrans_config(store)
    if config is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment gateway not configured"
        )
    gateway = MidtransClient(config)
    return GatewayConfigResponse(
        client_key=config.client_key,
        is_production=config.is_production,
        snap_url=f"{gateway.snap_base_url}/snap/snap.js"
    )


@router.post("/midtrans/create", response_model=CreateTopupResponse)
async def create_topup(
    request: CreateTopupRequest,
    store: DocumentStore = Depends(get_store),
    gateway: MidtransClient = Depends(get_payment_gateway),
    current_user: CurrentUser = Depends(get_current_user)
):
    """
    Start a diamond purchase.

    Saves a pending transaction and returns the Snap token the browser uses
    to open the payment popup.

    Requires valid Firebase JWT token.
    """
    transaction, snap = await TopupService.create_topup(
        store,
        gateway,
        user_id=current_user.uid,
        user_email=current_user.email,
        plan_id=request.package_id
    )
    return CreateTopupResponse(
        token=snap["token"],
        redirect_url=snap.get("redirect_url"),
        order_id=transaction.order_id,
        transaction_id=transaction.id
    )


@router.post("/midtrans/complete", response_model=TopupStatusResponse)
async def complete_topup(
    request: CompleteTopupRequest,
    store: DocumentStore = Depends(get_store),
    gateway: MidtransClient = Depends(get_payment_gateway),
    current_user: CurrentUser = Depends(get_current_user)
):
    """
    Called by the browser when Snap reports success.

    The payment is confirmed with the gateway before anything is credited.
    """
    outcome = await TopupService.confirm_with_gateway(
        store,
        gateway,
        request.order_id,
        user_id=current_user.uid
    )
    return TopupStatusResponse(order_id=outcome.order_id, status=outcome.status, credited=outcome.credited)
