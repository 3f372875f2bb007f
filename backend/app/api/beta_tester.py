"""
Beta tester registration for signed-in users.
"""
from fastapi import APIRouter, Depends, HTTPException, status

from app.auth.dependencies import CurrentUser, get_current_user
from app.database import get_store
from app.db.base import DocumentStore
from app.schemas.engagement import BetaCheckResponse, BetaRegisterResponse
from app.services.beta_tester_service import BetaTesterService
from app.services.settings_service import SettingsService
from app.services.token_service import TokenService

router = APIRouter()


@router.get("/check", response_model=BetaCheckResponse)
async def check_beta_tester(
    store: DocumentStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    beta = await SettingsService.get_beta_tester_settings(store)
    registered = await BetaTesterService.is_registered(store, current_user.uid)
    return BetaCheckResponse(
        is_registered=registered,
        is_beta_tester=registered and beta.registration_enabled,
        registration_enabled=beta.registration_enabled
    )


@router.post("/register", response_model=BetaRegisterResponse)
async def register_beta_tester(
    store: DocumentStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    """
    Join the beta program and receive its free tokens.

    403 while registration is closed, 409 for a second registration.
    """
    try:
        tester = await BetaTesterService.register(store, current_user.uid, current_user.email)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return BetaRegisterResponse(
        free_tokens_received=tester.free_tokens_received,
        tokens=await TokenService.get_balance(store, current_user.uid)
    )
