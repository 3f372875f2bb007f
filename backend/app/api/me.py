"""
Endpoints for the signed-in user: balance and generation history.
"""
from typing import List

from fastapi import APIRouter, Depends

from app.auth.dependencies import CurrentUser, get_current_user
from app.database import get_store
from app.db.base import DocumentStore
from app.models.generation import Generation
from app.schemas.base import ApiModel
from app.services.history_service import GenerationHistoryService
from app.services.token_service import TokenService

router = APIRouter()


class TokensResponse(ApiModel):
    """Response schema for tokens endpoint."""
    tokens: int
    user_id: str


class DeletedResponse(ApiModel):
    ok: bool = True


@router.get("/tokens", response_model=TokensResponse)
async def get_tokens(
    store: DocumentStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    """
    Get current token balance for authenticated user.
    Requires valid Firebase JWT token.
    """
    balance = await TokenService.get_balance(store, current_user.uid)
    return TokensResponse(tokens=balance, user_id=current_user.uid)


@router.get("/generations", response_model=List[Generation])
async def list_my_generations(
    store: DocumentStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Generation history of the caller, newest first."""
    return await GenerationHistoryService.list_generations(store, user_id=current_user.uid)


@router.delete("/generations/{generation_id}", response_model=DeletedResponse)
async def delete_my_generation(
    generation_id: str,
    store: DocumentStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Delete one of the caller's generations (403 if it belongs to someone else)."""
    await GenerationHistoryService.delete_own(store, current_user.uid, generation_id)
    return DeletedResponse()
