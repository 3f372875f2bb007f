"""
Favorite styles of the signed-in user.
"""
from typing import List

from fastapi import APIRouter, Depends

from app.auth.dependencies import CurrentUser, get_current_user
from app.database import get_store
from app.db.base import DocumentStore
from app.models.favorite import Favorite
from app.schemas.base import ApiModel
from app.services.favorite_service import FavoriteService

router = APIRouter()


class FavoriteStatusResponse(ApiModel):
    style_id: str
    is_favorite: bool


class RemovedResponse(ApiModel):
    ok: bool = True


@router.get("", response_model=List[Favorite])
async def list_favorites(
    store: DocumentStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Favorites of the caller, newest first, each with a copy of its style."""
    return await FavoriteService.list_favorites(store, current_user.uid)


@router.get("/ids", response_model=List[str])
async def list_favorite_ids(
    store: DocumentStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    return await FavoriteService.favorite_style_ids(store, current_user.uid)


@router.get("/{style_id}", response_model=FavoriteStatusResponse)
async def get_favorite_status(
    style_id: str,
    store: DocumentStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    is_favorite = await FavoriteService.is_favorite(store, current_user.uid, style_id)
    return FavoriteStatusResponse(style_id=style_id, is_favorite=is_favorite)


@router.put("/{style_id}", response_model=Favorite)
async def add_favorite(
    style_id: str,
    store: DocumentStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    """Favorite a style (404 if it does not exist). Repeating the call is harmless."""
    return await FavoriteService.add_favorite(store, current_user.uid, style_id)


@router.delete("/{style_id}", response_model=RemovedResponse)
async def remove_favorite(
    style_id: str,
    store: DocumentStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    await FavoriteService.remove_favorite(store, current_user.uid, style_id)
    return RemovedResponse()
