"""
Public style catalog endpoints.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from app.database import get_store
from app.db.base import DocumentStore
from app.models.style import Style
from app.services.style_service import TRENDING_LIMIT, StyleService

router = APIRouter()


@router.get("", response_model=List[Style])
async def list_styles(
    q: Optional[str] = Query(None, description="Case-insensitive name search"),
    store: DocumentStore = Depends(get_store)
):
    """Active styles, newest first."""
    if q:
        return await StyleService.search_by_name(store, q, active_only=True)
    return await StyleService.list_styles(store, active_only=True)


@router.get("/trending", response_model=List[Style])
async def trending_styles(
    limit: int = Query(TRENDING_LIMIT, ge=1, le=50),
    store: DocumentStore = Depends(get_store)
):
    """Most used active styles."""
    return await StyleService.trending(store, limit=limit)
