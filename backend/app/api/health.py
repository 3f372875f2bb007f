"""
Health check endpoint.
Verifies document store connectivity and reports image host configuration.
"""
from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_image_host
from app.config import settings
from app.database import get_store
from app.db import collections
from app.db.base import DocumentStore
from app.storage.image_host import ImageHost

router = APIRouter()


@router.get("")
async def health_check(
    store: DocumentStore = Depends(get_store),
    image_host: ImageHost = Depends(get_image_host)
):
    """
    Health check endpoint.
    Returns status of the document store and the image host.
    """
    health_status = {
        "status": "healthy",
        "store": "unknown",
        "storeBackend": settings.store_backend,
        "imageHost": "configured" if image_host.is_configured else "not configured",
    }

    # Check store with a single document read
    try:
        await store.get(collections.SETTINGS, "general")
        health_status["store"] = "connected"
    except Exception as e:
        health_status["store"] = f"error: {str(e)}"
        health_status["status"] = "unhealthy"

    if health_status["status"] == "unhealthy":
        raise HTTPException(status_code=503, detail=health_status)

    return health_status
