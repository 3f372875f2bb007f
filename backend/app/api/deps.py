"""
FastAPI dependencies for external collaborators.
Tests override these to swap in fakes.
"""
from fastapi import Depends, HTTPException, Request, status

from app.ai.base import ImageGenerationProvider
from app.ai.factory import get_image_provider
from app.database import get_store
from app.db.base import DocumentStore
from app.services.midtrans_service import MidtransClient
from app.services.rehost_service import ImageRehoster
from app.services.settings_service import SettingsService
from app.storage.image_host import ImageHost
from app.utils.urls import HostResolver, resolve_host


def get_image_host(request: Request) -> ImageHost:
    return request.app.state.image_host


async def get_provider(store: DocumentStore = Depends(get_store)) -> ImageGenerationProvider:
    return await get_image_provider(store)


async def get_rehoster(
    image_host: ImageHost = Depends(get_image_host),
    store: DocumentStore = Depends(get_store)
) -> ImageRehoster:
    general = await SettingsService.get_general_settings(store)
    return ImageRehoster(image_host, watermark=general.watermark_enabled)


def get_host_resolver() -> HostResolver:
    return resolve_host


async def get_payment_gateway(store: DocumentStore = Depends(get_store)) -> MidtransClient:
    """
    Raises:
        HTTPException 503: Midtrans keys not configured
    """
    config = await SettingsService.get_midtrans_config(store)
    if config is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Payment gateway not configured"
        )
    return MidtransClient(config)
