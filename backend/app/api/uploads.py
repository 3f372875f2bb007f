"""
Image upload endpoints.

POST /upload stores an original, generated or style image on our image host.
POST /image/save-generated re-hosts a provider result URL server-side.
"""
import logging
from typing import Optional

from botocore.exceptions import ClientError
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from app.api.deps import get_host_resolver, get_image_host, get_rehoster
from app.schemas.generation import SaveGeneratedRequest, UploadResponse
from app.services.rehost_service import ImageRehoster
from app.storage.image_host import UPLOAD_KINDS, ImageHost
from app.utils.images import is_image
from app.utils.urls import HostResolver, UnsafeUrl, ensure_public_url

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/upload", response_model=UploadResponse)
async def upload_image(
    file: UploadFile = File(...),
    user_id: Optional[str] = Form(None, alias="userId"),
    kind: str = Form("original", alias="type"),
    image_host: ImageHost = Depends(get_image_host)
):
    """
    Upload an image file.

    Form fields: file, userId (optional), type (original | generated | style).
    """
    if kind not in UPLOAD_KINDS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid type: {kind}. Must be one of: {', '.join(UPLOAD_KINDS)}"
        )

    data = await file.read()
    if not data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No file uploaded")
    if not is_image(data, file.content_type):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="File must be an image")

    try:
        url = await image_host.upload(data, kind=kind, owner=user_id, content_type=file.content_type)
    except RuntimeError as e:
        logger.error(f"Upload failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except ClientError as e:
        logger.error(f"Image host rejected upload: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Image host rejected the upload")

    return UploadResponse(url=url)


@router.post("/image/save-generated", response_model=UploadResponse)
async def save_generated_image(
    request: SaveGeneratedRequest,
    rehoster: ImageRehoster = Depends(get_rehoster),
    resolver: HostResolver = Depends(get_host_resolver)
):
    """
    Download a generated image and store it under generated/{userId}/.

    Only public http(s) hosts are fetched; anything else is a 400.
    """
    try:
        await ensure_public_url(request.image_url, resolver)
    except UnsafeUrl as e:
        logger.warning(f"Rejected save-generated URL {request.image_url}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    try:
        url = await rehoster.save_primary(request.image_url, request.index, request.user_id)
    except Exception as e:
        logger.error(f"Failed to save generated image {request.image_url}: {e}")
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=f"Failed to save image: {str(e)}"
        )
    return UploadResponse(url=url)
