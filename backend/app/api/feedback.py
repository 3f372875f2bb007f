"""
Feedback submission from signed-in users.
"""
import logging
from typing import List, Optional

from botocore.exceptions import ClientError
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status

from app.api.deps import get_image_host
from app.auth.dependencies import CurrentUser, get_current_user
from app.database import get_store
from app.db.base import DocumentStore
from app.models.feedback import Feedback, FeedbackCategory
from app.services.feedback_service import FeedbackService
from app.storage.image_host import ImageHost

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/submit", response_model=Feedback, status_code=status.HTTP_201_CREATED)
async def submit_feedback(
    feedback: str = Form(...),
    category: FeedbackCategory = Form(FeedbackCategory.GENERAL),
    screenshot: Optional[UploadFile] = File(None),
    store: DocumentStore = Depends(get_store),
    image_host: ImageHost = Depends(get_image_host),
    current_user: CurrentUser = Depends(get_current_user)
):
    """
    Submit feedback.

    Form fields: feedback, category (general | bug | feature | beta-testing),
    screenshot (optional image, at most 5MB).
    """
    data = await screenshot.read() if screenshot is not None else None
    try:
        return await FeedbackService.submit(
            store,
            image_host,
            current_user.uid,
            current_user.email,
            feedback,
            category=category,
            screenshot=data,
            screenshot_type=screenshot.content_type if screenshot is not None else None
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except RuntimeError as e:
        logger.error(f"Screenshot upload failed: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
    except ClientError as e:
        logger.error(f"Image host rejected screenshot: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Image host rejected the upload")


@router.get("/mine", response_model=List[Feedback])
async def list_my_feedback(
    store: DocumentStore = Depends(get_store),
    current_user: CurrentUser = Depends(get_current_user)
):
    return await FeedbackService.list_feedback(store, user_id=current_user.uid)
