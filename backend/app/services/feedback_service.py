"""
User feedback with optional screenshot, and the admin inbox over it.
"""
import logging
import time
from typing import List, Optional

from app.db.base import DocumentStore
from app.exceptions import FeedbackNotFound
from app.models.base import utcnow
from app.models.feedback import Feedback, FeedbackCategory, FeedbackStatus
from app.repositories.feedback_repository import FeedbackRepository
from app.services.beta_tester_service import BetaTesterService
from app.storage.image_host import ImageHost
from app.utils.images import is_image

logger = logging.getLogger(__name__)

MAX_SCREENSHOT_BYTES = 5 * 1024 * 1024


class FeedbackService:

    @staticmethod
    async def submit(
        store: DocumentStore,
        image_host: ImageHost,
        user_id: str,
        email: Optional[str],
        text: str,
        category: FeedbackCategory = FeedbackCategory.GENERAL,
        screenshot: Optional[bytes] = None,
        screenshot_type: Optional[str] = None
    ) -> Feedback:
        """
        Store a feedback message from a signed-in user.

        The beta tester flag is looked up, not taken from the client.

        Raises:
            ValueError: Empty text, or a screenshot that is not an image or
                is larger than MAX_SCREENSHOT_BYTES
            RuntimeError: Screenshot given but the image host is not configured
        """
        text = text.strip()
        if not text:
            raise ValueError("Feedback is required")

        screenshot_url = None
        if screenshot:
            if len(screenshot) > MAX_SCREENSHOT_BYTES:
                raise ValueError("Screenshot must be 5MB or smaller")
            if not is_image(screenshot, screenshot_type):
                raise ValueError("Screenshot must be an image")
            screenshot_url = await image_host.upload(
                screenshot,
                "feedback",
                owner=user_id,
                content_type=screenshot_type,
                watermark=False
            )

        now = utcnow()
        feedback = Feedback(
            user_id=user_id,
            email=email or "",
            feedback=text,
            category=category,
            is_beta_tester=await BetaTesterService.is_beta_tester(store, user_id),
            screenshot_path=screenshot_url,
            status=FeedbackStatus.PENDING,
            is_read=False,
            created_at=now,
            updated_at=now
        )
        feedback_id = f"{user_id}_{int(time.time() * 1000)}"
        saved = await FeedbackRepository.create(store, feedback, feedback_id)
        logger.info(f"Feedback {feedback_id} submitted ({saved.category})")
        return saved

    @staticmethod
    async def list_feedback(
        store: DocumentStore,
        category: Optional[FeedbackCategory] = None,
        user_id: Optional[str] = None
    ) -> List[Feedback]:
        return await FeedbackRepository.list_filtered(
            store,
            category=FeedbackCategory(category).value if category else None,
            user_id=user_id
        )

    @staticmethod
    async def get_feedback(store: DocumentStore, feedback_id: str) -> Feedback:
        feedback = await FeedbackRepository.get(store, feedback_id)
        if feedback is None:
            raise FeedbackNotFound(feedback_id)
        return feedback

    @staticmethod
    async def unread_count(store: DocumentStore) -> int:
        items = await FeedbackRepository.list_filtered(store)
        return sum(1 for f in items if not f.is_read)

    @staticmethod
    async def mark_read(store: DocumentStore, feedback_id: str) -> Feedback:
        """
        Raises:
            FeedbackNotFound: Unknown feedback
        """
        await FeedbackService.get_feedback(store, feedback_id)
        await FeedbackRepository.update(store, feedback_id, {"isRead": True, "readAt": utcnow()})
        return await FeedbackService.get_feedback(store, feedback_id)

    @staticmethod
    async def update_feedback(
        store: DocumentStore,
        feedback_id: str,
        status: Optional[FeedbackStatus] = None,
        admin_notes: Optional[str] = None
    ) -> Feedback:
        """
        Set review status and/or admin notes.

        Raises:
            FeedbackNotFound: Unknown feedback
        """
        await FeedbackService.get_feedback(store, feedback_id)
        fields = {}
        if status is not None:
            fields["status"] = FeedbackStatus(status).value
        if admin_notes is not None:
            fields["adminNotes"] = admin_notes
        if fields:
            await FeedbackRepository.update(store, feedback_id, fields)
        return await FeedbackService.get_feedback(store, feedback_id)

    @staticmethod
    async def delete_feedback(store: DocumentStore, image_host: ImageHost, feedback_id: str) -> None:
        """
        Delete the record, then its screenshot best-effort.

        Raises:
            FeedbackNotFound: Unknown feedback
        """
        feedback = await FeedbackService.get_feedback(store, feedback_id)
        await FeedbackRepository.delete(store, feedback_id)
        if feedback.screenshot_path and not await image_host.delete_url(feedback.screenshot_path):
            logger.warning(f"Screenshot of feedback {feedback_id} was not deleted: {feedback.screenshot_path}")
