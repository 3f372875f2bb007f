"""
User feedback record.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from app.models.base import DocumentModel


class FeedbackCategory(str, Enum):
    GENERAL = "general"
    BUG = "bug"
    FEATURE = "feature"
    BETA_TESTING = "beta-testing"


class FeedbackStatus(str, Enum):
    PENDING = "pending"
    REVIEWED = "reviewed"
    RESOLVED = "resolved"


class Feedback(DocumentModel):
    """Feedback document in the `feedbacks` collection."""

    user_id: str
    email: str = ""
    feedback: str
    category: FeedbackCategory = FeedbackCategory.GENERAL
    is_beta_tester: bool = False
    screenshot_path: Optional[str] = None  # public URL on the image host
    status: FeedbackStatus = FeedbackStatus.PENDING
    is_read: bool = False
    read_at: Optional[datetime] = None
    admin_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
