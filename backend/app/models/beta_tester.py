"""
Beta tester registration (betaTesters/{userId}).
"""
from datetime import datetime
from typing import Optional

from pydantic import Field

from app.models.base import DocumentModel


class BetaTester(DocumentModel):
    user_id: str
    email: str
    free_tokens_received: int = Field(0, ge=0)
    registered_at: Optional[datetime] = None
