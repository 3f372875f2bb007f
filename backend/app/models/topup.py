"""
Top-up plan and transaction records.
Replaces card payments with Midtrans-backed diamond purchases.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from app.models.base import DocumentModel


class TopupStatus(str, Enum):
    """Status of a top-up transaction (mirrors Midtrans final states)."""
    PENDING = "pending"
    SETTLEMENT = "settlement"
    EXPIRE = "expire"
    CANCEL = "cancel"
    DENY = "deny"
    REFUND = "refund"


class TopupPlan(DocumentModel):
    """Purchasable diamond package in the `topupPlans` collection."""

    diamonds: int = Field(..., gt=0)
    price: int = Field(..., gt=0)  # IDR
    anchor_price: Optional[int] = Field(None, ge=0)  # crossed-out price shown in UI
    bonus: int = Field(0, ge=0)
    popular: bool = False
    order: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def total_diamonds(self) -> int:
        return self.diamonds + self.bonus


class TopupTransaction(DocumentModel):
    """
    Top-up transaction in the `topupTransactions` collection.

    Created pending when checkout starts. Moves to settlement exactly once,
    in the same store transaction that credits diamonds + bonus.
    """

    user_id: str
    user_email: Optional[str] = None
    package_id: str
    diamonds: int = Field(..., ge=0)
    bonus: int = Field(0, ge=0)
    price: int = Field(..., ge=0)
    status: TopupStatus = TopupStatus.PENDING
    order_id: str
    payment_method: Optional[str] = None
    midtrans_transaction_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def total_diamonds(self) -> int:
        return self.diamonds + self.bonus

    @property
    def is_settled(self) -> bool:
        """Settled and credited. A settlement status without completedAt is not."""
        return self.status == TopupStatus.SETTLEMENT.value and self.completed_at is not None
