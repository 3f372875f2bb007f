"""
Store record models.
"""
from app.models.base import DocumentModel, utcnow
from app.models.style import Style, StyleStatus
from app.models.tokens import UserTokenData, AnonymousUsageRecord
from app.models.generation import Generation, GeoLocation
from app.models.topup import TopupPlan, TopupStatus, TopupTransaction
from app.models.settings import AiSettings, BetaTesterSettings, GeneralSettings, MidtransConfig, TokenSettings
from app.models.favorite import Favorite
from app.models.feedback import Feedback, FeedbackCategory, FeedbackStatus
from app.models.visitor import Visitor
from app.models.beta_tester import BetaTester

__all__ = [
    "DocumentModel",
    "utcnow",
    "Style",
    "StyleStatus",
    "UserTokenData",
    "AnonymousUsageRecord",
    "Generation",
    "GeoLocation",
    "TopupPlan",
    "TopupStatus",
    "TopupTransaction",
    "AiSettings",
    "BetaTesterSettings",
    "GeneralSettings",
    "MidtransConfig",
    "TokenSettings",
    "Favorite",
    "Feedback",
    "FeedbackCategory",
    "FeedbackStatus",
    "Visitor",
    "BetaTester",
]
