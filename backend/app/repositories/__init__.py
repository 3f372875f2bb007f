"""
Repository layer for document store operations.
Provides typed access to collections.
"""
from app.repositories.style_repository import StyleRepository
from app.repositories.generation_repository import GenerationRepository
from app.repositories.topup_repository import TopupRepository
from app.repositories.favorite_repository import FavoriteRepository
from app.repositories.feedback_repository import FeedbackRepository
from app.repositories.visitor_repository import VisitorRepository

__all__ = [
    "StyleRepository",
    "GenerationRepository",
    "TopupRepository",
    "FavoriteRepository",
    "FeedbackRepository",
    "VisitorRepository",
]
