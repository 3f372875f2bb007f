"""
Document store construction and FastAPI dependency.

The store is built once in the application lifespan and kept on app.state;
routes receive it through get_store.
"""
import logging

from fastapi import Request

from app.config import Settings
from app.db.base import DocumentStore
from app.db.memory import InMemoryDocumentStore

logger = logging.getLogger(__name__)


def build_store(config: Settings) -> DocumentStore:
    """
    Create the document store selected by STORE_BACKEND.

    Args:
        config: Application settings

    Returns:
        FirestoreDocumentStore for "firestore", InMemoryDocumentStore for "memory"

    Raises:
        ValueError: If the backend name is unknown
    """
    backend = config.store_backend.lower()

    if backend == "firestore":
        # Imported lazily so the memory backend works without Firebase credentials
        from app.db.firestore import FirestoreDocumentStore
        return FirestoreDocumentStore()

    if backend == "memory":
        logger.warning("Using in-memory document store; data is lost on restart")
        return InMemoryDocumentStore()

    raise ValueError(
        f"Invalid store backend: {config.store_backend}. Must be one of: 'firestore', 'memory'"
    )


def get_store(request: Request) -> DocumentStore:
    """
    Dependency for FastAPI routes to get the document store.
    Usage: store: DocumentStore = Depends(get_store)
    """
    return request.app.state.store
