"""
Document store layer.
"""
from app.db.base import DocumentStore, Transaction
from app.db.memory import InMemoryDocumentStore
from app.db.retry import with_backoff

__all__ = ["DocumentStore", "Transaction", "InMemoryDocumentStore", "with_backoff"]
