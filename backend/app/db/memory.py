"""
In-memory document store.

Used for local development without Firebase (STORE_BACKEND=memory) and in
tests. Transactions are serialized with an asyncio.Lock and rolled back if
the callback raises.
"""
import asyncio
import copy
import uuid
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

from google.api_core.exceptions import AlreadyExists, NotFound

from app.db.base import Document, DocumentSnapshot, DocumentStore, Transaction

T = TypeVar("T")


class InMemoryTransaction(Transaction):
    """Buffers writes and applies them on commit."""

    def __init__(self, store: "InMemoryDocumentStore"):
        self._store = store
        self._writes: List[Callable[[], None]] = []

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        return self._store._read(collection, doc_id)

    def set(self, collection: str, doc_id: str, data: Document, merge: bool = False) -> None:
        self._writes.append(lambda: self._store._write(collection, doc_id, data, merge))

    def update(self, collection: str, doc_id: str, data: Document) -> None:
        self._writes.append(lambda: self._store._update(collection, doc_id, data))

    def create(self, collection: str, doc_id: str, data: Document) -> None:
        self._writes.append(lambda: self._store._create(collection, doc_id, data))

    def commit(self) -> None:
        for write in self._writes:
            write()


class InMemoryDocumentStore(DocumentStore):
    """Dict-of-dicts DocumentStore with Firestore-compatible error semantics."""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Document]] = {}
        self._lock = asyncio.Lock()

    # ----- internal helpers (call with the lock held) -----

    def _docs(self, collection: str) -> Dict[str, Document]:
        return self._collections.setdefault(collection, {})

    def _read(self, collection: str, doc_id: str) -> Optional[Document]:
        doc = self._docs(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def _write(self, collection: str, doc_id: str, data: Document, merge: bool) -> None:
        docs = self._docs(collection)
        if merge and doc_id in docs:
            docs[doc_id].update(copy.deepcopy(data))
        else:
            docs[doc_id] = copy.deepcopy(data)

    def _update(self, collection: str, doc_id: str, data: Document) -> None:
        docs = self._docs(collection)
        if doc_id not in docs:
            raise NotFound(f"No document to update: {collection}/{doc_id}")
        docs[doc_id].update(copy.deepcopy(data))

    def _create(self, collection: str, doc_id: str, data: Document) -> None:
        docs = self._docs(collection)
        if doc_id in docs:
            raise AlreadyExists(f"Document already exists: {collection}/{doc_id}")
        docs[doc_id] = copy.deepcopy(data)

    def _matching(self, collection: str, filters: Optional[List[Tuple[str, Any]]]) -> List[DocumentSnapshot]:
        results = []
        for doc_id, doc in self._docs(collection).items():
            if all(doc.get(field) == value for field, value in filters or []):
                results.append((doc_id, copy.deepcopy(doc)))
        return results

    # ----- DocumentStore -----

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        async with self._lock:
            return self._read(collection, doc_id)

    async def set(self, collection: str, doc_id: str, data: Document, merge: bool = False) -> None:
        async with self._lock:
            self._write(collection, doc_id, data, merge)

    async def update(self, collection: str, doc_id: str, data: Document) -> None:
        async with self._lock:
            self._update(collection, doc_id, data)

    async def create(self, collection: str, data: Document, doc_id: Optional[str] = None) -> str:
        doc_id = doc_id or uuid.uuid4().hex[:20]
        async with self._lock:
            self._create(collection, doc_id, data)
        return doc_id

    async def delete(self, collection: str, doc_id: str) -> None:
        async with self._lock:
            self._docs(collection).pop(doc_id, None)

    async def increment(
        self,
        collection: str,
        doc_id: str,
        field: str,
        amount: int,
        extra: Optional[Document] = None
    ) -> None:
        async with self._lock:
            docs = self._docs(collection)
            doc = docs.setdefault(doc_id, {})
            doc.update(copy.deepcopy(extra or {}))
            doc[field] = (doc.get(field) or 0) + amount

    async def query(
        self,
        collection: str,
        filters: Optional[List[Tuple[str, Any]]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None
    ) -> List[DocumentSnapshot]:
        async with self._lock:
            results = self._matching(collection, filters)
        if order_by:
            results = [item for item in results if item[1].get(order_by) is not None]
            results.sort(key=lambda item: item[1][order_by], reverse=descending)
        if limit:
            results = results[:limit]
        return results

    async def count(self, collection: str, filters: Optional[List[Tuple[str, Any]]] = None) -> int:
        async with self._lock:
            return len(self._matching(collection, filters))

    async def run_transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        async with self._lock:
            transaction = InMemoryTransaction(self)
            result = await fn(transaction)
            snapshot = copy.deepcopy(self._collections)
            try:
                transaction.commit()
            except Exception:
                self._collections = snapshot
                raise
            return result
