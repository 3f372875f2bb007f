"""
Firestore-backed document store.

Wraps the async Firestore client exposed by firebase_admin. Firebase must be
initialized (app.auth.firebase.initialize_firebase) before constructing it.
"""
import logging
from typing import Any, Awaitable, Callable, List, Optional, Tuple, TypeVar

from firebase_admin import firestore_async
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from app.db.base import Document, DocumentSnapshot, DocumentStore, Transaction

logger = logging.getLogger(__name__)

T = TypeVar("T")


class FirestoreTransaction(Transaction):
    """Adapter from our Transaction interface to an AsyncTransaction."""

    def __init__(self, client: firestore.AsyncClient, transaction: firestore.AsyncTransaction):
        self._client = client
        self._transaction = transaction

    def _ref(self, collection: str, doc_id: str):
        return self._client.collection(collection).document(doc_id)

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        snapshot = await self._ref(collection, doc_id).get(transaction=self._transaction)
        return snapshot.to_dict() if snapshot.exists else None

    def set(self, collection: str, doc_id: str, data: Document, merge: bool = False) -> None:
        self._transaction.set(self._ref(collection, doc_id), data, merge=merge)

    def update(self, collection: str, doc_id: str, data: Document) -> None:
        self._transaction.update(self._ref(collection, doc_id), data)

    def create(self, collection: str, doc_id: str, data: Document) -> None:
        self._transaction.create(self._ref(collection, doc_id), data)


class FirestoreDocumentStore(DocumentStore):
    """DocumentStore implementation over Cloud Firestore."""

    def __init__(self, client: Optional[firestore.AsyncClient] = None):
        self._client = client or firestore_async.client()
        logger.info("Firestore document store initialized")

    def _apply_filters(self, query, filters: Optional[List[Tuple[str, Any]]]):
        for field, value in filters or []:
            query = query.where(filter=FieldFilter(field, "==", value))
        return query

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        snapshot = await self._client.collection(collection).document(doc_id).get()
        return snapshot.to_dict() if snapshot.exists else None

    async def set(self, collection: str, doc_id: str, data: Document, merge: bool = False) -> None:
        await self._client.collection(collection).document(doc_id).set(data, merge=merge)

    async def update(self, collection: str, doc_id: str, data: Document) -> None:
        await self._client.collection(collection).document(doc_id).update(data)

    async def create(self, collection: str, data: Document, doc_id: Optional[str] = None) -> str:
        collection_ref = self._client.collection(collection)
        doc_ref = collection_ref.document(doc_id) if doc_id else collection_ref.document()
        await doc_ref.create(data)
        return doc_ref.id

    async def delete(self, collection: str, doc_id: str) -> None:
        await self._client.collection(collection).document(doc_id).delete()

    async def increment(
        self,
        collection: str,
        doc_id: str,
        field: str,
        amount: int,
        extra: Optional[Document] = None
    ) -> None:
        data = dict(extra or {})
        data[field] = firestore.Increment(amount)
        await self._client.collection(collection).document(doc_id).set(data, merge=True)

    async def query(
        self,
        collection: str,
        filters: Optional[List[Tuple[str, Any]]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None
    ) -> List[DocumentSnapshot]:
        query = self._apply_filters(self._client.collection(collection), filters)
        if order_by:
            direction = firestore.Query.DESCENDING if descending else firestore.Query.ASCENDING
            query = query.order_by(order_by, direction=direction)
        if limit:
            query = query.limit(limit)

        results = []
        async for snapshot in query.stream():
            results.append((snapshot.id, snapshot.to_dict()))
        return results

    async def count(self, collection: str, filters: Optional[List[Tuple[str, Any]]] = None) -> int:
        query = self._apply_filters(self._client.collection(collection), filters)
        aggregation = await query.count(alias="total").get()
        return int(aggregation[0][0].value) if aggregation else 0

    async def run_transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        client = self._client

        @firestore.async_transactional
        async def _run(transaction):
            return await fn(FirestoreTransaction(client, transaction))

        return await _run(client.transaction())
