"""
Document store interface.

The application talks to Firestore-style collections through this interface
so that services receive an explicitly constructed store handle instead of a
module-level client. Documents are plain dicts; record parsing happens in
app.models.

Error contract (shared by all backends):
- create() on an existing id raises google.api_core.exceptions.AlreadyExists
- update() on a missing document raises google.api_core.exceptions.NotFound
- quota errors surface as google.api_core.exceptions.ResourceExhausted
"""
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, TypeVar

Document = Dict[str, Any]
DocumentSnapshot = Tuple[str, Document]

T = TypeVar("T")


class Transaction(ABC):
    """
    Handle passed to run_transaction callbacks.

    Reads must happen before writes, mirroring Firestore transaction rules.
    """

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        pass

    @abstractmethod
    def set(self, collection: str, doc_id: str, data: Document, merge: bool = False) -> None:
        pass

    @abstractmethod
    def update(self, collection: str, doc_id: str, data: Document) -> None:
        pass

    @abstractmethod
    def create(self, collection: str, doc_id: str, data: Document) -> None:
        pass


class DocumentStore(ABC):
    """Abstract document store with the primitives the services rely on."""

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """
        Fetch a document by id.

        Returns:
            Document dict, or None if it does not exist
        """
        pass

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: Document, merge: bool = False) -> None:
        """Write a document. With merge=True only the given fields are replaced."""
        pass

    @abstractmethod
    async def update(self, collection: str, doc_id: str, data: Document) -> None:
        """Update fields of an existing document (NotFound if missing)."""
        pass

    @abstractmethod
    async def create(self, collection: str, data: Document, doc_id: Optional[str] = None) -> str:
        """
        Create a new document.

        Args:
            collection: Collection name
            data: Document fields
            doc_id: Explicit id, or None to let the store generate one

        Returns:
            The id of the created document

        Raises:
            AlreadyExists: If a document with doc_id already exists
        """
        pass

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        pass

    @abstractmethod
    async def increment(
        self,
        collection: str,
        doc_id: str,
        field: str,
        amount: int,
        extra: Optional[Document] = None
    ) -> None:
        """
        Atomically add `amount` to a numeric field.

        The document is created if absent (field starts at 0). `extra` fields
        are merged in the same write.
        """
        pass

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: Optional[List[Tuple[str, Any]]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None
    ) -> List[DocumentSnapshot]:
        """
        Query a collection by field equality.

        Args:
            collection: Collection name
            filters: List of (field, value) equality filters
            order_by: Optional field to sort on (documents missing it are excluded)
            descending: Sort direction
            limit: Optional maximum number of results

        Returns:
            List of (doc_id, document) tuples
        """
        pass

    @abstractmethod
    async def count(self, collection: str, filters: Optional[List[Tuple[str, Any]]] = None) -> int:
        pass

    @abstractmethod
    async def run_transaction(self, fn: Callable[[Transaction], Awaitable[T]]) -> T:
        """
        Run `fn` inside a transaction and return its result.

        Either every write made through the Transaction handle is applied or
        none is.
        """
        pass

    async def close(self) -> None:
        """Release backend resources."""
        return None
