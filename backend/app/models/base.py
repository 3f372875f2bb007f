"""
Base record type for store documents.

Documents are stored with camelCase field names; records expose snake_case
attributes. Every document read from the store is validated through
from_document before services touch it.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class DocumentModel(BaseModel):
    """Base class for all store records."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
        validate_default=True,
        extra="ignore",
    )

    id: Optional[str] = None

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]):
        """Parse a raw store document into a record."""
        return cls.model_validate({**data, "id": doc_id})

    def to_document(self) -> Dict[str, Any]:
        """Serialize to the stored shape (camelCase, no id, no None values)."""
        return self.model_dump(by_alias=True, exclude={"id"}, exclude_none=True)
