"""Store interface consumed by the document finder."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple


ASCENDING = 1
DESCENDING = -1

OrderSpec = Sequence[Tuple[str, int]]


class DocumentStore(ABC):
    """Common contract for document persistence and queries.

    Payloads are plain dictionaries that always carry the document ``id``.
    ``conditions`` keys are field names or
    :class:`docscope.core.conditions.FieldSelector` instances.
    """

    @abstractmethod
    def insert(self, collection: str, document_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Persist a new document and return the stored payload."""

    @abstractmethod
    def get(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        """Return one payload by id, or ``None``."""

    @abstractmethod
    def replace(self, collection: str, document_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Overwrite an existing document and return the stored payload."""

    @abstractmethod
    def delete(self, collection: str, document_id: str) -> None:
        """Remove a document; missing documents are ignored."""

    @abstractmethod
    def query(
        self,
        collection: str,
        conditions: Optional[Mapping[Any, Any]] = None,
        order: Optional[OrderSpec] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        select: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Return payloads matching ``conditions``."""

    @abstractmethod
    def count(self, collection: str, conditions: Optional[Mapping[Any, Any]] = None) -> int:
        """Return the number of documents matching ``conditions``."""

    @abstractmethod
    def drop(self, collection: str) -> None:
        """Remove every document of a collection."""
