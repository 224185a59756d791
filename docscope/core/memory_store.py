"""In-process document store, used for development and tests."""

import copy
import logging
import re
from threading import RLock
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .conditions import split_selector
from .store import DESCENDING, DocumentStore, OrderSpec


logger = logging.getLogger(__name__)

_MISSING = object()


def _resolve(document: Mapping[str, Any], path: str) -> Any:
    """Read a dotted field path from a payload."""
    current: Any = document
    for part in path.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return _MISSING
        current = current[part]
    return current


def _equals(actual: Any, expected: Any) -> bool:
    if actual is _MISSING:
        return expected is None
    if isinstance(expected, re.Pattern):
        return isinstance(actual, str) and expected.search(actual) is not None
    if isinstance(actual, list) and not isinstance(expected, list):
        return any(_equals(item, expected) for item in actual)
    return actual == expected


def _compare(actual: Any, expected: Any, operator: str) -> bool:
    if actual is _MISSING or actual is None:
        return False
    try:
        if operator == "gt":
            return actual > expected
        if operator == "gte":
            return actual >= expected
        if operator == "lt":
            return actual < expected
        return actual <= expected
    except TypeError:
        return False


def matches(document: Mapping[str, Any], conditions: Optional[Mapping[Any, Any]]) -> bool:
    """Return True when ``document`` satisfies every condition."""
    for key, expected in (conditions or {}).items():
        path, operator = split_selector(key)
        actual = _resolve(document, path)
        if operator == "eq":
            ok = _equals(actual, expected)
        elif operator == "ne":
            ok = not _equals(actual, expected)
        elif operator == "in":
            ok = any(_equals(actual, candidate) for candidate in expected)
        elif operator == "nin":
            ok = not any(_equals(actual, candidate) for candidate in expected)
        elif operator == "exists":
            ok = (actual is not _MISSING) == bool(expected)
        else:
            ok = _compare(actual, expected, operator)
        if not ok:
            return False
    return True


def _sort_key(field_name: str, descending: bool = False):
    # Missing values sort last in both directions.
    def key(document: Mapping[str, Any]):
        value = _resolve(document, field_name)
        missing = value is _MISSING or value is None
        return (missing != descending, None if missing else value)

    return key


class MemoryDocumentStore(DocumentStore):
    """Thread-safe dictionary-backed store.

    Payloads are deep-copied on the way in and out, so callers never share
    state with the store.
    """

    def __init__(self, database: str = "docscope-default") -> None:
        self.database = database
        self._collections: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = RLock()
        logger.info("Initialized MemoryDocumentStore database=%s", database)

    def insert(self, collection: str, document_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        with self._lock:
            documents = self._collections.setdefault(collection, {})
            stored = copy.deepcopy(dict(payload))
            stored["id"] = document_id
            documents[document_id] = stored
            return copy.deepcopy(stored)

    def get(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            stored = self._collections.get(collection, {}).get(document_id)
            return copy.deepcopy(stored) if stored is not None else None

    def replace(self, collection: str, document_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        return self.insert(collection, document_id, payload)

    def delete(self, collection: str, document_id: str) -> None:
        with self._lock:
            self._collections.get(collection, {}).pop(document_id, None)

    def query(
        self,
        collection: str,
        conditions: Optional[Mapping[Any, Any]] = None,
        order: Optional[OrderSpec] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        select: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        with self._lock:
            found = [
                copy.deepcopy(document)
                for document in self._collections.get(collection, {}).values()
                if matches(document, conditions)
            ]

        # Stable sorts applied from the least significant key.
        for field_name, direction in reversed(list(order or [])):
            descending = direction == DESCENDING
            found.sort(key=_sort_key(field_name, descending), reverse=descending)

        if offset:
            found = found[offset:]
        if limit is not None:
            found = found[:limit]
        if select:
            wanted = set(select) | {"id"}
            found = [{key: value for key, value in document.items() if key in wanted} for document in found]
        logger.debug("Memory query collection=%s matched=%s", collection, len(found))
        return found

    def count(self, collection: str, conditions: Optional[Mapping[Any, Any]] = None) -> int:
        with self._lock:
            return sum(1 for document in self._collections.get(collection, {}).values() if matches(document, conditions))

    def drop(self, collection: str) -> None:
        with self._lock:
            self._collections.pop(collection, None)
