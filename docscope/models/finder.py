"""Executes final find options against a document store."""

from enum import Enum
import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from docscope.core.conditions import field
from docscope.core.store import ASCENDING, DESCENDING, DocumentStore

from .exceptions import DocumentNotFoundError, InvalidOptionsError
from .options import CONDITIONS_KEY, EXCLUSIVE_KEY, merge_options


logger = logging.getLogger(__name__)

QUERY_OPTION_KEYS = frozenset({"conditions", "limit", "offset", "order", "select"})
_DIRECTIONS = {"ASC": ASCENDING, "ASCENDING": ASCENDING, "DESC": DESCENDING, "DESCENDING": DESCENDING}


class StringEnum(str, Enum):
    """Base enum class with string behavior for logging."""


class FinderKind(StringEnum):
    """Sentinels accepted by ``find`` in place of an id."""

    ALL = "all"
    FIRST = "first"
    LAST = "last"


ALL = FinderKind.ALL
FIRST = FinderKind.FIRST
LAST = FinderKind.LAST


def parse_order(value: Any) -> List[Tuple[str, int]]:
    """Normalize ``order`` into ``[(field, direction), ...]``.

    Accepts ``"title ASC, created_at DESC"``, ``("title", -1)`` or a list
    mixing both forms.

    Raises:
        InvalidOptionsError: On an unknown direction or unsupported value.
    """
    if value is None:
        return []
    if isinstance(value, str):
        clauses: List[Tuple[str, int]] = []
        for clause in value.split(","):
            parts = clause.split()
            if not parts:
                continue
            if len(parts) > 2 or (len(parts) == 2 and parts[1].upper() not in _DIRECTIONS):
                raise InvalidOptionsError("Invalid order clause: {0!r}".format(clause.strip()))
            direction = _DIRECTIONS[parts[1].upper()] if len(parts) == 2 else ASCENDING
            clauses.append((parts[0], direction))
        return clauses
    if isinstance(value, tuple) and len(value) == 2 and isinstance(value[0], str) and not isinstance(value[1], str):
        if value[1] not in (ASCENDING, DESCENDING):
            raise InvalidOptionsError("Invalid order direction: {0!r}".format(value[1]))
        return [(value[0], value[1])]
    if isinstance(value, (list, tuple)):
        clauses = []
        for item in value:
            clauses.extend(parse_order(item))
        return clauses
    raise InvalidOptionsError("Unsupported order value: {0!r}".format(value))


def parse_select(value: Any) -> Optional[List[str]]:
    if value is None:
        return None
    if isinstance(value, str):
        return [name.strip() for name in value.split(",") if name.strip()]
    if isinstance(value, (list, tuple, set, frozenset)):
        return [str(name) for name in value]
    raise InvalidOptionsError("Unsupported select value: {0!r}".format(value))


class DocumentFinder:
    """Runs ``find``/``count`` for one document class against its store."""

    def __init__(self, document_class: Any, store: DocumentStore) -> None:
        self._document_class = document_class
        self._store = store

    def find(self, kind_or_id: Any, options: Optional[Mapping[str, Any]] = None) -> Any:
        """Resolve ``ALL``/``FIRST``/``LAST``, one id or a list of ids.

        Raises:
            DocumentNotFoundError: If an id (or any id of a list) matches nothing.
            InvalidOptionsError: If ``options`` holds unknown keys.
        """
        query = self._query_options(options)
        logger.debug("Finding %s target=%s query=%s", self._document_class.__name__, kind_or_id, query)
        if kind_or_id is ALL:
            return self._fetch(query)
        if kind_or_id is FIRST:
            return self._single(query)
        if kind_or_id is LAST:
            order = query["order"] or [("id", ASCENDING)]
            query["order"] = [(name, -direction) for name, direction in order]
            return self._single(query)
        if isinstance(kind_or_id, (list, tuple)):
            return self._find_many(list(kind_or_id), query)
        return self._find_one(kind_or_id, query)

    def count(self, options: Optional[Mapping[str, Any]] = None) -> int:
        query = self._query_options(options)
        return self._store.count(self._collection, query["conditions"])

    @property
    def _collection(self) -> str:
        return self._document_class.collection_name()

    def _query_options(self, options: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        options = dict(options or {})
        options.pop(EXCLUSIVE_KEY, None)
        unknown = sorted(str(key) for key in options if key not in QUERY_OPTION_KEYS)
        if unknown:
            raise InvalidOptionsError("Unknown find options: {0}".format(", ".join(unknown)))
        conditions = options.get(CONDITIONS_KEY) or {}
        if not isinstance(conditions, Mapping):
            raise InvalidOptionsError("'conditions' must be a mapping")
        return {
            "conditions": dict(conditions),
            "order": parse_order(options.get("order")),
            "limit": options.get("limit"),
            "offset": options.get("offset"),
            "select": parse_select(options.get("select")),
        }

    def _fetch(self, query: Mapping[str, Any]) -> List[Any]:
        payloads = self._store.query(
            self._collection,
            conditions=query["conditions"],
            order=query["order"],
            limit=query["limit"],
            offset=query["offset"],
            select=query["select"],
        )
        partial = query["select"] is not None
        return [self._document_class.from_store(payload, partial=partial) for payload in payloads]

    def _single(self, query: Dict[str, Any]) -> Any:
        query["limit"] = 1
        found = self._fetch(query)
        return found[0] if found else None

    def _find_one(self, document_id: Any, query: Dict[str, Any]) -> Any:
        not_found = DocumentNotFoundError(
            "Couldn't find {0} with id={1}".format(self._document_class.__name__, document_id)
        )
        # An id pinned by the scope narrows the lookup; it is never replaced.
        for key in ("id", field("id").eq):
            if key in query["conditions"] and query["conditions"][key] != document_id:
                raise not_found
        query["conditions"] = merge_options(query["conditions"], {"id": document_id})
        document = self._single(query)
        if document is None:
            raise not_found
        return document

    def _find_many(self, document_ids: Sequence[Any], query: Dict[str, Any]) -> List[Any]:
        if not document_ids:
            return []
        query["conditions"] = merge_options(query["conditions"], {field("id").in_: list(document_ids)})
        found = self._fetch(query)
        missing = sorted(set(map(str, document_ids)) - {str(document.id) for document in found})
        if missing:
            raise DocumentNotFoundError(
                "Couldn't find {0} with ids={1}".format(self._document_class.__name__, ", ".join(missing))
            )
        return found
