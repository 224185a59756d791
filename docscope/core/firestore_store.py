"""Cloud Firestore implementation of the document store."""

from datetime import datetime, timezone
import logging
import os
import re
from typing import Any, Dict, List, Mapping, Optional, Sequence

from google.cloud import firestore
from google.cloud.firestore_v1.field_path import FieldPath
from google.oauth2 import service_account

from .conditions import split_selector
from .exceptions import UnsupportedQueryError
from .store import DESCENDING, DocumentStore, OrderSpec


logger = logging.getLogger(__name__)

FIRESTORE_OPERATORS = {
    "eq": "==",
    "ne": "!=",
    "gt": ">",
    "gte": ">=",
    "lt": "<",
    "lte": "<=",
    "in": "in",
    "nin": "not-in",
}
EMULATOR_ENV = "FIRESTORE_EMULATOR_HOST"


def _utc_now() -> datetime:
    """Return current UTC datetime."""
    return datetime.now(timezone.utc)


class FirestoreDocumentStore(DocumentStore):
    """Maps collections and finder options onto Cloud Firestore queries.

    Document ids are Firestore document ids; ``id`` conditions are rewritten
    to document-id filters.
    """

    def __init__(
        self,
        project_id: Optional[str] = None,
        credentials_path: Optional[str] = None,
        emulator_host: Optional[str] = None,
        client: Optional[firestore.Client] = None,
    ) -> None:
        """Initialize Firestore client.

        Args:
            project_id: Optional Google Cloud project id override.
            credentials_path: Optional path to a service account json file.
            emulator_host: Optional ``host:port`` of a Firestore emulator.
            client: Prebuilt client; skips client construction when given.
        """
        try:
            if client is not None:
                self._client = client
            elif credentials_path:
                credentials = service_account.Credentials.from_service_account_file(credentials_path)
                self._client = firestore.Client(project=project_id, credentials=credentials)
            else:
                if emulator_host:
                    os.environ[EMULATOR_ENV] = emulator_host
                self._client = firestore.Client(project=project_id) if project_id else firestore.Client()
            logger.info("FirestoreDocumentStore initialized for project_id=%s", project_id)
        except Exception:
            logger.exception("Failed to initialize Firestore client.")
            raise

    @classmethod
    def from_settings(cls, settings: Any) -> "FirestoreDocumentStore":
        """Build a store from :class:`docscope.core.config.StoreSettings`."""
        options = settings.options
        emulator_host = None
        if options.get("emulator"):
            emulator_host = "{0}:{1}".format(settings.host, settings.port)
        return cls(
            project_id=settings.database,
            credentials_path=options.get("credentials_path"),
            emulator_host=emulator_host,
        )

    def _collection(self, collection: str):
        return self._client.collection(collection)

    def insert(self, collection: str, document_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        try:
            ref = self._collection(collection).document(document_id)
            safe_payload = dict(payload)
            safe_payload.pop("id", None)
            safe_payload["created_at"] = safe_payload.get("created_at") or _utc_now()
            safe_payload["updated_at"] = safe_payload.get("updated_at") or _utc_now()
            ref.set(safe_payload)
            return self._snapshot_payload(ref.get())
        except Exception:
            logger.exception("Failed to insert document collection=%s document_id=%s", collection, document_id)
            raise

    def get(self, collection: str, document_id: str) -> Optional[Dict[str, Any]]:
        try:
            snapshot = self._collection(collection).document(document_id).get()
            if not snapshot.exists:
                return None
            return self._snapshot_payload(snapshot)
        except Exception:
            logger.exception("Failed to get document collection=%s document_id=%s", collection, document_id)
            raise

    def replace(self, collection: str, document_id: str, payload: Mapping[str, Any]) -> Dict[str, Any]:
        try:
            ref = self._collection(collection).document(document_id)
            safe_payload = dict(payload)
            safe_payload.pop("id", None)
            safe_payload["updated_at"] = _utc_now()
            ref.set(safe_payload, merge=False)
            return self._snapshot_payload(ref.get())
        except Exception:
            logger.exception("Failed to replace document collection=%s document_id=%s", collection, document_id)
            raise

    def delete(self, collection: str, document_id: str) -> None:
        try:
            self._collection(collection).document(document_id).delete()
        except Exception:
            logger.exception("Failed to delete document collection=%s document_id=%s", collection, document_id)
            raise

    def query(
        self,
        collection: str,
        conditions: Optional[Mapping[Any, Any]] = None,
        order: Optional[OrderSpec] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        select: Optional[Sequence[str]] = None,
    ) -> List[Dict[str, Any]]:
        """Run a filtered query and return document payloads.

        Raises:
            UnsupportedQueryError: If a condition has no Firestore equivalent.
        """
        query = self._filtered(collection, conditions)
        try:
            for field_name, direction in order or []:
                query = query.order_by(
                    field_name,
                    direction=firestore.Query.DESCENDING if direction == DESCENDING else firestore.Query.ASCENDING,
                )
            if offset:
                query = query.offset(offset)
            if limit is not None:
                query = query.limit(limit)
            if select:
                query = query.select([name for name in select if name != "id"])

            documents = [self._snapshot_payload(snapshot) for snapshot in query.stream()]
            logger.debug("Firestore query collection=%s matched=%s", collection, len(documents))
            return documents
        except Exception:
            logger.exception("Failed query for collection=%s", collection)
            raise

    def count(self, collection: str, conditions: Optional[Mapping[Any, Any]] = None) -> int:
        query = self._filtered(collection, conditions)
        try:
            results = query.count().get()
            return int(results[0][0].value)
        except Exception:
            logger.exception("Failed count for collection=%s", collection)
            raise

    def drop(self, collection: str) -> None:
        try:
            for snapshot in self._collection(collection).stream():
                snapshot.reference.delete()
        except Exception:
            logger.exception("Failed to drop collection=%s", collection)
            raise

    def _filtered(self, collection: str, conditions: Optional[Mapping[Any, Any]]):
        query = self._collection(collection)
        for key, value in (conditions or {}).items():
            field_name, operator = split_selector(key)
            if operator not in FIRESTORE_OPERATORS:
                raise UnsupportedQueryError(
                    "Firestore cannot express '{0}' conditions on {1}".format(operator, field_name)
                )
            if isinstance(value, re.Pattern):
                raise UnsupportedQueryError("Firestore cannot match regular expressions on {0}".format(field_name))
            if field_name == "id":
                field_name = FieldPath.document_id()
                value = self._document_refs(collection, value, operator)
            query = query.where(field_name, FIRESTORE_OPERATORS[operator], value)
        return query

    def _document_refs(self, collection: str, value: Any, operator: str) -> Any:
        if operator in ("in", "nin"):
            return [self._collection(collection).document(item) for item in value]
        return self._collection(collection).document(value)

    @staticmethod
    def _snapshot_payload(snapshot: Any) -> Dict[str, Any]:
        payload = snapshot.to_dict() or {}
        payload["id"] = snapshot.id
        return payload
