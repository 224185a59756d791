"""Process-wide store configuration and per-class store overrides."""

from threading import RLock
from typing import Optional
import weakref

from .config import SettingsSource, StoreSettings, load_settings, parse_settings
from .exceptions import ConfigurationError
from .logging_config import get_logger
from .memory_store import MemoryDocumentStore
from .store import DocumentStore


logger = get_logger(__name__)

_LOCK = RLock()
_SETTINGS: Optional[StoreSettings] = None
_STORE: Optional[DocumentStore] = None
_CLASS_STORES: "weakref.WeakKeyDictionary[type, DocumentStore]" = weakref.WeakKeyDictionary()


def configure(value: SettingsSource = None) -> StoreSettings:
    """Replace the active settings and drop the established store."""
    global _SETTINGS, _STORE
    settings = parse_settings(value)
    with _LOCK:
        _SETTINGS = settings
        _STORE = None
    logger.info("Store configured backend=%s host=%s database=%s", settings.backend, settings.host, settings.database)
    return settings


def configuration() -> StoreSettings:
    """Return the active settings, loading ``config.yml`` on first use."""
    global _SETTINGS
    with _LOCK:
        if _SETTINGS is None:
            _SETTINGS = load_settings()
        return _SETTINGS


def establish_store(settings: StoreSettings) -> DocumentStore:
    """Open a store for ``settings``.

    Raises:
        ConfigurationError: If the backend is not supported.
    """
    if settings.backend == "memory":
        return MemoryDocumentStore(database=settings.database)
    if settings.backend == "firestore":
        from .firestore_store import FirestoreDocumentStore

        return FirestoreDocumentStore.from_settings(settings)
    raise ConfigurationError("Unsupported store backend: {0}".format(settings.backend))


def get_store() -> DocumentStore:
    """Return the global store, establishing it on first use."""
    global _STORE
    with _LOCK:
        if _STORE is None:
            _STORE = establish_store(configuration())
        return _STORE


def use_store(store: DocumentStore, document_class: Optional[type] = None) -> DocumentStore:
    """Install ``store`` globally, or only for ``document_class`` and its subclasses."""
    global _STORE
    with _LOCK:
        if document_class is None:
            _STORE = store
        else:
            _CLASS_STORES[document_class] = store
    return store


def store_for(document_class: type) -> DocumentStore:
    """Return the nearest store pinned along the class MRO, else the global one."""
    with _LOCK:
        for klass in document_class.__mro__:
            if klass in _CLASS_STORES:
                return _CLASS_STORES[klass]
    return get_store()


def use_database(database: str) -> DocumentStore:
    """Switch the global settings to ``database`` and re-establish the store."""
    configure(configuration().with_database(database))
    return get_store()


def reset() -> None:
    """Forget settings, the global store and every per-class store."""
    global _SETTINGS, _STORE
    with _LOCK:
        _SETTINGS = None
        _STORE = None
        _CLASS_STORES.clear()
