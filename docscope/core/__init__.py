"""Core utilities for configuration, logging and document stores."""

from .conditions import FieldSelector, field
from .config import StoreSettings, load_settings, parse_settings
from .connection import configuration, configure, get_store, reset, store_for, use_database, use_store
from .exceptions import ConfigurationError, DocscopeError, StoreError, UnsupportedQueryError
from .logging_config import get_logger, set_logger, setup_logging
from .memory_store import MemoryDocumentStore
from .store import ASCENDING, DESCENDING, DocumentStore

__all__ = [
    "ASCENDING",
    "DESCENDING",
    "ConfigurationError",
    "DocscopeError",
    "DocumentStore",
    "FieldSelector",
    "MemoryDocumentStore",
    "StoreError",
    "StoreSettings",
    "UnsupportedQueryError",
    "configuration",
    "configure",
    "field",
    "get_logger",
    "get_store",
    "load_settings",
    "parse_settings",
    "reset",
    "set_logger",
    "setup_logging",
    "store_for",
    "use_database",
    "use_store",
]
