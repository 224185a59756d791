"""docscope: pydantic documents with composable, scoped finders."""

from .core import (
    MemoryDocumentStore,
    StoreSettings,
    configure,
    field,
    get_store,
    set_logger,
    setup_logging,
    use_store,
)
from .models import (
    ALL,
    FIRST,
    LAST,
    Document,
    DocumentNotFoundError,
    Scope,
    merge_options,
)

__version__ = "0.1.0"

__all__ = [
    "ALL",
    "FIRST",
    "LAST",
    "Document",
    "DocumentNotFoundError",
    "MemoryDocumentStore",
    "Scope",
    "StoreSettings",
    "configure",
    "field",
    "get_store",
    "merge_options",
    "set_logger",
    "setup_logging",
    "use_store",
]
