"""Public model package exports for docscope."""

from .document import Document, utc_now
from .exceptions import (
    DocscopeError,
    DocumentNotFoundError,
    InvalidOptionsError,
    ModelError,
    ModelValidationError,
    ScopeError,
    ScopeStackError,
    UnknownScopeError,
)
from .finder import ALL, FIRST, LAST, DocumentFinder, FinderKind
from .options import merge_all, merge_options, normalize_options
from .scope import Scope
from .scoping import ScopeBuilder, ScopeRegistry, StaticScope, current_scope, registry

__all__ = [
    "ALL",
    "FIRST",
    "LAST",
    "Document",
    "DocumentFinder",
    "FinderKind",
    "Scope",
    "ScopeBuilder",
    "ScopeRegistry",
    "StaticScope",
    "current_scope",
    "registry",
    "merge_all",
    "merge_options",
    "normalize_options",
    "utc_now",
    "DocscopeError",
    "ModelError",
    "ModelValidationError",
    "InvalidOptionsError",
    "DocumentNotFoundError",
    "ScopeError",
    "UnknownScopeError",
    "ScopeStackError",
]
