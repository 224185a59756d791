"""Custom exceptions for the document and scoping layers."""

from docscope.core.exceptions import ConfigurationError, DocscopeError, StoreError, UnsupportedQueryError


class ModelError(DocscopeError):
    """Base class for model-related failures."""


class ModelValidationError(ModelError):
    """Raised when a document payload cannot be built or serialized."""


class InvalidOptionsError(ModelError):
    """Raised when finder or scope options are malformed."""


class DocumentNotFoundError(ModelError):
    """Raised when a single-document find matches nothing."""


class ScopeError(ModelError):
    """Base class for scope declaration and usage failures."""


class UnknownScopeError(ScopeError, AttributeError):
    """Raised when a named scope is not registered on a document class."""


class ScopeStackError(ScopeError):
    """Raised when scope frames are popped out of order."""


__all__ = [
    "DocscopeError",
    "ModelError",
    "ModelValidationError",
    "InvalidOptionsError",
    "DocumentNotFoundError",
    "ScopeError",
    "UnknownScopeError",
    "ScopeStackError",
    "StoreError",
    "UnsupportedQueryError",
    "ConfigurationError",
]
