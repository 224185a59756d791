"""Base and store-level exceptions."""


class DocscopeError(Exception):
    """Root of every docscope exception."""


class StoreError(DocscopeError):
    """Base class for document store failures."""


class UnsupportedQueryError(StoreError):
    """Raised when a store backend cannot express a condition."""


class ConfigurationError(StoreError):
    """Raised when store settings are invalid or name an unknown backend."""
