"""Document base model with class-level scopes and finders."""

from contextlib import AbstractContextManager
from datetime import datetime, timezone
import logging
import re
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Union
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationError

from docscope.core.connection import store_for, use_store
from docscope.core.store import DocumentStore

from .exceptions import ModelValidationError, ScopeError
from .finder import ALL, FIRST, LAST, DocumentFinder
from .options import DEFAULT_OPERATION, OperationOptions, merge_options, normalize_options
from .scope import Scope
from .scoping import ScopeBuilderFn, current_scope, registry, scope_frame


logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Return current UTC timestamp."""
    return datetime.now(timezone.utc)


def _default_collection_name(class_name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", class_name).lower() + "s"


def _scope_accessor(name: str) -> classmethod:
    def accessor(cls, *args: Any, **kwargs: Any) -> Scope:
        return cls.named(name, *args, **kwargs)

    accessor.__name__ = name
    accessor.__doc__ = "Build the ``{0}`` named scope.".format(name)
    accessor.scope_name = name
    return classmethod(accessor)


def _shadows_attribute(cls: type, name: str) -> bool:
    """True when ``name`` is a model field or a class attribute other than a named scope."""
    if name in cls.model_fields:
        return True
    existing = getattr(cls, name, None)
    return existing is not None and getattr(existing, "scope_name", None) != name


class Document(BaseModel):
    """Base document schema with scoped class-level finders.

    Fields are declared the pydantic way; scopes are declared on the class
    once it exists::

        class Post(Document):
            title: str = ""
            status: str = "draft"

        Post.named_scope("published", conditions={"status": "published"})
        Post.named_scope("latest", lambda num: {"limit": num, "order": "created_at DESC"})

        Post.published().latest(5).all()
        Post.named("latest", 5).all()

    Every finder merges, in order, the default scope, the active
    ``with_scope`` frames and the call-site options, then hands the result
    to :meth:`_find` / :meth:`_count`.
    """

    __collection__: ClassVar[Optional[str]] = None

    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    id: Optional[str] = Field(default=None, description="Store document ID.")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    _persisted: bool = PrivateAttr(default=False)

    @classmethod
    def collection_name(cls) -> str:
        """Collection name: ``__collection__`` or the snake-cased plural class name."""
        return cls.__collection__ or _default_collection_name(cls.__name__)

    @classmethod
    def store(cls) -> DocumentStore:
        return store_for(cls)

    @classmethod
    def use_store(cls, store: DocumentStore) -> DocumentStore:
        """Pin ``store`` for this class and its subclasses."""
        return use_store(store, cls)

    # -- scoping ---------------------------------------------------------

    @classmethod
    def with_scope(cls, options: Optional[Mapping] = None, **keywords: Any) -> AbstractContextManager:
        """Cascade options over the current scope for the ``with`` block.

        ``options`` is an options map (``{"find": {...}}``) or bare find
        options. Keywords are find options or operation names::

            with Article.with_scope(conditions={"title": "Hello"}, limit=10):
                Article.all(order="title ASC")

            with Article.with_scope(find={"conditions": {"title": "Hello"}}):
                ...

        ``exclusive=True`` makes the block behave like
        :meth:`with_exclusive_scope`.
        """
        return cls._scope_frame(Scope(cls, normalize_options(options, **keywords)))

    @classmethod
    def with_exclusive_scope(cls, options: Optional[Mapping] = None, **keywords: Any) -> AbstractContextManager:
        """Like :meth:`with_scope`, but hides the default scope and every outer frame."""
        return scope_frame(cls, Scope(cls, normalize_options(options, **keywords)), exclusive=True)

    @classmethod
    def unscoped(cls) -> AbstractContextManager:
        """Run the block with no default or ambient scope."""
        return cls.with_exclusive_scope()

    @classmethod
    def _scope_frame(cls, scope: Scope) -> AbstractContextManager:
        return scope_frame(cls, scope, exclusive=scope.exclusive)

    @classmethod
    def current_scope(cls, operation: str = DEFAULT_OPERATION) -> OperationOptions:
        return current_scope(cls, operation)

    @classmethod
    def default_scope(cls, options: Optional[Mapping] = None, **find_options: Any) -> None:
        """Declare find options applied to every find on this class and its subclasses."""
        scope = Scope.build(cls, merge_options(options or {}, find_options))
        registry.set_default(cls, scope.options)

    @classmethod
    def named_scope(
        cls, name: str, options_or_builder: Union[Mapping, ScopeBuilderFn, None] = None, **find_options: Any
    ) -> None:
        """Register a named scope and install it as a class method.

        After ``Post.named_scope("latest", ...)``, ``Post.latest(5)`` and
        ``Post.named("latest", 5)`` build the same scope.

        Args:
            name: Scope name, used as a class method, with :meth:`named` or as
                a chained attribute.
            options_or_builder: Find options, or a callable taking the call
                arguments and returning find options.
            **find_options: Literal find options; ``exclusive=True`` makes the
                scope ignore the default scope and any outer scope.

        Raises:
            ScopeError: If the name is invalid, reserved, a model field or an
                attribute of the class that is not a named scope.
        """
        if isinstance(name, str) and _shadows_attribute(cls, name):
            raise ScopeError("Named scope '{0}' would shadow {1}.{0}".format(name, cls.__name__))
        registry.register(cls, name, options_or_builder, **find_options)
        setattr(cls, name, _scope_accessor(name))

    @classmethod
    def named(cls, name: str, *args: Any, **kwargs: Any) -> Scope:
        """Build the named scope ``name`` with the given call arguments."""
        return registry.build(cls, name, *args, **kwargs)

    @classmethod
    def has_named_scope(cls, name: str) -> bool:
        return registry.lookup(cls, name) is not None

    @classmethod
    def named_scopes(cls) -> List[str]:
        return registry.names(cls)

    @classmethod
    def scoped(cls, options: Optional[Mapping] = None, **find_options: Any) -> Scope:
        """Build an unnamed scope on the fly."""
        return Scope.build(cls, merge_options(options or {}, find_options))

    # -- finders ---------------------------------------------------------

    @classmethod
    def find(cls, kind_or_id: Any, **options: Any) -> Any:
        """Find ``ALL``, ``FIRST``, ``LAST``, one id or a list of ids.

        Raises:
            DocumentNotFoundError: If an id lookup matches nothing.
        """
        final = merge_options(cls.current_scope(DEFAULT_OPERATION), options)
        return cls._find(kind_or_id, final)

    @classmethod
    def all(cls, **options: Any) -> List["Document"]:
        return cls.find(ALL, **options)

    @classmethod
    def first(cls, **options: Any) -> Optional["Document"]:
        return cls.find(FIRST, **options)

    @classmethod
    def last(cls, **options: Any) -> Optional["Document"]:
        return cls.find(LAST, **options)

    @classmethod
    def count(cls, **options: Any) -> int:
        final = merge_options(cls.current_scope(DEFAULT_OPERATION), options)
        return cls._count(final)

    @classmethod
    def exists(cls, **options: Any) -> bool:
        return cls.count(**options) > 0

    @classmethod
    def _find(cls, kind_or_id: Any, options: Mapping[str, Any]) -> Any:
        return DocumentFinder(cls, cls.store()).find(kind_or_id, options)

    @classmethod
    def _count(cls, options: Mapping[str, Any]) -> int:
        return DocumentFinder(cls, cls.store()).count(options)

    # -- persistence -----------------------------------------------------

    @property
    def persisted(self) -> bool:
        return self._persisted

    def to_store(self) -> Dict[str, Any]:
        """Serialize the document into a store payload.

        Raises:
            ModelValidationError: If serialization fails.
        """
        try:
            return self.model_dump(exclude_none=True)
        except Exception as exc:
            logger.exception("Failed to serialize %s with id=%s", self.__class__.__name__, self.id)
            raise ModelValidationError(str(exc)) from exc

    @classmethod
    def from_store(cls, data: Mapping[str, Any], partial: bool = False) -> "Document":
        """Build a document from a store payload.

        ``partial`` payloads come from ``select`` queries and skip validation.

        Raises:
            ModelValidationError: If the payload does not fit the schema.
        """
        try:
            payload = dict(data)
            document = cls.model_construct(**payload) if partial else cls.model_validate(payload)
        except ValidationError as exc:
            logger.exception("Failed to parse store payload for %s id=%s", cls.__name__, data.get("id"))
            raise ModelValidationError(str(exc)) from exc
        document._persisted = True
        return document

    @classmethod
    def create(cls, **attributes: Any) -> "Document":
        return cls(**attributes).save()

    def save(self) -> "Document":
        """Insert or replace this document in its store."""
        store = self.store()
        collection = self.collection_name()
        if self.id is None:
            self.id = uuid4().hex
        self.updated_at = utc_now()
        try:
            payload = self.to_store()
            if self._persisted:
                store.replace(collection, self.id, payload)
            else:
                store.insert(collection, self.id, payload)
        except Exception:
            logger.exception("Failed to save %s id=%s", self.__class__.__name__, self.id)
            raise
        self._persisted = True
        return self

    def delete(self) -> None:
        if self.id is None:
            return
        self.store().delete(self.collection_name(), self.id)
        self._persisted = False

    def reload(self) -> "Document":
        """Refresh fields from the store, ignoring any active scope."""
        with self.unscoped():
            fresh = type(self).find(self.id)
        for name in type(self).model_fields:
            setattr(self, name, getattr(fresh, name))
        return self


__all__ = ["Document", "utc_now"]
