"""Composable finder-option bundles bound to a document class."""

from functools import partial
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .options import (
    DEFAULT_OPERATION,
    EXCLUSIVE_KEY,
    OperationOptions,
    OptionsMap,
    merge_options,
    pop_exclusive,
)


logger = logging.getLogger(__name__)


class Scope:
    """Defines a query shortcut over a document class.

    A scope holds an options map keyed by operation name. Scopes compose
    with :meth:`merge` (new scope) or :meth:`merge_in_place` (same scope),
    and chain through the target's named scopes::

        Post.named("published").latest(5).all()

    Running ``find``/``all``/``count`` on a scope executes the target's finder
    with the scope's options pushed as a frame, so the usual default scope,
    ambient ``with_scope`` frames and call-site options still apply. An
    exclusive scope pushes an exclusive frame and ignores everything outside
    it.

    The target must provide ``_scope_frame``, ``find``, ``count``, ``named``
    and ``scoped``; :class:`docscope.models.document.Document` does.
    """

    def __init__(self, target: Any, options: Optional[Mapping] = None, exclusive: bool = False) -> None:
        cleaned, flag = pop_exclusive(options or {})
        self._target = target
        self._options: OptionsMap = merge_options({}, cleaned)
        self._exclusive = bool(exclusive) or bool(flag)

    @classmethod
    def build(cls, target: Any, find_options: Optional[Mapping] = None, exclusive: bool = False) -> "Scope":
        """Build a scope from bare find options.

        A truthy ``exclusive`` entry becomes the scope's exclusive marker
        rather than staying in the options.
        """
        find_options = merge_options({}, find_options or {})
        exclusive = bool(find_options.pop(EXCLUSIVE_KEY, False)) or exclusive
        options = {DEFAULT_OPERATION: find_options} if find_options else {}
        return cls(target, options, exclusive=exclusive)

    @property
    def target(self) -> Any:
        return self._target

    @property
    def exclusive(self) -> bool:
        return self._exclusive

    @property
    def options(self) -> OptionsMap:
        """Snapshot of the options map; changing it does not touch the scope."""
        return merge_options({}, self._options)

    def options_for(self, operation: str) -> OperationOptions:
        """Return a copy of the options for ``operation``, or ``{}``."""
        return merge_options({}, self._options.get(operation, {}))

    def merge(self, additional: Union["Scope", Mapping]) -> "Scope":
        """Return a new scope with ``additional`` deep-merged over this one.

        An ``exclusive`` entry in ``additional`` sets the new scope's flag.
        """
        options, flag = _options_of(additional)
        return Scope(
            self._target,
            merge_options(self._options, options),
            exclusive=self._exclusive if flag is None else flag,
        )

    def merge_in_place(self, additional: Union["Scope", Mapping]) -> "Scope":
        """Deep-merge ``additional`` into this scope and return it."""
        options, flag = _options_of(additional)
        self._options = merge_options(self._options, options)
        if flag is not None:
            self._exclusive = flag
        return self

    def compose(self, other: "Scope") -> "Scope":
        """Chain ``other`` after this scope.

        An exclusive ``other`` drops everything accumulated so far; scopes
        chained after it cascade with it as usual.
        """
        if other.exclusive:
            return Scope(self._target, other._options, exclusive=True)
        return Scope(self._target, merge_options(self._options, other._options), exclusive=self._exclusive)

    def named(self, name: str, *args: Any, **kwargs: Any) -> "Scope":
        """Chain a named scope registered on the target class."""
        return self.compose(self._target.named(name, *args, **kwargs))

    def scoped(self, options: Optional[Mapping] = None, **find_options: Any) -> "Scope":
        """Chain an ad-hoc scope."""
        return self.compose(self._target.scoped(options, **find_options))

    def find(self, kind_or_id: Any, **options: Any) -> Any:
        with self._target._scope_frame(self):
            return self._target.find(kind_or_id, **options)

    def all(self, **options: Any) -> List[Any]:
        with self._target._scope_frame(self):
            return self._target.all(**options)

    def first(self, **options: Any) -> Any:
        with self._target._scope_frame(self):
            return self._target.first(**options)

    def last(self, **options: Any) -> Any:
        with self._target._scope_frame(self):
            return self._target.last(**options)

    def count(self, **options: Any) -> int:
        with self._target._scope_frame(self):
            return self._target.count(**options)

    def exists(self, **options: Any) -> bool:
        return self.count(**options) > 0

    def __getattr__(self, name: str) -> Any:
        # Only reached for names Scope does not define: resolve named scopes.
        if name.startswith("_"):
            raise AttributeError(name)
        target = self.__dict__.get("_target")
        if target is None or not target.has_named_scope(name):
            raise AttributeError(
                "'{0}' object has no attribute or named scope '{1}'".format(type(self).__name__, name)
            )
        return partial(self.named, name)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Scope):
            return NotImplemented
        return (
            self._target == other._target
            and self._options == other._options
            and self._exclusive == other._exclusive
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        target_name = getattr(self._target, "__name__", repr(self._target))
        flag = " exclusive" if self._exclusive else ""
        return "<Scope {0}{1} {2!r}>".format(target_name, flag, self._options)


def _options_of(additional: Union[Scope, Mapping]) -> Tuple[Dict[str, Any], Optional[bool]]:
    if isinstance(additional, Scope):
        return additional._options, (True if additional.exclusive else None)
    return pop_exclusive(additional)


RESERVED_SCOPE_NAMES = frozenset(name for name in dir(Scope) if not name.startswith("_"))
