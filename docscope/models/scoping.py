"""Scope registry and per-class scope stacks.

Named and default scopes are declared once per document class and stored in
a process-wide :class:`ScopeRegistry`. Lookups walk the class MRO, so a
subclass sees every scope its ancestors declared.

``with_scope`` blocks push frames onto a stack that is local to the current
thread and to one document class. :func:`scope_frame` always pops its frame,
including when the block raises.
"""

from contextlib import contextmanager
from dataclasses import dataclass
import logging
from threading import RLock, local
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Union
import weakref

from .exceptions import InvalidOptionsError, ScopeError, ScopeStackError, UnknownScopeError
from .options import DEFAULT_OPERATION, OperationOptions, OptionsMap, merge_options
from .scope import RESERVED_SCOPE_NAMES, Scope


logger = logging.getLogger(__name__)

ScopeBuilderFn = Callable[..., Union[Mapping, Scope]]


@dataclass(frozen=True)
class StaticScope:
    """Named scope backed by literal find options."""

    name: str
    find_options: Mapping
    exclusive: bool = False

    def build(self, target: Any, *args: Any, **kwargs: Any) -> Scope:
        if args or kwargs:
            raise ScopeError("Named scope '{0}' takes no arguments".format(self.name))
        return Scope.build(target, self.find_options, exclusive=self.exclusive)


@dataclass(frozen=True)
class ScopeBuilder:
    """Named scope whose find options are computed from call arguments."""

    name: str
    builder: ScopeBuilderFn
    exclusive: bool = False

    def build(self, target: Any, *args: Any, **kwargs: Any) -> Scope:
        result = self.builder(*args, **kwargs)
        if isinstance(result, Scope):
            return Scope(target, result.options, exclusive=result.exclusive or self.exclusive)
        if not isinstance(result, Mapping):
            raise InvalidOptionsError(
                "Scope builder '{0}' must return a mapping, got {1}".format(self.name, type(result).__name__)
            )
        return Scope.build(target, result, exclusive=self.exclusive)


ScopeEntry = Union[StaticScope, ScopeBuilder]


class ScopeRegistry:
    """Holds named scopes and default scopes for every document class."""

    def __init__(self) -> None:
        self._lock = RLock()
        self._named: "weakref.WeakKeyDictionary[type, Dict[str, ScopeEntry]]" = weakref.WeakKeyDictionary()
        self._defaults: "weakref.WeakKeyDictionary[type, OptionsMap]" = weakref.WeakKeyDictionary()

    def register(
        self,
        owner: type,
        name: str,
        options_or_builder: Union[Mapping, ScopeBuilderFn, None] = None,
        **find_options: Any,
    ) -> ScopeEntry:
        """Register a named scope on ``owner``.

        Args:
            owner: Document class declaring the scope.
            name: Scope name; must be an identifier not used by :class:`Scope`.
            options_or_builder: Literal find options, or a callable receiving
                the call-site arguments and returning find options.
            **find_options: Extra literal find options; ``exclusive=True``
                marks the scope exclusive.

        Raises:
            ScopeError: If the name is invalid or reserved.
            InvalidOptionsError: If the options are malformed.
        """
        if not isinstance(name, str) or not name.isidentifier() or name.startswith("_"):
            raise ScopeError("Invalid named scope name: {0!r}".format(name))
        if name in RESERVED_SCOPE_NAMES:
            raise ScopeError("Named scope '{0}' would shadow a Scope method".format(name))

        exclusive = bool(find_options.pop("exclusive", False))
        if callable(options_or_builder):
            if find_options:
                raise ScopeError("Named scope '{0}' cannot mix a builder with literal options".format(name))
            entry: ScopeEntry = ScopeBuilder(name, options_or_builder, exclusive)
        else:
            options = merge_options(options_or_builder or {}, find_options)
            exclusive = bool(options.pop("exclusive", False)) or exclusive
            entry = StaticScope(name, options, exclusive)

        with self._lock:
            scopes = self._named.setdefault(owner, {})
            if name in scopes:
                logger.warning("Redefining named scope %s.%s", owner.__name__, name)
            scopes[name] = entry
        logger.debug("Registered named scope %s.%s exclusive=%s", owner.__name__, name, exclusive)
        return entry

    def lookup(self, owner: type, name: str) -> Optional[ScopeEntry]:
        """Return the nearest entry for ``name`` along ``owner``'s MRO."""
        with self._lock:
            for klass in owner.__mro__:
                entry = self._named.get(klass, {}).get(name)
                if entry is not None:
                    return entry
        return None

    def build(self, owner: type, name: str, *args: Any, **kwargs: Any) -> Scope:
        entry = self.lookup(owner, name)
        if entry is None:
            raise UnknownScopeError("{0} has no named scope '{1}'".format(owner.__name__, name))
        return entry.build(owner, *args, **kwargs)

    def names(self, owner: type) -> List[str]:
        with self._lock:
            found = set()
            for klass in owner.__mro__:
                found.update(self._named.get(klass, {}))
        return sorted(found)

    def set_default(self, owner: type, options: OptionsMap) -> None:
        """Declare default options for ``owner``; redeclaring merges onto the old ones."""
        with self._lock:
            self._defaults[owner] = merge_options(self._defaults.get(owner, {}), options)
        logger.debug("Default scope for %s set to %s", owner.__name__, self._defaults[owner])

    def default_for(self, owner: type) -> OptionsMap:
        """Return the default options of ``owner`` merged with its ancestors'.

        Ancestors come first, so a subclass declaration wins on conflicts.
        """
        merged: OptionsMap = {}
        with self._lock:
            for klass in reversed(owner.__mro__):
                if klass in self._defaults:
                    merged = merge_options(merged, self._defaults[klass])
        return merged

    def clear(self, owner: type) -> None:
        with self._lock:
            self._named.pop(owner, None)
            self._defaults.pop(owner, None)


registry = ScopeRegistry()


@dataclass(frozen=True, eq=False)
class ScopeFrame:
    """One entry of a scope stack."""

    scope: Scope
    exclusive: bool = False


class _StackState(local):
    def __init__(self) -> None:
        self.stacks: "weakref.WeakKeyDictionary[type, List[ScopeFrame]]" = weakref.WeakKeyDictionary()


_state = _StackState()


def frames_for(owner: type) -> List[ScopeFrame]:
    """Return the live frame list of ``owner`` for the current thread."""
    stacks = _state.stacks
    if owner not in stacks:
        stacks[owner] = []
    return stacks[owner]


def push_frame(owner: type, scope: Scope, exclusive: bool = False) -> ScopeFrame:
    frame = ScopeFrame(scope, exclusive)
    frames_for(owner).append(frame)
    logger.debug("Pushed %s scope on %s: %s", "exclusive" if exclusive else "cascading", owner.__name__, scope)
    return frame


def pop_frame(owner: type, frame: ScopeFrame) -> None:
    """Pop ``frame``, which must be the top of ``owner``'s stack.

    Raises:
        ScopeStackError: If the stack is empty or ``frame`` is not on top.
    """
    frames = frames_for(owner)
    if not frames or frames[-1] is not frame:
        logger.error("Unbalanced scope stack on %s: depth=%s", owner.__name__, len(frames))
        raise ScopeStackError("Scope stack of {0} is out of order".format(owner.__name__))
    frames.pop()
    logger.debug("Popped scope on %s, depth=%s", owner.__name__, len(frames))


@contextmanager
def scope_frame(owner: type, scope: Scope, exclusive: bool = False) -> Iterator[Scope]:
    """Push ``scope`` on ``owner``'s stack for the duration of the block."""
    frame = push_frame(owner, scope, exclusive)
    try:
        yield scope
    finally:
        pop_frame(owner, frame)


def current_options(owner: type) -> OptionsMap:
    """Merge the default scope and the active frames of ``owner``.

    The topmost exclusive frame hides the default scope and every frame
    below it.
    """
    frames = frames_for(owner)
    start = 0
    merged: OptionsMap = {}
    for index in range(len(frames) - 1, -1, -1):
        if frames[index].exclusive:
            start = index
            break
    else:
        merged = registry.default_for(owner)

    for frame in frames[start:]:
        merged = merge_options(merged, frame.scope.options)
    return merged


def current_scope(owner: type, operation: str = DEFAULT_OPERATION) -> OperationOptions:
    """Return the effective options of ``operation`` for ``owner`` right now."""
    return current_options(owner).get(operation, {})
