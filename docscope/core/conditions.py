"""Comparator selectors used as keys inside ``conditions``.

A plain string key means equality::

    {"published": True}

A :class:`FieldSelector` key carries a comparator::

    {field("age").gt: 18, field("tags").in_: ["python", "odm"]}

The scope layer never looks inside these keys; only store backends
interpret them.
"""

from dataclasses import dataclass


OPERATORS = frozenset({"eq", "ne", "gt", "gte", "lt", "lte", "in", "nin", "exists"})


@dataclass(frozen=True)
class FieldSelector:
    """A field name paired with a comparator, hashable so it can key a dict."""

    field: str
    operator: str = "eq"

    def __post_init__(self) -> None:
        if self.operator not in OPERATORS:
            raise ValueError("Unknown condition operator: {0}".format(self.operator))

    def __repr__(self) -> str:
        return "{0}.{1}".format(self.field, self.operator)


class FieldRef:
    """Builds :class:`FieldSelector` keys for one field."""

    def __init__(self, name: str) -> None:
        self.name = name

    def _selector(self, operator: str) -> FieldSelector:
        return FieldSelector(self.name, operator)

    @property
    def eq(self) -> FieldSelector:
        return self._selector("eq")

    @property
    def ne(self) -> FieldSelector:
        return self._selector("ne")

    @property
    def gt(self) -> FieldSelector:
        return self._selector("gt")

    @property
    def gte(self) -> FieldSelector:
        return self._selector("gte")

    @property
    def lt(self) -> FieldSelector:
        return self._selector("lt")

    @property
    def lte(self) -> FieldSelector:
        return self._selector("lte")

    @property
    def in_(self) -> FieldSelector:
        return self._selector("in")

    @property
    def nin(self) -> FieldSelector:
        return self._selector("nin")

    @property
    def exists(self) -> FieldSelector:
        return self._selector("exists")

    def __repr__(self) -> str:
        return "field({0!r})".format(self.name)


def field(name: str) -> FieldRef:
    """Start a comparator selector, e.g. ``field("age").gt``."""
    return FieldRef(name)


def split_selector(key) -> tuple:
    """Return ``(field_name, operator)`` for a plain or comparator key."""
    if isinstance(key, FieldSelector):
        return key.field, key.operator
    return str(key), "eq"
