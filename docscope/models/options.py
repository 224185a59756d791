"""Deep-merge helpers for scope and finder option mappings.

An options map is keyed by operation name (``"find"``) and holds one mapping
of finder options per operation::

    {"find": {"conditions": {"title": "Hello"}, "limit": 10}}

Merging is always left-to-right: the right operand is overlaid on the left
one, nested mappings merge key by key and anything else is overwritten.
"""

import copy
from functools import reduce
import logging
from typing import Any, Dict, Mapping, Optional, Tuple

from .exceptions import InvalidOptionsError


logger = logging.getLogger(__name__)

OptionsMap = Dict[str, Dict[str, Any]]
OperationOptions = Dict[str, Any]

DEFAULT_OPERATION = "find"
CONDITIONS_KEY = "conditions"
EXCLUSIVE_KEY = "exclusive"
FIND_OPTION_KEYS = frozenset({"conditions", "limit", "offset", "order", "select", "exclusive"})


def _copy_value(value: Any) -> Any:
    """Return an unaliased copy, turning nested mappings into plain dicts."""
    if isinstance(value, Mapping):
        return {key: _copy_value(item) for key, item in value.items()}
    return copy.deepcopy(value)


def _require_mapping(value: Any, role: str) -> Mapping:
    if not isinstance(value, Mapping):
        raise InvalidOptionsError(
            "Expected a mapping for {0}, got {1}: {2!r}".format(role, type(value).__name__, value)
        )
    return value


def merge_options(base: Mapping, addition: Mapping) -> Dict[str, Any]:
    """Deep-merge ``addition`` onto ``base`` and return a new mapping.

    Neither argument is mutated and the result shares no containers with
    them.

    Raises:
        InvalidOptionsError: If either side is not a mapping, or a
            ``conditions`` entry is not a mapping.
    """
    _require_mapping(base, "base options")
    _require_mapping(addition, "additional options")

    merged = {key: _copy_value(value) for key, value in base.items()}
    for key, value in addition.items():
        if key == CONDITIONS_KEY:
            _require_mapping(value, "'conditions'")
        current = merged.get(key)
        if isinstance(current, Mapping) and isinstance(value, Mapping):
            merged[key] = merge_options(current, value)
        else:
            merged[key] = _copy_value(value)
    return merged


def merge_all(*option_maps: Optional[Mapping]) -> Dict[str, Any]:
    """Fold several option mappings in call order; ``None`` entries are skipped."""
    return reduce(merge_options, [item for item in option_maps if item is not None], {})


def validate_options_map(options: Mapping) -> Mapping:
    """Check that every operation in an options map holds a mapping."""
    _require_mapping(options, "options map")
    for operation, operation_options in options.items():
        _require_mapping(operation_options, "operation '{0}'".format(operation))
        if CONDITIONS_KEY in operation_options:
            _require_mapping(operation_options[CONDITIONS_KEY], "'{0}.conditions'".format(operation))
    return options


def normalize_options(options: Optional[Mapping] = None, **keywords: Any) -> OptionsMap:
    """Build an options map from bare finder options or operation entries.

    ``{"conditions": {...}}`` is shorthand for ``{"find": {"conditions": {...}}}``;
    a mapping keyed by operation name is taken as-is. Keyword arguments named
    after finder options (``conditions=``, ``limit=``...) are find options,
    any other keyword is an operation. Keywords are merged over ``options``.

    Raises:
        InvalidOptionsError: If finder options and operation names are mixed
            in ``options``, or an entry is not a mapping.
    """
    options = {} if options is None else _require_mapping(options, "options")
    if options and any(key in FIND_OPTION_KEYS for key in options):
        unknown = [key for key in options if key not in FIND_OPTION_KEYS]
        if unknown:
            raise InvalidOptionsError(
                "Cannot mix finder options with operation names: {0}".format(sorted(map(str, unknown)))
            )
        options = {DEFAULT_OPERATION: options}

    find_keywords = {key: value for key, value in keywords.items() if key in FIND_OPTION_KEYS}
    operations = {key: value for key, value in keywords.items() if key not in FIND_OPTION_KEYS}
    normalized = merge_all(
        validate_options_map(options),
        validate_options_map(operations),
        validate_options_map({DEFAULT_OPERATION: find_keywords}) if find_keywords else None,
    )
    logger.debug("Normalized scope options=%s", normalized)
    return normalized


def pop_exclusive(options: Mapping) -> Tuple[OptionsMap, Optional[bool]]:
    """Split ``exclusive`` entries out of an options map.

    Returns the map without them and the flag they set, or ``None`` when no
    operation carries one. An operation left empty by the split is dropped.
    """
    cleaned: OptionsMap = {}
    flag: Optional[bool] = None
    for operation, operation_options in validate_options_map(options).items():
        operation_options = dict(operation_options)
        if EXCLUSIVE_KEY in operation_options:
            flag = bool(operation_options.pop(EXCLUSIVE_KEY)) or bool(flag)
            if not operation_options:
                continue
        cleaned[operation] = operation_options
    return cleaned, flag
