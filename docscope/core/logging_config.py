"""Central logging configuration for docscope.

docscope is a library, so the package logger only carries a ``NullHandler``
until an application calls :func:`setup_logging`, or hands its own logger
to :func:`set_logger`.
"""

import logging
from typing import Optional, Union


LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
PACKAGE_LOGGER = "docscope"

logging.getLogger(PACKAGE_LOGGER).addHandler(logging.NullHandler())


def resolve_level(level: Union[int, str, None], default: int = logging.INFO) -> int:
    """Translate a level name such as ``"debug"`` into a logging constant."""
    if level is None:
        return default
    if isinstance(level, int):
        return level
    resolved = logging.getLevelName(str(level).strip().upper())
    if isinstance(resolved, int):
        return resolved
    logging.getLogger(__name__).warning("Unknown log level '%s'. Using default=%s", level, default)
    return default


def setup_logging(level: Union[int, str, None] = None) -> None:
    """Configure the root logger once and set the docscope package level.

    Without ``level`` the ``logging.level`` entry of ``config.yml`` is used.
    """
    if level is None:
        from .config import load_log_level

        level = load_log_level()
    numeric_level = resolve_level(level)
    logging.getLogger(PACKAGE_LOGGER).setLevel(numeric_level)
    if logging.getLogger().handlers:
        return
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)


class _ForwardingHandler(logging.Handler):
    """Hands docscope records to an application-supplied logger."""

    def __init__(self, target: logging.Logger) -> None:
        super().__init__()
        self.target = target

    def emit(self, record: logging.LogRecord) -> None:
        self.target.handle(record)


_library_logger: Optional[logging.Logger] = None


def set_logger(target: Optional[logging.Logger]) -> None:
    """Send every docscope log record to ``target``.

    Records stop propagating to the root logger and the package level follows
    ``target``. ``None`` restores the default routing.
    """
    global _library_logger
    package = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package.handlers):
        if isinstance(handler, _ForwardingHandler):
            package.removeHandler(handler)
    _library_logger = target
    if target is None:
        package.propagate = True
        package.setLevel(logging.NOTSET)
        return
    package.addHandler(_ForwardingHandler(target))
    package.propagate = False
    package.setLevel(target.getEffectiveLevel())


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Create or retrieve a module logger; without a name, the library logger."""
    if name is None:
        return _library_logger or logging.getLogger(PACKAGE_LOGGER)
    return logging.getLogger(name)
