"""Logger configuration for pvexplorer modules.

Every module calls ``get_logger(__name__)``. Loggers under ``pvexplorer`` write
to stdout through one shared handler and do not propagate, so a host
application that configures the root logger does not print engine chatter
twice. ``PVEXPLORER_LOG_LEVEL`` (a level name such as ``DEBUG``) sets the
default level.
"""

from __future__ import annotations

import logging
import os
import sys
import time
from functools import wraps

_ROOT_LOGGER_NAME = "pvexplorer"
_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_handler = logging.StreamHandler(sys.stdout)
_handler.setFormatter(logging.Formatter(_FORMAT))


def _default_level() -> int:
    name = os.getenv("PVEXPLORER_LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str | None = None, level: int | None = None) -> logging.Logger:
    """Return the logger for ``name``, attaching the shared handler once.

    An explicitly set level on the logger is left alone.
    """
    logger = logging.getLogger(name or _ROOT_LOGGER_NAME)
    if logger.level == logging.NOTSET:
        logger.setLevel(level if level is not None else _default_level())
    if not logger.handlers:
        logger.addHandler(_handler)
    logger.propagate = False
    return logger


def set_level(level: int, logger_names: list[str] | None = None) -> None:
    """Set ``level`` on the named loggers (the package logger by default)."""
    for name in logger_names or [_ROOT_LOGGER_NAME]:
        logging.getLogger(name).setLevel(level)


def funclogger(func):
    """Trace calls of ``func`` at DEBUG: arguments, elapsed time and result."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        path = f"{func.__module__}.{func.__qualname__}".replace("<", "").replace(">", "")
        logger = get_logger(path)
        if logger.isEnabledFor(logging.DEBUG):
            rendered = [repr(arg) for arg in args]
            rendered += [f"{key}={value!r}" for key, value in kwargs.items()]
            logger.debug("Calling %s(%s)", func.__qualname__, ", ".join(rendered))
        started = time.perf_counter()
        result = func(*args, **kwargs)
        logger.debug(
            "%s returned %r after %.3fs",
            func.__qualname__,
            result,
            time.perf_counter() - started,
        )
        return result

    return wrapper
