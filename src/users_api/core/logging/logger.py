# src/users_api/core/logging/logger.py
"""
AppLogger: the logging facade application code calls.

    from users_api.core.logging import get_logger

    logger = get_logger()
    logger.log("Fetched user", {"user_id": 7})
    logger.warn("Slow query", {"ms": 812})
    try:
        ...
    except RepositoryError as exc:
        logger.error("Could not save user", exc, {"user_id": 7})

Each call builds one LogEntry (request context of the current logical
request + caller metadata + timestamp) and emits it as a single stdlib record
on the facade's logger. That logger's only handler is the FanOutHandler, which
delivers the record to every sink whose level admits it.

`error()` takes the failure as an explicit, typed argument
(`BaseException | None`); it does not guess which positional argument is an
exception.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .context import current_context
from .entry import DEFAULT_CONTEXT, build_entry
from .levels import LogLevel

Metadata = Mapping[str, Any] | None


class AppLogger:
    def __init__(self, context: str = DEFAULT_CONTEXT, logger: logging.Logger | None = None) -> None:
        self.context = context
        self._logger = logger or logging.getLogger(context)

    @property
    def stdlib_logger(self) -> logging.Logger:
        return self._logger

    def _emit(self, level: LogLevel, message: Any, metadata: Any = None, exc: BaseException | None = None) -> None:
        if not self._logger.isEnabledFor(level.levelno):
            return
        entry = build_entry(
            level,
            message,
            request=current_context(),
            metadata=metadata,
            error=exc,
            context=self.context,
        )
        # stacklevel=3: report the caller of log()/warn()/..., not this module
        self._logger.log(level.levelno, entry.message, extra={"entry": entry}, stacklevel=3)

    def log(self, message: Any, metadata: Metadata = None) -> None:
        """Info level."""
        self._emit(LogLevel.INFO, message, metadata)

    def warn(self, message: Any, metadata: Metadata = None) -> None:
        self._emit(LogLevel.WARN, message, metadata)

    def error(self, message: Any, exc: BaseException | None = None, metadata: Metadata = None) -> None:
        """
        Error level. `exc` is the failure being reported (its traceback becomes
        the entry's `error` field); omit it for errors without an exception.
        """
        if exc is not None and not isinstance(exc, BaseException):
            # metadata passed where the failure goes; keep the line rather than fail
            if metadata is None:
                metadata = exc
            exc = None
        self._emit(LogLevel.ERROR, message, metadata, exc)

    def debug(self, message: Any, metadata: Metadata = None) -> None:
        self._emit(LogLevel.DEBUG, message, metadata)

    def verbose(self, message: Any, metadata: Metadata = None) -> None:
        self._emit(LogLevel.VERBOSE, message, metadata)


_LOGGER: AppLogger | None = None


def get_logger() -> AppLogger:
    """Return the process-wide facade, bound to Settings.LOG_CONTEXT."""
    global _LOGGER
    if _LOGGER is None:
        from users_api.config.settings import get_settings

        _LOGGER = AppLogger(get_settings().LOG_CONTEXT)
    return _LOGGER


def set_logger(logger: AppLogger | None) -> None:
    """Replace (or with None, reset) the process-wide facade. Used by setup_logging()."""
    global _LOGGER
    _LOGGER = logger
