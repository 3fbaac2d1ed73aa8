# src/users_api/core/logging/levels.py
"""
Log levels used by the facade and the sinks.

The facade speaks five levels (debug, verbose, info, warn, error). The stdlib
`logging` module has no "verbose", so we register one between DEBUG and INFO
and keep a two-way mapping: LogLevel -> levelno for emitting records, and
levelno -> LogLevel for records produced by foreign loggers (uvicorn, module
loggers) so every sink sees the same five names.
"""

from __future__ import annotations

import logging
from enum import Enum

from users_api.validators.config_validators import normalize_level_name

VERBOSE = 15


def register_verbose_level() -> None:
    """Make `logging.getLevelName(15)` return "VERBOSE" (and vice versa)."""
    logging.addLevelName(VERBOSE, "VERBOSE")


class LogLevel(str, Enum):
    DEBUG = "debug"
    VERBOSE = "verbose"
    INFO = "info"
    WARN = "warn"
    ERROR = "error"

    @property
    def levelno(self) -> int:
        return _LEVELNO[self]

    @classmethod
    def from_levelno(cls, levelno: int) -> "LogLevel":
        """
        Return the most severe level whose number is <= levelno.

        CRITICAL (50) becomes ERROR; anything below DEBUG becomes DEBUG.
        """
        for level in sorted(cls, key=lambda lvl: lvl.levelno, reverse=True):
            if levelno >= level.levelno:
                return level
        return cls.DEBUG

    @classmethod
    def parse(cls, name: "str | LogLevel") -> "LogLevel":
        """Accept any casing and the stdlib spellings (WARNING, CRITICAL)."""
        if isinstance(name, LogLevel):
            return name
        key = normalize_level_name(str(name))
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Unknown log level: {name!r}") from None


_LEVELNO = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.VERBOSE: VERBOSE,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
}


def levelno_for(name: "str | LogLevel") -> int:
    """Stdlib level number for a level name; handy inside dictConfig dicts."""
    return LogLevel.parse(name).levelno
