"""
Custom exceptions for the logging subsystem.
"""

from pathlib import Path


class LoggingError(Exception):
    """
    Base exception for logging subsystem errors.

    - message: human-friendly message
    - sink: optional sink name the error relates to (e.g. 'file', 'elasticsearch')
    - path: optional filesystem path involved (log directory, log file)
    """

    def __init__(self, message: str, *, sink: str | None = None, path: str | Path | None = None):
        super().__init__(message)
        self.message = message
        self.sink = sink
        self.path = str(path) if path is not None else None

    def __str__(self) -> str:
        base = self.message
        parts = []
        if self.sink:
            parts.append(f"sink: {self.sink}")
        if self.path:
            parts.append(f"path: {self.path}")
        if parts:
            return f"{base} ({'; '.join(parts)})"
        return base


class LoggingInitError(LoggingError):
    """
    Raised by setup_logging() when the pipeline cannot start (unwritable log
    directory, broken handler configuration). The process should not keep
    running without its logging guarantee, so the bootstrap exits on it.
    """


__all__ = [
    "LoggingError",
    "LoggingInitError",
]
