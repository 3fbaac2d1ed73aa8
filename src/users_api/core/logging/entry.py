# src/users_api/core/logging/entry.py
"""
LogEntry: the one structured record every sink receives.

`build_entry()` is the formatter of the pipeline. It merges a raw log call
(level, message, caller metadata, failure) with the ambient request context
and a timestamp. It never raises on odd input: a log call must not be able to
break the request that makes it.

Serialised shape (`LogEntry.to_dict()`), shared by console, file and
Elasticsearch so the three stay cross-searchable:

    {
      "request_id": "7f0c...", "user_agent": "curl/8.5", "ip": "10.0.0.4",
      "method": "GET", "url": "http://api/users",     # request context
      "user_id": 7,                                     # caller metadata
      "timestamp": "2026-10-19T08:30:00.123+00:00",
      "level": "info",
      "message": "Fetched user",
      "context": "GlobalLogger",
      "error": "Traceback ..."                          # only with a failure
    }

Merge order is request context first, then caller metadata on top (caller
wins on collision), then the four fixed fields, which always describe the
entry itself.
"""

from __future__ import annotations

import json
import logging
import traceback
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any

from .context import RequestContext
from .levels import LogLevel

DEFAULT_CONTEXT = "GlobalLogger"

# Attributes every LogRecord has; anything else on a record came from `extra=`.
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None)).keys()
) | {"message", "asctime", "entry"}


def utc_timestamp(now: datetime | None = None) -> str:
    """ISO-8601 UTC with millisecond precision, the one timestamp format of every sink."""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds")


def format_failure(exc: BaseException) -> str:
    """Traceback text of an exception (just "Type: message" if it was never raised)."""
    return "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)).rstrip()


@dataclass(frozen=True)
class LogEntry:
    timestamp: str
    level: LogLevel
    message: str
    context: str = DEFAULT_CONTEXT
    request: RequestContext | None = None
    metadata: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    error: str | None = None

    @property
    def request_id(self) -> str | None:
        return self.request.request_id if self.request else None

    @property
    def date(self):
        """Calendar date (UTC) of the entry; sinks use it for file and index names."""
        return datetime.fromisoformat(self.timestamp).astimezone(timezone.utc).date()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {}
        if self.request is not None:
            data.update(self.request.to_dict())
        data.update(self.metadata)
        data["timestamp"] = self.timestamp
        data["level"] = self.level.value
        data["message"] = self.message
        data["context"] = self.context
        if self.error is not None:
            data["error"] = self.error
        else:
            # a caller's "error" key must not impersonate a captured failure
            data.pop("error", None)
        return data

    def to_json(self) -> str:
        # default=str keeps non-serializable metadata from failing the write
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)


def _coerce_metadata(metadata: Any) -> Mapping[str, Any]:
    if metadata is None:
        return MappingProxyType({})
    if isinstance(metadata, Mapping):
        return MappingProxyType({str(k): v for k, v in metadata.items()})
    return MappingProxyType({"metadata": metadata})


def build_entry(
    level: LogLevel | str,
    message: Any,
    request: RequestContext | None = None,
    metadata: Any = None,
    error: BaseException | str | None = None,
    *,
    context: str = DEFAULT_CONTEXT,
    now: datetime | None = None,
) -> LogEntry:
    """
    Build a LogEntry from a raw log call.

    Args:
        level: LogLevel or level name.
        message: log text; non-strings are passed through str().
        request: request context to attach (normally `current_context()`).
        metadata: caller metadata; None -> {}, a non-mapping value is kept under "metadata".
        error: the failure (its traceback is captured) or an already rendered trace.
        context: label of the emitting logger instance.
        now: timestamp override, mostly for tests; defaults to the current UTC time.
    """
    if isinstance(error, BaseException):
        error = format_failure(error)
    return LogEntry(
        timestamp=utc_timestamp(now),
        level=LogLevel.parse(level),
        message=message if isinstance(message, str) else str(message),
        context=context,
        request=request,
        metadata=_coerce_metadata(metadata),
        error=error,
    )


def entry_from_record(record: logging.LogRecord, request: RequestContext | None = None) -> LogEntry:
    """
    Convert a record from a plain stdlib logger (uvicorn, `logging.getLogger(__name__)`)
    into a LogEntry so it is rendered with the same shape as facade entries.

    The logger name becomes the entry context and `extra={...}` attributes become metadata.
    """
    extras = {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS and not k.startswith("_")}
    error = None
    if record.exc_info and record.exc_info[1] is not None:
        error = format_failure(record.exc_info[1])
    try:
        message = record.getMessage()
    except Exception:
        # bad %-args in a foreign call; keep the raw template rather than lose the line
        message = str(record.msg)
    return build_entry(
        LogLevel.from_levelno(record.levelno),
        message,
        request=request,
        metadata=extras,
        error=error,
        context=record.name,
        now=datetime.fromtimestamp(record.created, tz=timezone.utc),
    )
