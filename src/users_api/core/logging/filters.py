# src/users_api/core/logging/filters.py
"""
Logging filters

Both filters annotate records and always return True; they never drop a line.

RequestContextFilter
--------------------
Guarantees every LogRecord carries a `record.entry` (a LogEntry). Records
emitted by the facade already have one; records from plain stdlib loggers get
one built from the record plus the *current* request context.

The filter must run where the log call happens (the producer), because that
is where the request's contextvar is visible. A queue listener thread runs in
its own context and would see no request at all. That is why the fan-out
handler applies these filters before it enqueues (see dispatcher.py); the
same filters on the sink handlers are a no-op for records that already have
an entry.

RedactFilter
------------
Masks values of sensitive metadata keys (passwords, tokens, ...) before the
entry reaches any sink, so secrets never land in files or the search index.
Matching is case-insensitive on the metadata key.
"""

from __future__ import annotations

import dataclasses
import logging
from logging import LogRecord
from types import MappingProxyType

from .context import current_context
from .entry import LogEntry, entry_from_record

REDACTED = "***REDACTED***"


def ensure_entry(record: LogRecord) -> LogEntry:
    """
    Return record.entry, creating it from the record and the current request
    context when the record came from a plain stdlib logger.
    """
    entry = getattr(record, "entry", None)
    if entry is None:
        entry = entry_from_record(record, current_context())
        record.entry = entry
    return entry


class RequestContextFilter(logging.Filter):
    """Attach a LogEntry (with the producer's request context) to every record."""

    def filter(self, record: LogRecord) -> bool:
        ensure_entry(record)
        return True


class RedactFilter(logging.Filter):
    SENSITIVE = frozenset(
        {"password", "secret", "token", "access_token", "refresh_token", "ssn", "authorization", "api_key"}
    )

    def filter(self, record: LogRecord) -> bool:
        entry = ensure_entry(record)
        hits = [k for k, v in entry.metadata.items() if k.lower() in self.SENSITIVE and v != REDACTED]
        if hits:
            metadata = dict(entry.metadata)
            for key in hits:
                metadata[key] = REDACTED
            record.entry = dataclasses.replace(entry, metadata=MappingProxyType(metadata))
        return True


PRODUCER_FILTERS = (RequestContextFilter(), RedactFilter())
