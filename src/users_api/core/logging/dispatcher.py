# src/users_api/core/logging/dispatcher.py
"""
Fan-out of one log record to N sinks, each behind its own failure boundary.

The facade's logger has a single handler, FanOutHandler. For every record it:

  1. runs the producer-side filters (RequestContextFilter, RedactFilter) in the
     caller's context, where the request contextvar is visible;
  2. offers a copy of the record to every SinkChannel whose handler level
     admits it.

Queue mode (LOG_USE_QUEUE, the default)
---------------------------------------
Every sink gets its own `queue.Queue` and its own `QueueListener` thread:

    caller ──put_nowait──► [queue: console]       ──listener──► StreamHandler
           ──put_nowait──► [queue: file]          ──listener──► DailyFileHandler
           ──put_nowait──► [queue: elasticsearch] ──listener──► ElasticsearchHandler

  - the caller only enqueues, so disk and network latency stay off the request path;
  - a stuck Elasticsearch endpoint fills only its own queue; console and file
    keep flowing;
  - each queue is FIFO with a single consumer, so per-sink order equals the
    order the facade received the entries. There is no ordering across sinks.

Bounded queues (LOG_QUEUE_MAX_SIZE > 0) never block the producer: when a
sink's queue is full the record is dropped for that sink only, the drop is
counted, and a warning is logged every LOG_QUEUE_DROP_WARNING_THRESHOLD drops.

Sync mode
---------
Handlers run inline on the caller's thread, one after the other, each in its
own try/except. Useful for tests and one-shot scripts.

Shutdown
--------
`close()` stops the listeners. `QueueListener.stop()` enqueues a sentinel and
joins the thread, so everything queued before the call is written first.
"""

from __future__ import annotations

import copy
import logging
import queue as _queue
import threading
from collections.abc import Iterable, Mapping
from logging.handlers import QueueListener

from .filters import PRODUCER_FILTERS

logger = logging.getLogger(__name__)


class SinkListener(QueueListener):
    """QueueListener whose thread survives a handler that raises."""

    def handle(self, record: logging.LogRecord) -> None:
        try:
            super().handle(record)
        except Exception:
            # an escaped error would end the thread and leave queue.join() waiting forever
            for handler in self.handlers:
                handler.handleError(record)


class SinkChannel:
    """One sink: a handler plus (in queue mode) its private queue and listener thread."""

    def __init__(
        self,
        name: str,
        handler: logging.Handler,
        *,
        use_queue: bool = True,
        max_size: int = 0,
        drop_warning_threshold: int = 100,
    ) -> None:
        self.name = name
        self.handler = handler
        self.use_queue = use_queue
        self.drop_warning_threshold = max(1, drop_warning_threshold)
        self.dropped = 0
        self._lock = threading.Lock()
        self.queue: _queue.Queue | None = None
        self.listener: SinkListener | None = None
        if use_queue:
            # maxsize=0 -> unbounded
            self.queue = _queue.Queue(max(0, max_size))
            self.listener = SinkListener(self.queue, handler, respect_handler_level=True)

    def accepts(self, record: logging.LogRecord) -> bool:
        return record.levelno >= self.handler.level

    def start(self) -> None:
        if self.listener is not None:
            self.listener.start()

    def stop(self) -> None:
        if self.listener is not None and self.listener._thread is not None:
            self.listener.stop()

    def submit(self, record: logging.LogRecord) -> bool:
        """
        Hand one record to the sink. Returns False if the record was dropped.
        Never raises.
        """
        if self.queue is None:
            try:
                self.handler.handle(record)
            except Exception:
                # Handlers report their own I/O errors; this catches anything a
                # broken filter/formatter lets escape, so the next sink still runs.
                self.handler.handleError(record)
            return True

        try:
            self.queue.put_nowait(record)
            return True
        except _queue.Full:
            with self._lock:
                self.dropped += 1
                dropped = self.dropped
            if dropped == 1 or dropped % self.drop_warning_threshold == 0:
                logger.warning("Dropped %d log records for sink %r because its queue was full", dropped, self.name)
            return False


class FanOutHandler(logging.Handler):
    """
    Handler that dispatches each record to every configured sink.

    Args:
        handlers: sink name -> real handler (levels/formatters/filters already set).
        use_queue: run each sink on its own queue listener thread.
        max_size: per-sink queue bound; 0 means unbounded.
        drop_warning_threshold: warn every N dropped records per sink.
    """

    def __init__(
        self,
        handlers: Mapping[str, logging.Handler],
        *,
        use_queue: bool = True,
        max_size: int = 0,
        drop_warning_threshold: int = 100,
        producer_filters: Iterable[logging.Filter] = PRODUCER_FILTERS,
    ) -> None:
        super().__init__(level=logging.NOTSET)
        for f in producer_filters:
            self.addFilter(f)
        self.channels = [
            SinkChannel(
                name,
                handler,
                use_queue=use_queue,
                max_size=max_size,
                drop_warning_threshold=drop_warning_threshold,
            )
            for name, handler in handlers.items()
        ]
        self._started = False
        self.start()

    @property
    def handlers(self) -> dict[str, logging.Handler]:
        return {channel.name: channel.handler for channel in self.channels}

    def start(self) -> None:
        if not self._started:
            for channel in self.channels:
                channel.start()
            self._started = True

    def emit(self, record: logging.LogRecord) -> None:
        # Filters already ran in Handler.handle(); record.entry is set.
        for channel in self.channels:
            if channel.accepts(record):
                # each sink's formatter sets attributes on the record; give each its own copy
                channel.submit(copy.copy(record))

    def flush(self) -> None:
        """Wait until every queued record has been handed to its sink."""
        for channel in self.channels:
            if channel.queue is not None and self._started:
                # QueueListener calls task_done() for every record it handles
                channel.queue.join()
            channel.handler.flush()

    def stats(self) -> dict[str, dict[str, int]]:
        return {
            channel.name: {
                "dropped": channel.dropped,
                "queued": channel.queue.qsize() if channel.queue is not None else 0,
            }
            for channel in self.channels
        }

    def close(self) -> None:
        if self._started:
            for channel in self.channels:
                channel.stop()
            self._started = False
        for channel in self.channels:
            try:
                channel.handler.close()
            except Exception:
                logger.exception("Failed to close log sink %r", channel.name)
        super().close()
