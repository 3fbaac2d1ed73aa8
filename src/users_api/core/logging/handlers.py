# src/users_api/core/logging/handlers.py
"""
Sink handlers and their dictConfig factories.

Three sinks plus an error file for foreign loggers, each a `logging.Handler`:

| Sink            | Class                           | Destination                         | Default level |
| --------------- | ------------------------------- | ----------------------------------- | ------------- |
| `console`       | `logging.StreamHandler`         | stdout, ColorFormatter              | info          |
| `file`          | `DailyFileHandler`              | `<LOG_DIR>/app-YYYY-MM-DD.log` JSON | info          |
| `file_errors`   | `DailyFileHandler`              | `<LOG_DIR>/error-YYYY-MM-DD.log`   | error         |
| `elasticsearch` | `ElasticsearchHandler`          | `<URL>/<prefix>-YYYY.MM.DD/_doc`    | warn          |

The `get_*_handler(settings)` functions return handler configuration dicts
for `logging.config.dictConfig()` (builder.py assembles them). They are pure,
so they are easy to unit test for different settings permutations.

Failure semantics
-----------------
- A sink must never raise into the code that logged. Local I/O errors go to
  `Handler.handleError()` (a traceback on stderr, the standard logging
  behavior); remote-store errors are expected during outages and are only
  counted and reported now and then through this module's logger, which
  reaches the console via the root logger.
- Each handler serialises its own writes with the handler lock
  (`Handler.handle()` holds it around `emit()`), so rotation and pruning of the
  file sink cannot interleave with an append.
"""

from __future__ import annotations

import json
import logging
import re
import threading
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import httpx

from users_api.config.settings import Settings

from .filters import ensure_entry
from .levels import levelno_for

logger = logging.getLogger(__name__)

SINK_FILTERS = ["request_context", "redact"]
_JSON_HEADERS = {"Content-Type": "application/json"}


def _utc_today() -> date:
    return datetime.now(timezone.utc).date()


def record_date(record: logging.LogRecord) -> date:
    """Calendar date (UTC) a record belongs to, taken from its entry timestamp."""
    entry = getattr(record, "entry", None)
    if entry is not None:
        return entry.date
    return datetime.fromtimestamp(record.created, tz=timezone.utc).date()


# -----------------------
# File sink
# -----------------------
class DailyFileHandler(logging.Handler):
    """
    Append formatted records to one file per calendar day and keep only
    `retention_days` days of files.

    Files are named `<prefix>-<YYYY-MM-DD>.log` under `directory`. The active
    file follows the date of the record being written, so a record stamped on
    a new day opens the next file. A record dated before the active file (one
    queued across midnight) is appended to the active file. Every time a file
    is opened, files of the same prefix dated `retention_days` or more days
    before it are deleted.

    The first file is opened eagerly so an unwritable directory is reported
    when logging is configured, not on the first write.
    """

    terminator = "\n"

    def __init__(
        self,
        directory: str | Path,
        prefix: str = "app",
        retention_days: int = 30,
        encoding: str = "utf-8",
        today: Callable[[], date] | None = None,
    ) -> None:
        super().__init__()
        if retention_days < 1:
            raise ValueError("retention_days must be >= 1")
        self.directory = Path(directory)
        self.prefix = prefix
        self.retention_days = retention_days
        self.encoding = encoding
        self._pattern = re.compile(rf"^{re.escape(prefix)}-(\d{{4}}-\d{{2}}-\d{{2}})\.log$")
        self.stream = None
        self.current_date: date | None = None
        self._open((today or _utc_today)())

    def path_for(self, day: date) -> Path:
        return self.directory / f"{self.prefix}-{day.isoformat()}.log"

    @property
    def current_path(self) -> Path | None:
        return self.path_for(self.current_date) if self.current_date else None

    def _open(self, day: date) -> None:
        if self.stream is not None:
            self.stream.close()
            self.stream = None
        # Tolerate the directory being missing on first write (or removed since).
        self.directory.mkdir(parents=True, exist_ok=True)
        self.stream = self.path_for(day).open("a", encoding=self.encoding)
        self.current_date = day
        self.prune(day)

    def prune(self, today: date | None = None) -> list[Path]:
        """
        Delete files older than the retention window relative to `today`
        (default: the active file's date). Returns the deleted paths.
        """
        today = today or self.current_date or _utc_today()
        cutoff = today - timedelta(days=self.retention_days)
        active = self.current_path
        removed: list[Path] = []
        for path in self.directory.glob(f"{self.prefix}-*.log"):
            match = self._pattern.match(path.name)
            if not match or path == active:
                continue
            try:
                day = date.fromisoformat(match.group(1))
            except ValueError:
                continue
            if day <= cutoff:
                path.unlink(missing_ok=True)
                removed.append(path)
        return removed

    def emit(self, record: logging.LogRecord) -> None:
        try:
            day = record_date(record)
            if self.current_date is not None and day < self.current_date:
                # late record from before midnight: stay on the active file
                day = self.current_date
            if day != self.current_date or self.stream is None:
                self._open(day)
            self.stream.write(self.format(record) + self.terminator)
            self.stream.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        self.acquire()
        try:
            if self.stream is not None:
                self.stream.close()
                self.stream = None
        finally:
            self.release()
        super().close()


# -----------------------
# Remote search/analytics sink
# -----------------------
class ElasticsearchHandler(logging.Handler):
    """
    Index one document per record into Elasticsearch (or OpenSearch).

    Each entry is POSTed to `<url>/<index_prefix>-<YYYY.MM.DD>/_doc` as
    `LogEntry.to_dict()` plus an `@timestamp` field for Kibana. The handler is
    meant to sit behind its own queue listener (dispatcher.py), so the request
    path never waits for the HTTP round trip; the client timeout bounds how
    long a blackholed endpoint can hold that listener.

    Outages never raise: failures are counted and reported through this
    module's logger on the first failure and then every
    `failure_warning_threshold` failures.
    """

    def __init__(
        self,
        url: str = "http://localhost:9200",
        index_prefix: str = "logs",
        timeout: float = 2.0,
        failure_warning_threshold: int = 100,
        client: httpx.Client | None = None,
    ) -> None:
        super().__init__()
        self.url = url.rstrip("/")
        self.index_prefix = index_prefix
        self.failure_warning_threshold = max(1, failure_warning_threshold)
        self.client = client or httpx.Client(timeout=timeout)
        self.sent = 0
        self.failures = 0
        self._count_lock = threading.Lock()

    def index_for(self, day: date) -> str:
        return f"{self.index_prefix}-{day:%Y.%m.%d}"

    def build_document(self, record: logging.LogRecord) -> dict[str, Any]:
        entry = ensure_entry(record)
        document = entry.to_dict()
        document["@timestamp"] = entry.timestamp
        return document

    def emit(self, record: logging.LogRecord) -> None:
        try:
            document = self.build_document(record)
            endpoint = f"{self.url}/{self.index_for(record_date(record))}/_doc"
            # same serialisation as the file sink (default=str)
            body = json.dumps(document, ensure_ascii=False, default=str)
            response = self.client.post(endpoint, content=body.encode("utf-8"), headers=_JSON_HEADERS)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            self._report_failure(exc)
        except Exception:
            self.handleError(record)
        else:
            with self._count_lock:
                self.sent += 1

    def _report_failure(self, exc: Exception) -> None:
        with self._count_lock:
            self.failures += 1
            failures = self.failures
        if failures == 1 or failures % self.failure_warning_threshold == 0:
            logger.warning(
                "Elasticsearch sink at %s unavailable (%d failed writes): %s",
                self.url,
                failures,
                exc,
            )

    def close(self) -> None:
        self.client.close()
        super().close()


# -----------------------
# dictConfig factories
# -----------------------
def get_console_handler(settings: Settings) -> dict:
    """
    Return a logging handler configuration dict for the console sink.

    Writes to stdout (not the StreamHandler default of stderr) so container
    runtimes collect it with the rest of the process output. The "console"
    formatter must exist in the dictConfig (builder.py provides it).
    """
    return {
        "class": "logging.StreamHandler",
        "stream": "ext://sys.stdout",
        "formatter": "console",
        "level": levelno_for(settings.LOG_CONSOLE_LEVEL),
        "filters": SINK_FILTERS,
    }


def get_file_handler(settings: Settings) -> dict:
    return {
        "()": DailyFileHandler,
        "directory": str(settings.LOG_DIR),
        "prefix": settings.LOG_FILE_PREFIX,
        "retention_days": settings.LOG_RETENTION_DAYS,
        "encoding": "utf-8",
        "formatter": "json",
        "level": levelno_for(settings.LOG_FILE_LEVEL),
        "filters": SINK_FILTERS,
    }


def get_error_file_handler(settings: Settings) -> dict:
    """
    Daily file for error records of foreign loggers (uvicorn, module loggers):
    `<LOG_DIR>/<LOG_ERROR_FILE_PREFIX>-YYYY-MM-DD.log`. Facade entries already
    reach the main file sink and do not pass through here.
    """
    return {
        "()": DailyFileHandler,
        "directory": str(settings.LOG_DIR),
        "prefix": settings.LOG_ERROR_FILE_PREFIX,
        "retention_days": settings.LOG_RETENTION_DAYS,
        "encoding": "utf-8",
        "formatter": "json",
        "level": logging.ERROR,
        "filters": SINK_FILTERS,
    }


def get_elasticsearch_handler(settings: Settings) -> dict:
    # Only warn/error by default: bounds the write volume on the cluster.
    return {
        "()": ElasticsearchHandler,
        "url": settings.ELASTICSEARCH_URL,
        "index_prefix": settings.ELASTICSEARCH_INDEX_PREFIX,
        "timeout": settings.ELASTICSEARCH_TIMEOUT,
        "failure_warning_threshold": settings.ELASTICSEARCH_FAILURE_WARNING_THRESHOLD,
        "level": levelno_for(settings.ELASTICSEARCH_LEVEL),
        "filters": SINK_FILTERS,
    }
