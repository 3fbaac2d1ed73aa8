# src/users_api/core/logging/builder.py
"""
Logging builder: create and apply the dictConfig for the logging pipeline,
then put every sink of the facade logger behind the fan-out handler.

This module:
 - builds a dictConfig-compatible mapping from Settings (formatters, filters,
   one handler per enabled sink, loggers)
 - applies it, failing fast with LoggingInitError when the pipeline cannot
   start (e.g. the log directory is not writable)
 - moves the sink handlers of the facade logger into a FanOutHandler so each
   sink gets its own queue listener and failure boundary (dispatcher.py)
 - exposes stop_logging() to drain and stop the pipeline at shutdown.

Loggers configured:

| Logger            | Handlers                         | Notes                                            |
| ----------------- | -------------------------------- | ------------------------------------------------ |
| LOG_CONTEXT       | FanOutHandler(console, file, es) | the facade (`GlobalLogger`), propagate=False     |
| root              | console, file_errors             | module loggers, internal diagnostics             |
| `uvicorn`         | console, file_errors             | server lifecycle messages, ASGI errors           |
| `uvicorn.access`  | (propagates to `uvicorn`)        | WARNING only; the middleware writes access lines |

Internal diagnostics (dropped records, Elasticsearch outages) are logged
through module loggers and therefore reach the console (and, at error level,
the error file); they never loop back into the remote sink that is failing.

Configuration knobs (on your Settings object):
 - LOG_CONSOLE_LEVEL, LOG_CONSOLE_COLORS
 - LOG_TO_FILE, LOG_FILE_LEVEL, LOG_DIR, LOG_FILE_PREFIX, LOG_ERROR_FILE_PREFIX,
   LOG_RETENTION_DAYS
 - ELASTICSEARCH_ENABLED, ELASTICSEARCH_URL, ELASTICSEARCH_LEVEL,
   ELASTICSEARCH_INDEX_PREFIX, ELASTICSEARCH_TIMEOUT,
   ELASTICSEARCH_FAILURE_WARNING_THRESHOLD
 - LOG_USE_QUEUE, LOG_QUEUE_MAX_SIZE, LOG_QUEUE_DROP_WARNING_THRESHOLD
"""

from __future__ import annotations

import logging
import logging.config
from pathlib import Path
from typing import Optional

from users_api.config.settings import Settings
from users_api.exceptions import LoggingInitError

from .dispatcher import FanOutHandler
from .filters import RedactFilter, RequestContextFilter
from .formatters import ColorFormatter, JsonFormatter
from .handlers import get_console_handler, get_elasticsearch_handler, get_error_file_handler, get_file_handler
from .levels import levelno_for, register_verbose_level
from .logger import AppLogger, set_logger

# Module-level reference to the running pipeline so we can stop it
_FAN_OUT: Optional[FanOutHandler] = None
_FAN_OUT_LOGGER: Optional[logging.Logger] = None

ERROR_FILE_HANDLER = "file_errors"
FOREIGN_LOGGERS = ("", "uvicorn")


# -----------------------
# dictConfig builder
# -----------------------
def make_dict_config(settings: Settings) -> dict:
    """
    Build the dictConfig mapping using the provided settings.

    The returned mapping includes:
      - formatters: "console" (ColorFormatter) and "json" (JsonFormatter)
      - filters: "request_context", "redact"
      - handlers: console, plus file / elasticsearch when enabled, and
        file_errors (foreign loggers only) alongside file
      - loggers: the facade logger, root, uvicorn, uvicorn.access
    """
    handlers: dict[str, dict] = {"console": get_console_handler(settings)}
    if settings.LOG_TO_FILE:
        handlers["file"] = get_file_handler(settings)
    if settings.ELASTICSEARCH_ENABLED:
        handlers["elasticsearch"] = get_elasticsearch_handler(settings)
    sinks = list(handlers.keys())

    # Foreign loggers: console, plus their errors in a file. Never the remote
    # store, so its own outage warnings cannot feed back into it.
    foreign = ["console"]
    if settings.LOG_TO_FILE:
        handlers[ERROR_FILE_HANDLER] = get_error_file_handler(settings)
        foreign.append(ERROR_FILE_HANDLER)

    # The facade logger lets through anything at least one sink wants;
    # each sink applies its own level after that.
    facade_level = min(levelno_for(level) for level in settings.sink_levels.values())

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "console": {"()": ColorFormatter, "use_colors": settings.LOG_CONSOLE_COLORS},
            "json": {"()": JsonFormatter},
        },
        "filters": {
            "request_context": {"()": RequestContextFilter},
            "redact": {"()": RedactFilter},
        },
        "handlers": handlers,
        "loggers": {
            settings.LOG_CONTEXT: {
                "handlers": sinks,
                "level": facade_level,
                "propagate": False,
            },
            "": {
                "handlers": foreign,
                "level": levelno_for(settings.LOG_CONSOLE_LEVEL),
            },
            "uvicorn": {
                "handlers": list(foreign),
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn.access": {
                "level": "WARNING",
                "propagate": True,
            },
        },
    }


# --------------------------
# Entrypoint: setup & fan-out wiring
# --------------------------
def setup_logging(settings: Settings) -> FanOutHandler:
    """
    Initialize the logging pipeline from settings.

    Steps:
      1. Register the VERBOSE level and stop a previously running pipeline.
      2. Ensure LOG_DIR exists when the file sink is enabled.
      3. Apply dictConfig(make_dict_config(settings)); the file sink opens its
         first file here, so an unwritable directory fails now.
      4. Detach the sink handlers from the facade logger and attach a single
         FanOutHandler that owns them (one queue listener per sink when
         LOG_USE_QUEUE is set).
      5. Bind the process-wide facade (get_logger()) to the facade logger.

    Raises:
        LoggingInitError: if any step fails. Callers at bootstrap should exit;
        running without logging is not an option.
    """
    global _FAN_OUT, _FAN_OUT_LOGGER

    register_verbose_level()
    stop_logging()

    try:
        if settings.LOG_TO_FILE:
            Path(settings.LOG_DIR).mkdir(parents=True, exist_ok=True)
        logging.config.dictConfig(make_dict_config(settings))
    except Exception as exc:
        raise LoggingInitError(
            f"Logging system failed to start: {exc}",
            path=settings.LOG_DIR if settings.LOG_TO_FILE else None,
        ) from exc

    facade_logger = logging.getLogger(settings.LOG_CONTEXT)
    sinks = {handler.name or type(handler).__name__: handler for handler in facade_logger.handlers}
    for handler in sinks.values():
        facade_logger.removeHandler(handler)

    fan_out = FanOutHandler(
        sinks,
        use_queue=settings.LOG_USE_QUEUE,
        max_size=settings.LOG_QUEUE_MAX_SIZE,
        drop_warning_threshold=settings.LOG_QUEUE_DROP_WARNING_THRESHOLD,
    )
    facade_logger.addHandler(fan_out)

    _FAN_OUT = fan_out
    _FAN_OUT_LOGGER = facade_logger
    set_logger(AppLogger(settings.LOG_CONTEXT, facade_logger))
    return fan_out


def get_fan_out() -> Optional[FanOutHandler]:
    return _FAN_OUT


def stop_logging() -> None:
    """
    Drain and stop the running pipeline (if any): queued records are written,
    listener threads joined, sink handlers closed, the error file detached
    from root and uvicorn.
    """
    global _FAN_OUT, _FAN_OUT_LOGGER
    fan_out, facade_logger = _FAN_OUT, _FAN_OUT_LOGGER
    _FAN_OUT = None
    _FAN_OUT_LOGGER = None
    if fan_out is not None:
        if facade_logger is not None:
            facade_logger.removeHandler(fan_out)
        fan_out.close()
    _close_error_file()


def _close_error_file() -> None:
    # shared by root and uvicorn; detach from both, close once
    handlers = set()
    for name in FOREIGN_LOGGERS:
        foreign_logger = logging.getLogger(name)
        for handler in list(foreign_logger.handlers):
            if handler.name == ERROR_FILE_HANDLER:
                foreign_logger.removeHandler(handler)
                handlers.add(handler)
    for handler in handlers:
        handler.close()
