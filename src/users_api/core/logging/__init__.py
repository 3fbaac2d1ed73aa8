# src/users_api/core/logging/
# ├─ __init__.py            # public API
# ├─ levels.py              # LogLevel (+ VERBOSE stdlib level)
# ├─ context.py             # RequestContext contextvar store + request id generator
# ├─ entry.py               # LogEntry, build_entry (the formatter of the pipeline)
# ├─ filters.py             # RequestContextFilter, RedactFilter
# ├─ formatters.py          # JsonFormatter, ColorFormatter
# ├─ handlers.py            # DailyFileHandler, ElasticsearchHandler + dictConfig factories
# ├─ dispatcher.py          # FanOutHandler: one queue/listener per sink
# ├─ builder.py             # make_dict_config(settings) + setup_logging(settings)
# ├─ logger.py              # AppLogger facade, get_logger()
# └─ middleware.py          # Starlette middleware: request context + summary line


from .builder import setup_logging, stop_logging, make_dict_config
from .context import (
    RequestContext,
    current_context,
    generate_request_id,
    request_scope,
    reset_request,
    set_request,
)
from .entry import LogEntry, build_entry
from .levels import LogLevel
from .logger import AppLogger, get_logger
from .middleware import RequestLoggingMiddleware

__all__ = [
    "setup_logging",
    "stop_logging",
    "make_dict_config",
    "RequestContext",
    "current_context",
    "generate_request_id",
    "request_scope",
    "reset_request",
    "set_request",
    "LogEntry",
    "build_entry",
    "LogLevel",
    "AppLogger",
    "get_logger",
    "RequestLoggingMiddleware",
]
