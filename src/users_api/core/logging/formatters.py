# src/users_api/core/logging/formatters.py

"""
Formatters for the logging sinks.

  - JsonFormatter: one JSON object per line, exactly `LogEntry.to_dict()`.
    Used by the daily file sink (and available to any handler that needs a
    machine-readable line).

  - ColorFormatter: the console line. Human-readable prefix followed by the
    same JSON document, so what you read in a terminal is what is in the file
    and in Elasticsearch:

        2026-10-19T08:30:00.123+00:00 [info] Fetched user {"request_id": ..., ...}

    The whole line is coloured by level. Pass `use_colors=False` for terminals
    without ANSI support or when stdout is piped into a collector.

Both formatters read `record.entry` (via ensure_entry), so they also render
records coming from plain stdlib loggers in the shared entry shape.
"""

import logging
from logging import LogRecord

from .filters import ensure_entry


class JsonFormatter(logging.Formatter):
    """
    Structured JSON formatter.

    The record's entry decides the content. Non-serializable metadata values
    fall back to str() inside LogEntry.to_json(), so format() never raises on
    odd extras.
    """

    def format(self, record: LogRecord) -> str:
        return ensure_entry(record).to_json()


class ColorFormatter(logging.Formatter):
    """
    Development-friendly colored formatter for the console sink.

    Construction:
      - use_colors: wrap the line in ANSI codes (default True).
      - fmt / datefmt: accepted for dictConfig compatibility; the line layout is fixed.
    """

    COLOR_CODES = {
        # debug: bold cyan on white background
        "debug": "\033[1;36;47m",
        # verbose: cyan
        "verbose": "\033[36m",
        # info: green
        "info": "\033[32m",
        # warn: yellow
        "warn": "\033[33m",
        # error: red
        "error": "\033[31m",
        # reset all styles and colors to terminal defaults
        "RESET": "\033[0m",
    }

    def __init__(self, fmt: str | None = None, datefmt: str | None = None, use_colors: bool = True) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        self.use_colors = use_colors

    def format(self, record: LogRecord) -> str:
        entry = ensure_entry(record)
        line = f"{entry.timestamp} [{entry.level.value}] {entry.message} {entry.to_json()}"

        # The traceback is already inside the JSON; repeat it readable under the line.
        if entry.error:
            line = line + "\n" + entry.error

        if not self.use_colors:
            return line
        # Without the reset the color would spill into the next lines of output.
        return f"{self.COLOR_CODES.get(entry.level.value, '')}{line}{self.COLOR_CODES['RESET']}"
