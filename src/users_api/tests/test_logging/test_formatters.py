# src/users_api/tests/test_logging/test_formatters.py
import json
import logging

from users_api.core.logging.entry import build_entry
from users_api.core.logging.formatters import ColorFormatter, JsonFormatter


def make_record(entry=None, level=logging.INFO, msg="plain"):
    rec = logging.LogRecord("GlobalLogger", level, __file__, 10, msg, (), None)
    if entry is not None:
        rec.entry = entry
    return rec


def test_json_formatter_outputs_entry_fields():
    entry = build_entry("info", "Fetched user", metadata={"user_id": 7})
    out = JsonFormatter().format(make_record(entry))
    payload = json.loads(out)
    assert payload["message"] == "Fetched user"
    assert payload["level"] == "info"
    assert payload["user_id"] == 7
    assert payload["timestamp"] == entry.timestamp
    assert "\n" not in out


def test_json_formatter_handles_plain_records():
    payload = json.loads(JsonFormatter().format(make_record(msg="from uvicorn")))
    assert payload["message"] == "from uvicorn"
    assert payload["context"] == "GlobalLogger"


def test_color_formatter_line_layout_without_colors():
    entry = build_entry("warn", "Slow query", metadata={"ms": 812})
    line = ColorFormatter(use_colors=False).format(make_record(entry, logging.WARNING))
    prefix = f"{entry.timestamp} [warn] Slow query "
    assert line.startswith(prefix)
    assert json.loads(line[len(prefix):])["ms"] == 812
    assert "\033[" not in line


def test_color_formatter_wraps_line_in_level_color():
    entry = build_entry("error", "Boom")
    line = ColorFormatter().format(make_record(entry, logging.ERROR))
    assert line.startswith(ColorFormatter.COLOR_CODES["error"])
    assert line.endswith(ColorFormatter.COLOR_CODES["RESET"])


def test_color_formatter_prints_traceback_under_line():
    try:
        raise KeyError("user")
    except KeyError as exc:
        entry = build_entry("error", "Lookup failed", error=exc)
    first, *rest = ColorFormatter(use_colors=False).format(make_record(entry, logging.ERROR)).split("\n")
    assert "Lookup failed" in first
    assert rest[0].startswith("Traceback")
