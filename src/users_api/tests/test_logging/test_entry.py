# src/users_api/tests/test_logging/test_entry.py
import json
import logging
import sys
from datetime import date, datetime, timedelta, timezone

from users_api.core.logging.context import RequestContext
from users_api.core.logging.entry import build_entry, entry_from_record, utc_timestamp
from users_api.core.logging.levels import LogLevel

REQUEST = RequestContext(
    request_id="abc",
    method="GET",
    url="/users",
    ip="10.0.0.4",
    user_agent="curl/8.5",
)


def test_entry_carries_level_message_and_context_label():
    entry = build_entry("info", "hello", context="UsersService")
    data = entry.to_dict()
    assert data["level"] == "info"
    assert data["message"] == "hello"
    assert data["context"] == "UsersService"
    assert "error" not in data


def test_request_context_and_metadata_are_merged():
    data = build_entry(LogLevel.INFO, "Fetched user", REQUEST, {"user_id": 7}).to_dict()
    assert data["request_id"] == "abc"
    assert data["user_agent"] == "curl/8.5"
    assert data["ip"] == "10.0.0.4"
    assert data["method"] == "GET"
    assert data["url"] == "/users"
    assert data["user_id"] == 7


def test_metadata_wins_over_request_context_on_collision():
    data = build_entry("info", "m", REQUEST, {"url": "/override"}).to_dict()
    assert data["url"] == "/override"


def test_fixed_fields_cannot_be_overridden_by_metadata():
    data = build_entry("warn", "real", metadata={"level": "debug", "message": "fake", "timestamp": "x"}).to_dict()
    assert data["level"] == "warn"
    assert data["message"] == "real"
    assert data["timestamp"] != "x"


def test_no_request_context_outside_a_request():
    data = build_entry("info", "boot").to_dict()
    assert "request_id" not in data
    assert "url" not in data


def test_missing_metadata_is_an_empty_mapping():
    assert dict(build_entry("info", "m").metadata) == {}


def test_non_mapping_metadata_is_kept_under_a_key():
    data = build_entry("info", "m", metadata=["a", "b"]).to_dict()
    assert data["metadata"] == ["a", "b"]


def test_non_string_message_is_stringified():
    assert build_entry("info", 404).message == "404"


def test_error_holds_traceback_of_the_failure():
    try:
        raise RuntimeError("db down")
    except RuntimeError as exc:
        failure = exc
    data = build_entry("error", "Could not save", error=failure).to_dict()
    assert "Traceback" in data["error"]
    assert "RuntimeError: db down" in data["error"]


def test_caller_error_key_is_dropped_without_a_failure():
    data = build_entry("error", "m", metadata={"error": "not a trace"}).to_dict()
    assert "error" not in data


def test_timestamp_is_utc_iso8601_with_milliseconds():
    now = datetime(2026, 10, 19, 8, 30, 0, 123456, tzinfo=timezone.utc)
    assert utc_timestamp(now) == "2026-10-19T08:30:00.123+00:00"


def test_timestamp_is_normalised_to_utc():
    local = datetime(2026, 10, 19, 1, 0, tzinfo=timezone(timedelta(hours=-5)))
    entry = build_entry("info", "m", now=local)
    assert entry.timestamp.startswith("2026-10-19T06:00:00.000")
    assert entry.date == date(2026, 10, 19)


def test_to_json_never_fails_on_unserializable_values():
    payload = json.loads(build_entry("info", "m", metadata={"when": date(2026, 1, 2)}).to_json())
    assert payload["when"] == "2026-01-02"


def test_entry_from_foreign_record():
    record = logging.LogRecord("uvicorn.error", logging.WARNING, __file__, 1, "port %d busy", (3000,), None)
    record.port = 3000
    entry = entry_from_record(record, REQUEST)
    assert entry.level is LogLevel.WARN
    assert entry.message == "port 3000 busy"
    assert entry.context == "uvicorn.error"
    assert entry.metadata["port"] == 3000
    assert entry.request_id == "abc"


def test_entry_from_record_with_exception_and_bad_args():
    try:
        raise ValueError("boom")
    except ValueError:
        exc_info = sys.exc_info()
    record = logging.LogRecord("x", logging.ERROR, __file__, 1, "broken %s %s", ("only-one",), exc_info)
    entry = entry_from_record(record)
    assert entry.message == "broken %s %s"
    assert "ValueError: boom" in entry.error
