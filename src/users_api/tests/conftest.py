"""
Core pytest configuration for the entire test suite.

This module provides only the essentials every test module needs:
- quiet third-party loggers
- a Settings factory pointed at a temporary log directory
- teardown that stops the logging pipeline and clears request context

Logging-specific fixtures (recording sinks, a facade wired to them, a mock
Elasticsearch transport) are located in:
- tests/test_fixtures/logging_fixtures.py
"""

from __future__ import annotations

# -------------------------------
# Standard library imports
# -------------------------------
import logging
from pathlib import Path
from typing import Callable

# -------------------------------
# Early logging tuning (IMPORTANT)
# -------------------------------
# Set the level for noisy third-party loggers at import time, before importing
# modules that might initialize them.
NOISY_LOGGERS = (
    "asyncio",
    "httpx",
    "httpcore",
)
for _name in NOISY_LOGGERS:
    logging.getLogger(_name).setLevel(logging.WARNING)

# -------------------------------
# Third-party / project imports
# -------------------------------
import pytest

from users_api.config.settings import Settings
from users_api.core.logging.builder import stop_logging
from users_api.core.logging.context import clear_request
from users_api.core.logging.logger import set_logger


@pytest.fixture(autouse=True)
def isolate_logging():
    """
    Stop whatever pipeline a test started and forget the process-wide facade,
    so no listener thread or open log file leaks into the next test.
    """
    yield
    stop_logging()
    set_logger(None)
    clear_request()
    # The console handler wrote to a capsys buffer that is gone after the test.
    root = logging.getLogger()
    for handler in list(root.handlers):
        if handler.name == "console":
            root.removeHandler(handler)


@pytest.fixture
def log_dir(tmp_path: Path) -> Path:
    return tmp_path / "logs"


@pytest.fixture
def make_settings(log_dir: Path) -> Callable[..., Settings]:
    """
    Build Settings for a test: files under tmp_path, no Elasticsearch, no
    queues, no colors. Keyword arguments override any field.
    """

    def _make(**overrides) -> Settings:
        values = {
            "ENV": "testing",
            "LOG_DIR": log_dir,
            "LOG_CONSOLE_COLORS": False,
            "ELASTICSEARCH_ENABLED": False,
            "LOG_USE_QUEUE": False,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


# Logging test fixtures
from .test_fixtures.logging_fixtures import (  # noqa: E402,F401
    recording_handler,
    memory_logger,
    es_requests,
    es_client,
)
