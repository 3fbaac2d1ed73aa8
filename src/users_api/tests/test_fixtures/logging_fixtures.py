"""Fixtures for logging tests."""

from __future__ import annotations

import json
import logging
import threading
import time
import uuid

import httpx
import pytest

from users_api.core.logging.dispatcher import FanOutHandler
from users_api.core.logging.logger import AppLogger


class RecordingHandler(logging.Handler):
    """
    In-memory sink. Keeps every record it handles, optionally sleeping per
    record (slow sink) or waiting on an event before each record (stuck sink).
    """

    def __init__(self, level: int = logging.NOTSET, delay: float = 0.0, gate: threading.Event | None = None):
        super().__init__(level)
        self.records: list[logging.LogRecord] = []
        self.delay = delay
        self.gate = gate

    def emit(self, record: logging.LogRecord) -> None:
        if self.gate is not None:
            self.gate.wait(timeout=5)
        if self.delay:
            time.sleep(self.delay)
        self.records.append(record)

    @property
    def entries(self):
        return [record.entry for record in self.records]


class FailingHandler(logging.Handler):
    """Sink whose every write fails, like a full disk."""

    def __init__(self, level: int = logging.NOTSET):
        super().__init__(level)
        self.attempts = 0

    def emit(self, record: logging.LogRecord) -> None:
        self.attempts += 1
        raise OSError("No space left on device")

    def handleError(self, record: logging.LogRecord) -> None:
        # keep test output clean; the failure boundary is what is under test
        pass


def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def make_facade(*handlers: logging.Handler, use_queue: bool = False, **fan_out_kwargs) -> tuple[AppLogger, FanOutHandler]:
    """
    AppLogger on a private stdlib logger whose only handler is a FanOutHandler
    over the given sinks (named sink0, sink1, ...).
    """
    std_logger = logging.getLogger(f"tests.facade.{uuid.uuid4().hex}")
    std_logger.setLevel(logging.DEBUG)
    std_logger.propagate = False
    fan_out = FanOutHandler(
        {f"sink{i}": handler for i, handler in enumerate(handlers)},
        use_queue=use_queue,
        **fan_out_kwargs,
    )
    std_logger.addHandler(fan_out)
    return AppLogger("GlobalLogger", std_logger), fan_out


@pytest.fixture
def recording_handler() -> RecordingHandler:
    return RecordingHandler()


@pytest.fixture
def memory_logger(recording_handler: RecordingHandler):
    """
    Provide an AppLogger whose single sink is `recording_handler`, dispatched
    synchronously so entries are visible as soon as the call returns.
    """
    facade, fan_out = make_facade(recording_handler)
    yield facade
    facade.stdlib_logger.removeHandler(fan_out)
    fan_out.close()


@pytest.fixture
def es_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def es_client(es_requests: list[httpx.Request]) -> httpx.Client:
    """httpx client whose transport records requests and answers like Elasticsearch."""

    def handler(request: httpx.Request) -> httpx.Response:
        es_requests.append(request)
        return httpx.Response(201, json={"result": "created"})

    client = httpx.Client(transport=httpx.MockTransport(handler))
    yield client
    client.close()


def request_json(request: httpx.Request) -> dict:
    return json.loads(request.content)
