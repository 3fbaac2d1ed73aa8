# src/users_api/core/logging/context.py
"""
Request context store and request id generator.

Every log entry produced while a request is being handled carries that
request's metadata (request id, client IP, user agent, method, URL). The
metadata lives in a `contextvars.ContextVar`, not in a field on the logger:

- each asyncio task runs in a copy of its parent's context, so two requests
  handled concurrently by the event loop never see each other's value;
- Starlette runs sync endpoints in a threadpool with the caller's context
  copied in, so the same holds for `def` endpoints;
- plain threads start from an empty context, so a worker thread only sees a
  request context it set itself.

Lifecycle
---------
1. Middleware calls `set_request(headers, method, url, ip)` when a request
   arrives and keeps the returned token.
2. Application code logs through the facade; the entry formatter reads
   `current_context()`.
3. Middleware calls `reset_request(token)` in a `finally` block, restoring
   whatever was there before (normally nothing).

`request_scope(...)` wraps steps 1 and 3 for code that is not an HTTP
request (background jobs, scripts, tests).

Security
--------
An incoming `X-Request-ID` is echoed into every log line, so it is only
trusted when it is short and free of control characters (no log injection
through embedded newlines). Anything else is replaced with a generated id.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

REQUEST_ID_HEADER = "x-request-id"
USER_AGENT_HEADER = "user-agent"
MAX_REQUEST_ID_LENGTH = 128


@dataclass(frozen=True)
class RequestContext:
    """Metadata of the inbound request currently being handled."""

    request_id: str
    method: str
    url: str
    ip: str | None = None
    user_agent: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "request_id": self.request_id,
            "user_agent": self.user_agent,
            "ip": self.ip,
            "method": self.method,
            "url": self.url,
        }


# Default is None to indicate "no request is being handled in this context".
_request_ctx: contextvars.ContextVar[RequestContext | None] = contextvars.ContextVar(
    "request_context", default=None
)


def generate_request_id() -> str:
    """
    Return a fresh opaque request id (32 hex chars from uuid4).

    Unique enough to correlate the log lines of one request; not a security token.
    """
    return uuid.uuid4().hex


def _is_usable_request_id(value: str) -> bool:
    if not value or len(value) > MAX_REQUEST_ID_LENGTH:
        return False
    return value.isprintable()


def _header(headers: Mapping[str, str] | None, name: str) -> str | None:
    if not headers:
        return None
    # Starlette's Headers is already case-insensitive; plain dicts are not.
    value = headers.get(name)
    if value is None:
        for key, candidate in headers.items():
            if key.lower() == name:
                value = candidate
                break
    return value


def resolve_request_id(headers: Mapping[str, str] | None) -> str:
    """Use the upstream X-Request-ID when it is safe to log, else generate one."""
    incoming = _header(headers, REQUEST_ID_HEADER)
    if incoming is not None:
        incoming = incoming.strip()
        if _is_usable_request_id(incoming):
            return incoming
    return generate_request_id()


def set_request(
    headers: Mapping[str, str] | None,
    method: str,
    url: str,
    ip: str | None = None,
) -> contextvars.Token:
    """
    Build the RequestContext for an inbound request and store it for the
    current logical execution, replacing any previous value there.

    Returns:
        token: pass it to reset_request() when the request is done.
    """
    context = RequestContext(
        request_id=resolve_request_id(headers),
        method=method,
        url=url,
        ip=ip,
        user_agent=_header(headers, USER_AGENT_HEADER),
    )
    return _request_ctx.set(context)


def reset_request(token: contextvars.Token) -> None:
    """Restore the context that was active before the matching set_request()."""
    _request_ctx.reset(token)


def clear_request() -> None:
    _request_ctx.set(None)


def current_context() -> RequestContext | None:
    """
    Retrieve the current context's request metadata.

    Returns:
        The RequestContext, or None when no request is being handled.
    """
    return _request_ctx.get()


@contextmanager
def request_scope(
    headers: Mapping[str, str] | None = None,
    method: str = "-",
    url: str = "-",
    ip: str | None = None,
) -> Iterator[RequestContext]:
    """
    Set a request context for the duration of a `with` block.

    Example:
        with request_scope({"x-request-id": "job-42"}, "JOB", "cleanup"):
            logger.log("Starting scheduled cleanup")
    """
    token = set_request(headers, method, url, ip)
    try:
        yield _request_ctx.get()
    finally:
        reset_request(token)
