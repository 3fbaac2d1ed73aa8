# src/users_api/core/logging/middleware.py
"""
Request logging middleware for FastAPI / Starlette.

Purpose
-------
For every inbound HTTP request this middleware:

1. stores the request's context (request id, client IP, user agent, method,
   URL) in the request context store, so every entry logged while handling the
   request carries it. An incoming `X-Request-ID` is reused when it is safe to
   log; otherwise a new id is generated (see context.py);
2. forwards the request to the application;
3. returns the request id to the client in the `X-Request-ID` response header;
4. writes one summary line when the response is ready:

       HTTP GET /users/7 - 200 (12ms)
       {"method": "GET", "url": "/users/7", "status": 200, "duration": "12ms",
        "user_agent": "...", "ip": "10.0.0.4", ...request context...}

   If the application raises, the line is written at error level with the
   failure and status 500, and the exception propagates to the framework's
   error handling;
5. resets the context in a `finally` block.

Integration
-----------
Register it once, early, after setup_logging():

    app.add_middleware(RequestLoggingMiddleware)

Concurrency model
-----------------
The context lives in a contextvar set inside `dispatch()`. Starlette runs the
downstream app in a task that inherits this context, and sync endpoints run in
a threadpool with the context copied in, so every request sees only its own
context, however many are in flight.
"""

import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.types import ASGIApp

from .context import current_context, reset_request, set_request
from .logger import AppLogger, get_logger

REQUEST_ID_RESPONSE_HEADER = "X-Request-ID"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Starlette / FastAPI middleware that sets the request context for each
    incoming request and logs one summary line per request.

    Args:
        app: the downstream ASGI app.
        logger: facade to log through; defaults to the process-wide get_logger().
    """

    def __init__(self, app: ASGIApp, logger: AppLogger | None = None) -> None:
        super().__init__(app)
        self._logger = logger

    @property
    def logger(self) -> AppLogger:
        # resolved lazily so setup_logging() may run after the app is built
        return self._logger or get_logger()

    async def dispatch(self, request: Request, call_next):
        start = time.perf_counter()
        ip = request.client.host if request.client else None
        target = request.url.path + (f"?{request.url.query}" if request.url.query else "")
        token = set_request(request.headers, request.method, target, ip)
        request_id = current_context().request_id

        summary = {
            "method": request.method,
            "url": target,
            "user_agent": request.headers.get("user-agent"),
            "ip": ip,
        }
        try:
            try:
                response = await call_next(request)
            except Exception as exc:
                duration = round((time.perf_counter() - start) * 1000)
                self.logger.error(
                    f"HTTP {request.method} {target} - 500 ({duration}ms)",
                    exc,
                    {**summary, "status": 500, "duration": f"{duration}ms"},
                )
                raise

            response.headers[REQUEST_ID_RESPONSE_HEADER] = request_id
            duration = round((time.perf_counter() - start) * 1000)
            self.logger.log(
                f"HTTP {request.method} {target} - {response.status_code} ({duration}ms)",
                {**summary, "status": response.status_code, "duration": f"{duration}ms"},
            )
            return response
        finally:
            reset_request(token)
