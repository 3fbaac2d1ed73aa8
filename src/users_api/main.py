"""
Application factory and process bootstrap.

    users-api                 # console script -> main()

Logging is configured before anything else. If it cannot start (for example
the log directory is not writable) the process exits with status 1 instead of
serving requests without its logging guarantee.
"""

import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from users_api.config.settings import Settings, get_settings
from users_api.core.logging import RequestLoggingMiddleware, get_logger, setup_logging, stop_logging
from users_api.exceptions import LoggingInitError
from users_api.utils.metadata import DISTRIBUTION_NAME, get_project_version


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # flush queued entries to every sink before the process goes away
    stop_logging()


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the FastAPI app with the logging pipeline installed.

    Raises:
        LoggingInitError: when the logging pipeline cannot start.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(title=DISTRIBUTION_NAME, version=get_project_version(), lifespan=lifespan)
    app.add_middleware(RequestLoggingMiddleware)

    @app.get("/health")
    async def health() -> dict:
        get_logger().debug("Health probe")
        return {"status": "ok"}

    return app


def main() -> None:
    settings = get_settings()
    try:
        app = create_app(settings)
    except LoggingInitError as exc:
        print(f"Logging system failed! {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    get_logger().log(f"App is running on port {settings.APP_PORT}", {"host": settings.APP_HOST})
    # log_config=None: keep our dictConfig instead of uvicorn's default one
    uvicorn.run(app, host=settings.APP_HOST, port=settings.APP_PORT, log_config=None)


if __name__ == "__main__":
    main()
