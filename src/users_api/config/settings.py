from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator
from pathlib import Path
from typing import Literal
from functools import lru_cache
from ..validators.config_validators import normalize_level_name, to_lowercase

LevelName = Literal["debug", "verbose", "info", "warn", "error"]


class Settings(BaseSettings):
    """
    Application settings loaded from environment.
    """

    # Environment
    ENV: Literal["development", "testing", "staging", "production"] = "development"

    # HTTP server
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 3000

    # Logger facade
    LOG_CONTEXT: str = "GlobalLogger"

    # Console sink
    LOG_CONSOLE_LEVEL: LevelName = "info"
    LOG_CONSOLE_COLORS: bool = True

    # Daily file sink
    LOG_TO_FILE: bool = True
    LOG_FILE_LEVEL: LevelName = "info"
    LOG_DIR: Path = Path("logs")
    LOG_FILE_PREFIX: str = "app"
    # error records of uvicorn and module loggers
    LOG_ERROR_FILE_PREFIX: str = "error"
    LOG_RETENTION_DAYS: int = 30

    # Elasticsearch sink
    ELASTICSEARCH_ENABLED: bool = True
    ELASTICSEARCH_URL: str = "http://localhost:9200"
    ELASTICSEARCH_LEVEL: LevelName = "warn"
    ELASTICSEARCH_INDEX_PREFIX: str = "logs"
    ELASTICSEARCH_TIMEOUT: float = 2.0
    ELASTICSEARCH_FAILURE_WARNING_THRESHOLD: int = 100

    # Background queues (one per sink)
    LOG_USE_QUEUE: bool = True
    LOG_QUEUE_MAX_SIZE: int = 10_000
    LOG_QUEUE_DROP_WARNING_THRESHOLD: int = 100

    # --- Derived settings ---
    @property
    def sink_levels(self) -> dict[str, str]:
        """
        Minimum level of every enabled sink, keyed by the handler name used in dictConfig.
        """
        levels = {"console": self.LOG_CONSOLE_LEVEL}
        if self.LOG_TO_FILE:
            levels["file"] = self.LOG_FILE_LEVEL
        if self.ELASTICSEARCH_ENABLED:
            levels["elasticsearch"] = self.ELASTICSEARCH_LEVEL
        return levels

    # --- Validators ---
    @field_validator("LOG_CONSOLE_LEVEL", "LOG_FILE_LEVEL", "ELASTICSEARCH_LEVEL", mode="before")
    def normalize_levels(cls, v: str | None) -> str | None:
        """
        Normalize level names before Literal validation.

        Accepts any casing and the stdlib spellings, so LOG_FILE_LEVEL=WARNING
        in the environment becomes "warn".
        """
        return normalize_level_name(v)

    @field_validator("ENV", mode="before")
    def normalize_env(cls, v: str | None) -> str | None:
        return to_lowercase(v)

    @field_validator("ELASTICSEARCH_URL")
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # --- ConfigDict settings ---
    model_config = SettingsConfigDict(
        # Load environment variables from the .env file at the working directory.
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# get_settings() takes no arguments and always returns the same settings from the environment,
# so caching it with @lru_cache() is good for performance.
@lru_cache()
def get_settings() -> Settings:
    return Settings()
