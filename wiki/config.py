"""Application Configuration — environment-driven settings via pydantic-settings.

Invariants:
    - Settings are frozen: built once at startup, passed to constructors, never mutated
    - get_settings() is cached (lru_cache) — single instance per process
    - database_max_pool_size bounds concurrent connections (default 30)
    - bus_request_timeout_seconds > database_query_timeout_seconds, so a stalled
      or starved database call fails as DB_ERROR before the bus gives up

Design Decisions:
    - pydantic-settings over raw os.environ: validation, type coercion, .env file support
    - Defaults provided for every setting: a file-backed SQLite wiki works out-of-the-box
    - database_driver overrides the URL's driver name, so one URL can target another DBAPI
"""

from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL, make_url


class Settings(BaseSettings):
    """Application settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=False, frozen=True,
    )

    # Database
    database_url: str = "sqlite+aiosqlite:///db/wiki.db"
    database_driver: str | None = None
    database_max_pool_size: int = Field(30, ge=1)
    database_pool_timeout_seconds: float = Field(30.0, gt=0)
    database_query_timeout_seconds: float = Field(30.0, gt=0)
    sql_queries_file: str | None = None

    @field_validator("database_url", mode="before")
    @classmethod
    def convert_postgres_url(cls, v: str) -> str:
        """Hosted Postgres hands out postgresql:// but asyncpg needs postgresql+asyncpg://."""
        if isinstance(v, str) and v.startswith("postgresql://"):
            return v.replace("postgresql://", "postgresql+asyncpg://", 1)
        return v

    @model_validator(mode="after")
    def check_timeout_order(self) -> "Settings":
        if self.bus_request_timeout_seconds <= self.database_query_timeout_seconds:
            raise ValueError(
                "bus_request_timeout_seconds must be greater than "
                "database_query_timeout_seconds",
            )
        return self

    # Message bus
    wikidb_queue: str = "wikidb.queue"
    wikidb_consumers: int = Field(1, ge=1)
    # Must outlast a database call, so storage failures arrive as DB_ERROR
    bus_request_timeout_seconds: float = Field(35.0, gt=0)

    # HTTP
    http_server_port: int = 8080

    # Backup export
    backup_api_url: str = "https://api.github.com/gists"
    backup_api_token: str | None = None
    backup_public: bool = True
    backup_timeout_seconds: float = 30.0

    # Observability
    log_level: str = "INFO"
    log_format: str = "json"

    def resolved_database_url(self) -> URL:
        """Database URL with database_driver applied (if set)."""
        url = make_url(self.database_url)
        if self.database_driver:
            url = url.set(drivername=self.database_driver)
        return url


@lru_cache
def get_settings() -> Settings:
    return Settings()
