"""
Core Configuration Module
Uses pydantic-settings for environment variable management.
All secrets loaded from .env file - NEVER hardcode secrets.
"""
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    project_name: str = "Housing Desk"
    environment: str = Field(default="development", description="development | staging | production")
    debug: bool = Field(default=True)
    api_v1_str: str = "/api/v1"
    app_version: str = Field(default="1.0.0", description="Application version")

    # Database - PostgreSQL in deployments, sqlite+aiosqlite for local runs
    database_url: str = Field(
        default="postgresql+asyncpg://housing:housing_secret@db:5432/housing_desk",
        description="Full database URL",
    )
    db_pool_size: int = Field(default=20, description="SQLAlchemy connection pool size")
    db_max_overflow: int = Field(default=10, description="Max overflow connections")
    db_echo: bool = Field(default=False, description="Echo SQL queries")
    run_db_init: bool = False

    # Security
    secret_key: str = Field(default="CHANGE_ME_IN_PRODUCTION", description="JWT secret key")
    algorithm: str = Field(default="HS256", description="JWT Algorithm")
    access_token_expire_minutes: int = Field(default=60 * 24, description="Token expiry in minutes")

    # CORS
    cors_origins: str = Field(default="http://localhost:5173", description="Comma-separated CORS origins")

    # Celery
    celery_broker_url: str = Field(default="redis://redis:6379/0", description="Celery broker URL")
    celery_result_backend: str = Field(default="redis://redis:6379/0", description="Celery result backend")

    # Sentry (Error Tracking)
    sentry_dsn: str = Field(default="", description="Sentry DSN for error tracking")
    sentry_traces_sample_rate: float = Field(default=0.1, description="Sentry traces sample rate")

    # Prometheus
    prometheus_enabled: bool = Field(default=True, description="Enable Prometheus metrics")

    # Requests & reschedule negotiation
    request_number_start: int = Field(default=1001, description="First request number")
    reschedule_ttl_hours: int = Field(default=24, description="Hours until a reschedule proposal expires")
    reschedule_confirmed_window_hours: int = Field(
        default=24,
        description="How long an accepted reschedule is shown as recently confirmed",
    )

    # Realtime
    sse_heartbeat_seconds: float = Field(default=30.0, description="SSE heartbeat interval")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def async_database_url(self) -> str:
        """Normalise the configured URL to an async driver."""
        url = self.database_url
        if self.is_sqlite:
            if not url.startswith("sqlite+aiosqlite"):
                url = url.replace("sqlite://", "sqlite+aiosqlite://", 1)
            return url
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        if not url.startswith("postgresql+asyncpg"):
            url = url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return url


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
