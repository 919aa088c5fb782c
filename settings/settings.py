import logging

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings

from app.environment import EnvironmentName
from settings.log import LoggingSettings


class DatabaseSettings(BaseSettings):
    host: str = Field(alias="DATABASE_HOST", default="postgresql://localhost:5432")
    name: str = Field(alias="DATABASE_NAME", default="mailmirror")
    min_pool_size: int = Field(alias="DATABASE_MIN_POOL_SIZE", default=5)
    max_pool_size: int = Field(alias="DATABASE_MAX_POOL_SIZE", default=20)

    @property
    def async_host(self) -> str:
        """Return the host URL with async driver for SQLAlchemy async engine."""
        return self.host.replace("postgresql://", "postgresql+asyncpg://", 1)

    @property
    def url(self) -> str:
        return f"{self.async_host}/{self.name}"


class GoogleSettings(BaseSettings):
    client_id: str = Field(alias="GOOGLE_CLIENT_ID", default="")
    client_secret: str = Field(alias="GOOGLE_CLIENT_SECRET", default="")
    redirect_uri: str = Field(alias="GOOGLE_REDIRECT_URI", default="")
    request_timeout: int = Field(alias="GOOGLE_REQUEST_TIMEOUT", default=30)


class SessionSettings(BaseSettings):
    ttl_hours: int = Field(alias="SESSION_TTL_HOURS", default=24)
    issuer: str = Field(alias="SESSION_ISSUER", default="mailmirror")
    audience: str = Field(alias="SESSION_AUDIENCE", default="mailmirror-users")


class SyncSettings(BaseSettings):
    default_page_size: int = Field(alias="SYNC_DEFAULT_PAGE_SIZE", default=20)
    max_page_size: int = Field(alias="SYNC_MAX_PAGE_SIZE", default=100)
    max_concurrent_fetches: int = Field(alias="SYNC_MAX_CONCURRENT_FETCHES", default=10)


class RateLimitSettings(BaseSettings):
    enabled: bool = Field(alias="RATE_LIMIT_ENABLED", default=True)
    api_max_requests: int = Field(alias="RATE_LIMIT_API_MAX_REQUESTS", default=100)
    api_window_seconds: int = Field(alias="RATE_LIMIT_API_WINDOW_SECONDS", default=15 * 60)
    auth_max_requests: int = Field(alias="RATE_LIMIT_AUTH_MAX_REQUESTS", default=5)
    auth_window_seconds: int = Field(alias="RATE_LIMIT_AUTH_WINDOW_SECONDS", default=15 * 60)
    email_max_requests: int = Field(alias="RATE_LIMIT_EMAIL_MAX_REQUESTS", default=30)
    email_window_seconds: int = Field(alias="RATE_LIMIT_EMAIL_WINDOW_SECONDS", default=60)


class SentrySettings(BaseSettings):
    dsn: str | None = Field(alias="SENTRY_DSN", default=None)

    @property
    def is_enabled(self) -> bool:
        return bool(self.dsn)


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "extra": "allow"}

    environment: EnvironmentName = Field(alias="ENVIRONMENT")
    session_secret: str = Field(alias="SESSION_SECRET")
    token_encryption_key: str = Field(alias="TOKEN_ENCRYPTION_KEY")
    frontend_url: str = Field(alias="FRONTEND_URL", default="http://localhost:3000")

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    google: GoogleSettings = Field(default_factory=GoogleSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    sentry: SentrySettings = Field(default_factory=SentrySettings)

    @field_validator("environment", mode="before")
    def set_environment(cls, value: str, info: ValidationInfo) -> EnvironmentName:
        try:
            return EnvironmentName(value)
        except ValueError:
            logging.getLogger(__name__).warning(f"Invalid environment: {value}")
            return EnvironmentName.DEVELOPMENT
