"""
Application configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).
Each concern gets its own sub-config; AppSettings composes them in a
model_validator so every sub-config reads the same env/dotenv source.
"""

from __future__ import annotations

from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class DatabaseSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    mongodb_uri: str
    db_name: str = "devlink"


class RedisSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Optional; only the health check uses it
    redis_uri: Optional[str] = None


class OtpSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    otp_expiry_seconds: int = Field(default=600, gt=0)
    otp_max_attempts: int = Field(default=3, gt=0)
    # 0 disables the in-process sweep (the TTL index still applies)
    otp_purge_interval_seconds: int = Field(default=300, ge=0)


class RateLimitSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # None means "on in production, off everywhere else"
    rate_limit_enabled: Optional[bool] = None
    rate_limit_storage_uri: str = "async+memory://"

    otp_issue_limit: str = "3 per 15 minutes"
    otp_verify_limit: str = "5 per 10 minutes"


class EmailSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    zepto_api_token: str = ""
    zepto_from_email: str = "noreply@devlink.dev"
    zepto_from_name: str = "DevLink"
    email_timeout_seconds: float = 10.0


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: Optional[str] = None  # json in production, console otherwise


class SentrySettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    sentry_dsn: str = ""
    sentry_send_pii: bool = False
    sentry_traces_sample_rate: float = 0.1
    sentry_profile_sample_rate: float = 0.05


class AppSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_url: str = "https://devlink.dev"
    app_name: str = "DevLink"

    cors_origins: list[str] = ["*"]

    # OpenAPI docs URL (None disables the docs UI in production)
    docs_url: Optional[str] = "/docs"

    # Sub-configs (composed via model_validator below)
    db: Optional[DatabaseSettings] = None
    redis: Optional[RedisSettings] = None
    otp: Optional[OtpSettings] = None
    rate_limit: Optional[RateLimitSettings] = None
    email: Optional[EmailSettings] = None
    logging: Optional[LoggingSettings] = None
    sentry: Optional[SentrySettings] = None

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "AppSettings":
        if self.db is None:
            self.db = DatabaseSettings()
        if self.redis is None:
            self.redis = RedisSettings()
        if self.otp is None:
            self.otp = OtpSettings()
        if self.rate_limit is None:
            self.rate_limit = RateLimitSettings()
        if self.email is None:
            self.email = EmailSettings()
        if self.logging is None:
            self.logging = LoggingSettings()
        if self.sentry is None:
            self.sentry = SentrySettings()

        return self

    @property
    def is_production(self) -> bool:
        return self.env == "production"

    @property
    def rate_limiting_active(self) -> bool:
        """Explicit RATE_LIMIT_ENABLED wins; otherwise only production throttles."""
        if self.rate_limit.rate_limit_enabled is not None:
            return self.rate_limit.rate_limit_enabled
        return self.is_production
