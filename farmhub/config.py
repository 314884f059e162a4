"""
Configuration management for FarmHub.

Uses Pydantic Settings for type-safe environment variable loading.
Configured via .env file in project root.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be configured via .env file or environment variables.
    """

    # Python & Application
    python_env: Literal["development", "production"] = Field(
        default="development",
        description="Application environment"
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./data/farmhub.db",
        description="Database connection URL"
    )

    # API Configuration
    api_host: str = Field(
        default="0.0.0.0",
        description="API server host"
    )
    api_port: int = Field(
        default=8000,
        description="API server port"
    )
    api_reload: bool = Field(
        default=True,
        description="Enable auto-reload in development"
    )

    # Timezone used to decide what "today" is for past-date validation
    timezone: str = Field(
        default="Asia/Kolkata",
        description="IANA timezone name used for calendar-day validation"
    )

    # Identity (issued by the upstream auth layer)
    identity_header: str = Field(
        default="X-User-ID",
        description="Header carrying the authenticated user id"
    )

    # Notifications
    notification_backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Live notification registry backend"
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis URL for the shared notification backend"
    )
    notification_channel_prefix: str = Field(
        default="farmhub:notifications",
        description="Pub/sub channel prefix, one channel per user"
    )
    sse_keepalive_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Interval between keep-alive comment frames on event streams"
    )

    # Inventory
    low_stock_threshold: int = Field(
        default=5,
        ge=0,
        description="Available quantity at or below which a supply counts as low stock"
    )
    clamp_restored_stock: bool = Field(
        default=True,
        description="Cap restored stock at the supply's total quantity"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.python_env == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.python_env == "production"

    @property
    def uses_postgresql(self) -> bool:
        """Check if PostgreSQL is the configured database."""
        return "postgresql" in self.database_url.lower()

    @property
    def uses_redis_notifications(self) -> bool:
        """Check if live notifications are shared through Redis."""
        return self.notification_backend == "redis"

    def validate_production_config(self) -> None:
        """
        Validate configuration for production environment.

        Raises:
            ValueError: If required production settings are missing or invalid
        """
        if not self.is_production:
            return

        errors = []

        if not self.uses_postgresql:
            errors.append(
                "Production requires PostgreSQL. "
                "Set DATABASE_URL to a PostgreSQL connection string."
            )

        if self.uses_redis_notifications and not self.redis_url:
            errors.append("REDIS_URL is required when NOTIFICATION_BACKEND=redis.")

        if errors:
            raise ValueError("Production configuration errors:\n- " + "\n- ".join(errors))


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Use this function throughout the application to access settings.

    Example:
        >>> from farmhub.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.database_url)
    """
    return Settings()
