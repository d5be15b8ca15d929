"""
MomoXRSS Configuration System
=============================

Configuration management with environment variables and Pydantic models.
Environment variables (prefix ``MOMOXRSS_``, nested with ``__``) override
Field defaults.
"""

from pathlib import Path
from typing import Optional
from enum import Enum

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from ..utils.exceptions import ConfigurationError, ErrorCode


class LogLevel(str, Enum):
    """Available log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class DiscordSettings(BaseModel):
    """Discord REST API configuration."""
    bot_token: Optional[str] = Field(default=None, description="Discord bot token")
    api_base: str = Field(default="https://discord.com/api/v10", description="Discord REST API base URL")
    user_agent: str = Field(
        default="MomoXRSS (https://github.com/Kratos44250/MomoXRSS)",
        description="User-Agent sent on every Discord request",
    )
    max_retries: int = Field(default=2, ge=0, le=10, description="Additional attempts after a 429")
    default_retry_after_ms: int = Field(default=1000, ge=0, description="Backoff when Discord gives no usable delay")
    request_timeout: int = Field(default=30, ge=5, le=300, description="Per-request timeout in seconds")

    @field_validator("bot_token")
    @classmethod
    def validate_bot_token(cls, v):
        """Treat blank tokens as unset."""
        if v is not None and not v.strip():
            return None
        return v.strip() if v else v


class SchedulerSettings(BaseModel):
    """Polling loop configuration."""
    enabled: bool = Field(default=True, description="Run the polling loop alongside the API")
    tick_seconds: float = Field(default=60.0, gt=0, description="Seconds between scheduler ticks")
    default_interval_ms: int = Field(default=60000, ge=1, description="Interval used when a stored one is unusable")


class FetcherSettings(BaseModel):
    """Feed retrieval configuration."""
    timeout_seconds: float = Field(default=20.0, gt=0, description="Hard upper bound for fetch + parse")
    request_timeout_seconds: float = Field(default=15.0, gt=0, description="aiohttp client timeout")
    preview_items: int = Field(default=5, ge=1, le=50, description="Items returned by the test-parse endpoint")


class ApiSettings(BaseModel):
    """Management API configuration."""
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, ge=1, le=65535, description="Bind port")
    api_key: Optional[str] = Field(default=None, description="Shared secret expected in X-API-Key")
    allowed_origin: str = Field(default="*", description="CORS allowed origin")
    default_add_interval_ms: int = Field(default=300000, ge=60000, description="Interval when /add omits one")


class DatabaseSettings(BaseModel):
    """Database configuration."""
    path: str = Field(default="data/momoxrss.db", description="SQLite database file path")
    pool_size: int = Field(default=5, ge=1, le=20, description="Connection pool size")


class LoggingSettings(BaseModel):
    """Logging configuration."""
    level: LogLevel = Field(default=LogLevel.INFO, description="Global log level")
    file_path: Optional[str] = Field(default="logs/momoxrss.log", description="Log file path")
    max_file_size_mb: int = Field(default=10, ge=1, le=100, description="Max log file size in MB")
    backup_count: int = Field(default=5, ge=1, le=20, description="Number of log backup files")
    structured_logging: bool = Field(default=False, description="Use structured JSON logging")
    console_logging: bool = Field(default=True, description="Enable console logging")


class MomoXRSSSettings(BaseSettings):
    """Main application settings."""

    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    scheduler: SchedulerSettings = Field(default_factory=SchedulerSettings)
    fetcher: FetcherSettings = Field(default_factory=FetcherSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    app_name: str = Field(default="MomoXRSS", description="Application name")
    version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "env_nested_delimiter": "__",
        "env_prefix": "MOMOXRSS_",
        "extra": "ignore",
    }

    def validate_configuration(self) -> None:
        """Validate complete configuration."""
        errors = []

        try:
            db_path = Path(self.database.path)
            db_path.parent.mkdir(parents=True, exist_ok=True)
        except Exception as e:
            errors.append(f"Invalid database path: {e}")

        if self.logging.file_path:
            try:
                log_path = Path(self.logging.file_path)
                log_path.parent.mkdir(parents=True, exist_ok=True)
            except Exception as e:
                errors.append(f"Invalid log file path: {e}")

        if errors:
            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}",
                error_code=ErrorCode.CONFIG_INVALID
            )

    def get_effective_log_level(self) -> str:
        """Get effective log level considering debug mode."""
        if self.debug:
            return "DEBUG"
        return self.logging.level.value


def load_settings() -> MomoXRSSSettings:
    """Load settings from environment variables and defaults.

    Returns:
        Loaded and validated settings

    Raises:
        ConfigurationError: If configuration is invalid
    """
    from dotenv import load_dotenv
    load_dotenv()

    try:
        settings = MomoXRSSSettings()
        settings.validate_configuration()
        return settings

    except Exception as e:
        if isinstance(e, ConfigurationError):
            raise
        raise ConfigurationError(
            f"Failed to initialize settings: {e}",
            error_code=ErrorCode.CONFIG_INVALID
        )


# Global settings instance
_settings: Optional[MomoXRSSSettings] = None


def get_settings(reload: bool = False) -> MomoXRSSSettings:
    """Get global settings instance (singleton pattern).

    Args:
        reload: Force reload of settings

    Returns:
        Global settings instance
    """
    global _settings

    if _settings is None or reload:
        _settings = load_settings()

    return _settings
