"""
Configuration management for RSS Mailer.

Uses Pydantic for validation and pydantic-settings for environment variable support.
"""

from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _validate_timezone(v: str) -> str:
    try:
        ZoneInfo(v)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {v!r}") from e
    return v


class DatabaseConfig(BaseSettings):
    """Database configuration.

    The database holds the per-feed check state and the outbox of mails
    waiting for delivery. Only SQLite is supported.
    """

    model_config = SettingsConfigDict(env_prefix="DB_")

    path: str = Field(default="data/rss_mailer.db", description="Database file path")
    echo: bool = Field(default=False, description="Echo SQL statements")

    @field_validator("path")
    @classmethod
    def ensure_directory_exists(cls, v: str) -> str:
        """Ensure the database directory exists."""
        if v != ":memory:":
            Path(v).parent.mkdir(parents=True, exist_ok=True)
        return v


class FetcherConfig(BaseSettings):
    """HTTP fetcher configuration."""

    model_config = SettingsConfigDict(env_prefix="FETCHER_")

    # HTTP settings
    timeout_seconds: int = Field(default=30, ge=1, le=300, description="Request timeout")
    user_agent: str = Field(
        default="rss-mailer/0.1.0",
        description="User-Agent header"
    )

    # Retry settings
    max_retries: int = Field(default=2, ge=0, le=10)
    retry_delay_seconds: float = Field(default=5, ge=0)

    # Follow redirects
    follow_redirects: bool = Field(default=True)
    max_redirects: int = Field(default=5, ge=0, le=20)

    # Concurrency
    max_concurrency: int = Field(
        default=10, ge=1, le=100,
        description="Maximum number of feeds fetched at the same time"
    )
    max_content_length: int = Field(
        default=5_000_000,
        ge=1_000,
        description="Maximum response size in bytes"
    )


class CheckerConfig(BaseSettings):
    """Feed check engine configuration."""

    model_config = SettingsConfigDict(env_prefix="CHECKER_")

    grace_period_seconds: int = Field(
        default=2_678_400,
        ge=0,
        description="How long an entry id is remembered after it left the feed"
    )
    timezone: str = Field(default="UTC", description="Timezone for wall-clock refresh policies")
    default_refresh_hours: float = Field(default=6.0, gt=0, description="Refresh used when a feed sets none")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate timezone name."""
        return _validate_timezone(v)


class SchedulerConfig(BaseSettings):
    """Daemon scheduler configuration."""

    model_config = SettingsConfigDict(env_prefix="SCHEDULER_")

    interval_minutes: int = Field(default=15, ge=1, description="Minutes between check cycles")
    timezone: str = Field(default="UTC", description="Scheduler timezone")
    misfire_grace_time: int = Field(default=300, ge=0, description="Misfire grace time in seconds")
    coalesce: bool = Field(default=True, description="Coalesce misfired cycles")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Validate timezone name."""
        return _validate_timezone(v)


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(
        default="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        description="Log format"
    )

    # File logging
    file_enabled: bool = Field(default=True, description="Enable file logging")
    file_path: str = Field(default="logs/rss_mailer.log", description="Log file path")
    rotation: str = Field(default="10 MB", description="Log rotation size")
    retention: str = Field(default="30 days", description="Log retention period")

    # Console logging
    console_enabled: bool = Field(default=True, description="Enable console logging")

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"]
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v

    @field_validator("file_path")
    @classmethod
    def ensure_directory_exists(cls, v: str) -> str:
        """Ensure the log directory exists."""
        Path(v).parent.mkdir(parents=True, exist_ok=True)
        return v


class WebConfig(BaseSettings):
    """Aggregator web endpoint configuration."""

    model_config = SettingsConfigDict(env_prefix="WEB_")

    host: str = Field(default="127.0.0.1", description="Web server host")
    port: int = Field(default=8000, ge=1, le=65535, description="Web server port")
    debug: bool = Field(default=False, description="Debug mode")

    aggregate_title: str = Field(default="Feed aggregator", description="Title of the aggregated feed")
    aggregate_days: int = Field(
        default=7, ge=1, le=365,
        description="Entries older than this many days are left out"
    )


class Config(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RSS_MAILER_",
        case_sensitive=False,
    )

    # Application
    app_name: str = Field(default="RSS Mailer", description="Application name")
    debug: bool = Field(default=False, description="Debug mode")

    # Sub-configurations
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    fetcher: FetcherConfig = Field(default_factory=FetcherConfig)
    checker: CheckerConfig = Field(default_factory=CheckerConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    web: WebConfig = Field(default_factory=WebConfig)

    # Paths
    feeds_file: str = Field(default="config/feeds.yaml", description="Feed list")
    data_dir: str = Field(default="data", description="Data directory")


_NESTED_CONFIGS = {
    "database": DatabaseConfig,
    "fetcher": FetcherConfig,
    "checker": CheckerConfig,
    "scheduler": SchedulerConfig,
    "logging": LoggingConfig,
    "web": WebConfig,
}

# Global configuration instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config


def set_config(config: Config) -> None:
    """Replace the global configuration instance."""
    global _config
    _config = config


def load_config_from_yaml(yaml_path: str) -> Config:
    """Load configuration from a YAML file.

    Note: Values loaded from YAML take precedence over environment variables.

    Args:
        yaml_path: Path to the YAML configuration file.

    Returns:
        Config instance loaded from the file.
    """
    import yaml

    yaml_file = Path(yaml_path)
    if not yaml_file.exists():
        raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

    with yaml_file.open("r", encoding="utf-8") as f:
        config_dict = yaml.safe_load(f) or {}

    main_config = {}
    for key, value in config_dict.items():
        if key in _NESTED_CONFIGS:
            # Nested configs still read their own env vars for missing keys
            main_config[key] = _NESTED_CONFIGS[key](**(value or {}))
        else:
            main_config[key] = value

    return Config(**main_config)


def reload_config() -> Config:
    """Reload configuration from environment and YAML files."""
    global _config
    _config = None

    config_yaml = Path("config/config.yaml")
    if config_yaml.exists():
        _config = load_config_from_yaml(str(config_yaml))
    else:
        _config = Config()

    return _config
