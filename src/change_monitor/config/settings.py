"""
Configuration management for the change monitor service.

Handles environment variables, .env file loading, and provides default
settings with validation for the watcher, storage, notification and API
components.
"""

import fnmatch
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from change_monitor.models.exceptions import ConfigurationError


class LogLevel(str, Enum):
    """Logging level enumeration."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StorageBackend(str, Enum):
    """Storage backend options for change log, targets and accounts."""

    MONGO = "mongo"
    MEMORY = "memory"


class MonitorSettings(BaseSettings):
    """
    Central configuration class for the change monitor service.

    Every option can be overridden with a ``CHANGE_MONITOR_`` prefixed
    environment variable or an entry in a local ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="CHANGE_MONITOR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        use_enum_values=True,
    )

    # === HTTP Server Configuration ===
    host: str = Field(default="127.0.0.1", description="Interface the API server binds to")
    port: int = Field(default=3000, ge=1, le=65535, description="Port the API server listens on")
    cors_origins: list[str] = Field(
        default=["http://localhost:5173"], description="Origins allowed to call the API from a browser"
    )

    # === Storage Configuration ===
    storage_backend: StorageBackend = Field(default=StorageBackend.MONGO, description="Persistence backend")
    mongodb_uri: str = Field(default="mongodb://localhost:27017", description="MongoDB connection string")
    mongodb_database: str = Field(default="change_monitor", description="MongoDB database name")
    mongodb_timeout_ms: int = Field(
        default=5000, ge=100, le=60000, description="Server selection timeout in milliseconds"
    )

    # === File Monitoring Configuration ===
    use_polling: bool = Field(default=False, description="Use the polling observer instead of native OS events")
    coalesce_seconds: float = Field(
        default=0.05, ge=0.0, le=5.0, description="Window after a file signal in which follow-up modifications fold into it"
    )
    observer_join_timeout: float = Field(
        default=5.0, ge=0.1, le=60.0, description="Seconds to wait for the observer thread on stop"
    )
    ignored_patterns: list[str] = Field(
        default=["*.tmp", "*.swp", "*~", ".DS_Store"], description="File patterns never reported"
    )
    ignore_hidden: bool = Field(default=True, description="Skip files below dot-prefixed path components")

    # === Pipeline & Notification Configuration ===
    event_queue_size: int = Field(default=0, ge=0, description="Maximum queued events (0 means unbounded)")
    pipeline_drain_timeout: float = Field(
        default=5.0, ge=0.0, le=120.0, description="Seconds to drain queued events on shutdown"
    )
    broadcast_send_timeout: float = Field(
        default=2.0, ge=0.1, le=60.0, description="Per-subscriber send timeout for broadcasts"
    )
    smtp_host: str | None = Field(default=None, description="SMTP server host (alerts disabled if unset)")
    smtp_port: int = Field(default=587, ge=1, le=65535, description="SMTP server port")
    smtp_user: str | None = Field(default=None, description="SMTP login user")
    smtp_password: str | None = Field(default=None, description="SMTP login password")
    smtp_use_tls: bool = Field(default=True, description="Upgrade the SMTP connection with STARTTLS")
    smtp_sender: str | None = Field(default=None, description="From address (defaults to smtp_user)")
    smtp_timeout: float = Field(default=10.0, ge=1.0, le=120.0, description="SMTP connection timeout")

    # === Authentication Configuration ===
    secret_key: str | None = Field(default=None, description="Signing key for access tokens")
    token_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    token_expiry_seconds: int = Field(default=3600, ge=60, le=604800, description="Access token lifetime")
    admin_secret_key: str | None = Field(default=None, description="Secret required to register admin accounts")
    require_auth: bool = Field(default=False, description="Require an x-token header on monitoring endpoints")
    password_hash_iterations: int = Field(
        default=260000, ge=1000, le=2000000, description="PBKDF2 iterations for password hashing"
    )

    # === Logging Configuration ===
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")
    log_file: Path | None = Field(default=None, description="Log file path (stderr if None)")
    log_format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s", description="Log message format"
    )

    @field_validator('ignored_patterns', 'cors_origins')
    @classmethod
    def strip_blank_entries(cls, v):
        """Drop empty strings from list settings."""
        return [item.strip() for item in v if item and item.strip()]

    @model_validator(mode='after')
    def validate_smtp_settings(self):
        """SMTP credentials come in pairs."""
        if bool(self.smtp_user) != bool(self.smtp_password):
            raise ConfigurationError(
                "smtp_user and smtp_password must be set together",
                config_key="smtp_user",
                expected_type="both or neither",
                actual_value=self.smtp_user,
            )
        return self

    @property
    def alerts_enabled(self) -> bool:
        """Whether an outbound mail transport is configured."""
        return bool(self.smtp_host)

    def should_ignore_file(self, file_path: str | Path) -> bool:
        """Check if a file should be ignored based on the global patterns."""
        path = Path(file_path)
        return any(
            fnmatch.fnmatch(path.name, pattern) or fnmatch.fnmatch(str(path), pattern)
            for pattern in self.ignored_patterns
        )

    def get_log_config(self) -> dict[str, Any]:
        """Get logging configuration dictionary."""
        level = self.log_level if isinstance(self.log_level, str) else self.log_level.value
        config = {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"standard": {"format": self.log_format}},
            "handlers": {
                "default": {
                    "level": level,
                    "formatter": "standard",
                    "class": "logging.StreamHandler" if not self.log_file else "logging.FileHandler",
                }
            },
            "loggers": {"change_monitor": {"handlers": ["default"], "level": level, "propagate": False}},
        }

        if self.log_file:
            config["handlers"]["default"]["filename"] = str(self.log_file)

        return config


# Global configuration instance
_config: MonitorSettings | None = None


def get_config() -> MonitorSettings:
    """
    Get the global configuration instance.

    Creates a new instance on first call and reuses it for subsequent calls.
    """
    global _config
    if _config is None:
        _config = MonitorSettings()
    return _config


def reload_config() -> MonitorSettings:
    """Force reload the configuration from environment/files."""
    global _config
    _config = MonitorSettings()
    return _config


def set_config(config: MonitorSettings) -> None:
    """
    Set a custom configuration instance.

    Primarily used for testing or embedding the service.
    """
    global _config
    _config = config
