"""Configuration management and settings."""

from change_monitor.config.settings import (
    LogLevel,
    MonitorSettings,
    StorageBackend,
    get_config,
    reload_config,
    set_config,
)

__all__ = ["MonitorSettings", "LogLevel", "StorageBackend", "get_config", "reload_config", "set_config"]
