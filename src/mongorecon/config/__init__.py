"""Configuration management for mongorecon."""

from mongorecon.config.loader import load_config
from mongorecon.config.models import (
    AdminCredentials,
    ConnectionConfig,
    Inventory,
    LoggingConfig,
    RetryConfig,
    Settings,
)

__all__ = [
    "AdminCredentials",
    "ConnectionConfig",
    "Inventory",
    "LoggingConfig",
    "RetryConfig",
    "Settings",
    "load_config",
]
