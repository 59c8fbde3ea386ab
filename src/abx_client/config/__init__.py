"""Configuration package for the ABX client."""

from .settings import (
    ClientSettings,
    LoggingConfig,
    OutputConfig,
    RecoveryConfig,
    RetryConfig,
    ServerConfig,
    load_settings,
)

__all__ = [
    "ClientSettings",
    "LoggingConfig",
    "OutputConfig",
    "RecoveryConfig",
    "RetryConfig",
    "ServerConfig",
    "load_settings",
]
