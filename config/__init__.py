"""Configuration management for the seasonal ARIMA report."""

from .config_manager import (
    DEFAULT_CONFIG_PATH,
    ConfigurationError,
    ConfigurationManager,
    get_config,
)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "ConfigurationError",
    "ConfigurationManager",
    "get_config",
]
