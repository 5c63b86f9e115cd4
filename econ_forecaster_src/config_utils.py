# econ_forecaster_src/config_utils.py

import argparse
import logging
from pathlib import Path
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

# Initialize the global configuration manager
config_manager = None
CONFIG_AVAILABLE = False
try:
    from config import get_config, ConfigurationError  # use project configuration manager
    CONFIG_AVAILABLE = True
except ImportError as e:
    CONFIG_AVAILABLE = False
    logger.warning("Configuration system NOT detected: %s - using defaults", e)


def initialize_config(config_path: Optional[Union[str, Path]] = None) -> None:
    """
    Initializes the global configuration manager.

    Loads the packaged defaults and, when given, a user YAML file on top. If the
    defaults cannot be loaded, the error is logged and built-in defaults are used.
    A user file that cannot be loaded is an error, since silently ignoring it
    would run the report with settings the operator did not ask for.
    """
    global config_manager
    if not CONFIG_AVAILABLE:
        return
    if config_manager is not None and config_path is None:
        return
    try:
        config_manager = get_config(config_path, reload=True)
    except ConfigurationError as e:
        if config_path is not None:
            raise
        logger.error("Failed to initialize configuration: %s. Using defaults.", e)
        config_manager = None
        return
    validation_errors = config_manager.validate_configuration()
    if validation_errors:
        logger.warning("Configuration validation warnings: %s", validation_errors)


def reset_config() -> None:
    """Forget the loaded configuration (used by tests)."""
    global config_manager
    config_manager = None


def get_config_value(key_path: str, default: Any = None,
                     args: Optional[argparse.Namespace] = None,
                     cli_param: Optional[str] = None) -> Any:
    """
    Retrieves a configuration value, providing support for command-line overrides.
    The function prioritizes values in the following order:
    1. CLI argument (if provided)
    2. Configuration file
    3. Default value
    """
    # First priority: CLI argument
    if args is not None and cli_param and hasattr(args, cli_param):
        cli_value = getattr(args, cli_param)
        if cli_value is not None:
            return cli_value

    # Second priority: Configuration file
    if config_manager is not None:
        config_value = config_manager.get(key_path, None)
        if config_value is not None:
            return config_value

    # Third priority: Default value
    return default
