"""Configuration module for the pnut.io client.

Usage:
    from stpnut.config import load_config

    config = load_config("/path/to/stpnut.yaml")
"""

from stpnut.config.loader import (
    ConfigError,
    ConfigNotFoundError,
    ConfigValidationError,
    EnvironmentVariableError,
    expand_env_vars,
    load_config,
)
from stpnut.config.schema import (
    ClientConfig,
    Config,
    LoggingConfig,
    RealtimeConfig,
)

__all__ = [
    "ClientConfig",
    "Config",
    "ConfigError",
    "ConfigNotFoundError",
    "ConfigValidationError",
    "EnvironmentVariableError",
    "LoggingConfig",
    "RealtimeConfig",
    "expand_env_vars",
    "load_config",
]
