"""
Configuration management for the Qwen Coder client.

Handles loading and validation of configuration files.
"""

from qwencoder.config.settings import (
    DEFAULT_BASE_URL,
    DEFAULT_MODEL,
    DEFAULT_REFRESH_MARGIN_SECONDS,
    DEFAULT_TIMEOUT_MS,
    ClientConfig,
    LoggingConfig,
    QwenCoderConfig,
    get_default_config,
    get_default_config_path,
    load_config,
    setup_logging_from_config,
    validate_client_config,
)

__all__ = [
    "DEFAULT_BASE_URL",
    "DEFAULT_MODEL",
    "DEFAULT_REFRESH_MARGIN_SECONDS",
    "DEFAULT_TIMEOUT_MS",
    "ClientConfig",
    "LoggingConfig",
    "QwenCoderConfig",
    "get_default_config",
    "get_default_config_path",
    "load_config",
    "setup_logging_from_config",
    "validate_client_config",
]
