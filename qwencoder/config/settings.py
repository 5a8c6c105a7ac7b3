"""
Configuration management for the Qwen Coder client.

Loads YAML configuration from file with sensible defaults and validation.
Supports environment variable substitution using ${ENV_VAR} syntax so the
API key never has to be written into the file itself.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import yaml

from qwencoder.exceptions import ConfigurationLoadError, InvalidConfigurationError
from qwencoder.logging_config import get_logger, setup_logging

logger = get_logger(__name__)


DEFAULT_MODEL = "qwen-3-coder"
DEFAULT_BASE_URL = "https://api.qwen.ai/v1"
DEFAULT_TIMEOUT_MS = 30000
DEFAULT_REFRESH_MARGIN_SECONDS = 300


def _expand_env_vars(value: Any) -> Any:
    """
    Recursively expand environment variables in configuration values.

    Supports ${ENV_VAR} syntax with optional default values: ${ENV_VAR:default}

    Examples:
        "${QWEN_API_KEY}" -> value of QWEN_API_KEY env var
        "${QWEN_BASE_URL:https://api.qwen.ai/v1}" -> value or the default
    """
    if isinstance(value, str):
        # Pattern matches ${VAR} or ${VAR:default}
        pattern = r'\$\{([^}:]+)(?::([^}]*))?\}'

        def replace_env_var(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else ""
            return os.environ.get(var_name, default_value)

        return re.sub(pattern, replace_env_var, value)
    elif isinstance(value, dict):
        return {k: _expand_env_vars(v) for k, v in value.items()}
    elif isinstance(value, list):
        return [_expand_env_vars(item) for item in value]
    else:
        return value


@dataclass
class ClientConfig:
    """Connection and token policy settings for a code client."""

    api_key: str = ""
    model: str = DEFAULT_MODEL
    base_url: str = DEFAULT_BASE_URL
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    refresh_margin_seconds: int = DEFAULT_REFRESH_MARGIN_SECONDS


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "INFO"
    file: str = ""
    json_format: bool = True


@dataclass
class QwenCoderConfig:
    """Top-level configuration."""

    client: ClientConfig = field(default_factory=ClientConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def get_default_config_path() -> str:
    """Get the default configuration file path."""
    return os.path.expanduser("~/.qwencoder/config.yaml")


def get_default_config() -> QwenCoderConfig:
    """Get default configuration. The API key is left empty."""
    return QwenCoderConfig()


def load_config(config_path: Optional[str] = None) -> QwenCoderConfig:
    """
    Load configuration from YAML file with validation.

    If the config file is not found, returns default configuration. The client
    section is only validated when it names an API key, since a host
    application may supply the key at construction time instead.

    Args:
        config_path: Path to configuration file. If None, uses default path.

    Returns:
        QwenCoderConfig: Loaded and validated configuration

    Raises:
        InvalidConfigurationError: If configuration values are invalid, or
            ConfigurationLoadError (a subclass) if the file cannot be read
            or parsed
    """
    if config_path is None:
        config_path = get_default_config_path()

    config_path = os.path.expanduser(config_path)

    if not os.path.exists(config_path):
        logger.info(f"Configuration file not found at {config_path}, using defaults")
        return get_default_config()

    try:
        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f)
        logger.debug(f"Loaded configuration from {config_path}")
    except yaml.YAMLError as e:
        logger.error(f"Failed to parse YAML configuration file '{config_path}': {e}", exc_info=True)
        raise ConfigurationLoadError(
            f"Failed to parse YAML configuration file '{config_path}': {e}",
            cause=e,
        ) from e
    except OSError as e:
        logger.error(f"Failed to read configuration file '{config_path}': {e}", exc_info=True)
        raise ConfigurationLoadError(
            f"Failed to read configuration file '{config_path}': {e}",
            cause=e,
        ) from e

    if config_data is None:
        logger.info(f"Configuration file {config_path} is empty, using defaults")
        return get_default_config()

    if not isinstance(config_data, dict):
        raise InvalidConfigurationError(
            f"Configuration file '{config_path}' must contain a mapping at the top level"
        )

    config_data = _expand_env_vars(config_data)

    config = _build_config_from_dict(config_data)
    if config.client.api_key:
        validate_client_config(config.client)
    _validate_logging_config(config.logging)

    logger.info(f"Successfully loaded configuration from {config_path}")
    return config


def _section(config_data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = config_data.get(name) or {}
    if not isinstance(section, dict):
        raise InvalidConfigurationError(f"'{name}' section must be a mapping")
    return section


def _as_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise InvalidConfigurationError(f"{name} must be an integer, got {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise InvalidConfigurationError(f"{name} must be an integer, got {value!r}") from e


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _build_config_from_dict(config_data: Dict[str, Any]) -> QwenCoderConfig:
    """
    Build QwenCoderConfig from dictionary loaded from YAML, merged over defaults.

    Raises:
        InvalidConfigurationError: If a section or value has the wrong type
    """
    defaults = get_default_config()

    client_data = _section(config_data, 'client')
    client = ClientConfig(
        api_key=str(client_data.get('api_key', defaults.client.api_key) or ""),
        model=str(client_data.get('model', defaults.client.model)),
        base_url=str(client_data.get('base_url', defaults.client.base_url)),
        timeout_ms=_as_int(
            client_data.get('timeout_ms', defaults.client.timeout_ms), 'timeout_ms'
        ),
        refresh_margin_seconds=_as_int(
            client_data.get('refresh_margin_seconds', defaults.client.refresh_margin_seconds),
            'refresh_margin_seconds',
        ),
    )

    logging_data = _section(config_data, 'logging')
    logging = LoggingConfig(
        level=str(logging_data.get('level', defaults.logging.level)),
        file=os.path.expanduser(str(logging_data.get('file', defaults.logging.file) or "")),
        json_format=_as_bool(logging_data.get('json_format', defaults.logging.json_format)),
    )

    return QwenCoderConfig(client=client, logging=logging)


def validate_client_config(config: ClientConfig) -> None:
    """
    Validate client settings.

    Raises:
        InvalidConfigurationError: If a setting is invalid
    """
    if not config.api_key:
        logger.error("Configuration validation failed: api_key cannot be empty")
        raise InvalidConfigurationError("api_key cannot be empty")

    if not config.model:
        raise InvalidConfigurationError("model cannot be empty")

    parsed = urlparse(config.base_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidConfigurationError(
            f"base_url must be an absolute http(s) URL, got '{config.base_url}'"
        )

    if config.timeout_ms <= 0:
        raise InvalidConfigurationError(
            f"timeout_ms must be positive, got {config.timeout_ms}"
        )

    if config.refresh_margin_seconds < 0:
        raise InvalidConfigurationError(
            f"refresh_margin_seconds cannot be negative, got {config.refresh_margin_seconds}"
        )


def _validate_logging_config(config: LoggingConfig) -> None:
    valid_log_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if config.level.upper() not in valid_log_levels:
        raise InvalidConfigurationError(
            f"logging level must be one of {valid_log_levels}, "
            f"got '{config.level}'"
        )


def setup_logging_from_config(config: LoggingConfig, level: Optional[str] = None) -> None:
    """
    Configure structlog from a loaded LoggingConfig.

    Args:
        config: The ``logging`` section of a loaded configuration
        level: Optional override for ``config.level``
    """
    log_file = Path(config.file) if config.file else None
    setup_logging(
        level=(level or config.level).upper(),
        log_file=log_file,
        json_format=config.json_format,
    )
