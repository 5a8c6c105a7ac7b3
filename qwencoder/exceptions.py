"""
Exception hierarchy for the Qwen Coder client.

All custom exceptions inherit from QwenCoderError base class. Client errors
carry an ErrorKind tag and the original cause so callers can classify and
inspect failures without parsing messages.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Classification of a transport or server-level failure."""

    TIMEOUT = "timeout"
    CONNECTION = "connection"
    HTTP_STATUS = "http_status"
    INVALID_RESPONSE = "invalid_response"


class QwenCoderError(Exception):
    """Base exception for all Qwen Coder client errors."""

    def __init__(
        self,
        message: str,
        kind: Optional[ErrorKind] = None,
        cause: Optional[BaseException] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.cause = cause
        self.status_code = status_code

    @property
    def is_timeout(self) -> bool:
        return self.kind is ErrorKind.TIMEOUT


# Configuration Errors
class ConfigurationError(QwenCoderError):
    """Base exception for configuration-related errors."""
    pass


class InvalidConfigurationError(ConfigurationError):
    """Raised when configuration is invalid or malformed."""
    pass


class ConfigurationLoadError(InvalidConfigurationError):
    """Raised when the configuration file cannot be read or parsed."""
    pass


# Client Errors
class ClientError(QwenCoderError):
    """Base exception for errors raised by the HTTP clients."""
    pass


class ClientConfigurationError(ClientError):
    """Raised when client construction arguments are invalid."""
    pass


class TransportError(ClientError):
    """Raised by the request layer; always rewrapped before reaching callers."""
    pass


class AuthenticationError(ClientError):
    """Raised when the API key to bearer token exchange fails."""
    pass


class OperationError(ClientError):
    """Base exception for failed code operations."""
    pass


class AnalysisError(OperationError):
    """Raised when a code analysis request fails."""
    pass


class GenerationError(OperationError):
    """Raised when a code generation request fails."""
    pass


class RefactorError(OperationError):
    """Raised when a code refactoring request fails."""
    pass
