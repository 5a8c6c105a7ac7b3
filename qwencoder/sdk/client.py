"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Qwen Coder Client, a product of Garudex Labs

Synchronous SDK client for the Qwen Coder code-intelligence API.

Every operation obtains a bearer token from the credential gate and then
issues exactly one HTTP request. Failures are wrapped once in the error type
of the operation with the original exception preserved. No request is
retried.
"""

import time
from typing import Any, Dict, Mapping, Optional, Type, Union

import requests

from qwencoder.config.settings import (
    DEFAULT_BASE_URL,
    DEFAULT_MODEL,
    DEFAULT_REFRESH_MARGIN_SECONDS,
    DEFAULT_TIMEOUT_MS,
    ClientConfig,
)
from qwencoder.exceptions import (
    AnalysisError,
    ClientConfigurationError,
    ErrorKind,
    GenerationError,
    OperationError,
    RefactorError,
    TransportError,
)
from qwencoder.logging_config import get_logger, log_operation_request
from qwencoder.sdk.credentials import TOKEN_ENDPOINT, Clock, CredentialGate
from qwencoder.sdk.models import (
    AnalysisRequest,
    AnalysisResponse,
    GenerationRequest,
    RefactorRequest,
)

logger = get_logger(__name__)

ANALYZE_ENDPOINT = "/code/analyze"
GENERATE_ENDPOINT = "/code/generate"
REFACTOR_ENDPOINT = "/code/refactor"

USER_AGENT = "Qwen-Coder-SDK/0.1.0"


def _validate_settings(base_url: str, model: str, timeout_ms: int) -> None:
    if not base_url:
        raise ClientConfigurationError("base_url is required")
    if not model:
        raise ClientConfigurationError("model is required")
    if timeout_ms <= 0:
        raise ClientConfigurationError(f"timeout_ms must be positive, got {timeout_ms}")


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 2)


def _operation_error(
    operation: str,
    endpoint: str,
    error: TransportError,
    error_cls: Type[OperationError],
    start: float,
) -> OperationError:
    """Log a failed operation request and build the error to raise from its cause."""
    log_operation_request(
        logger, operation, endpoint, success=False,
        duration_ms=_elapsed_ms(start),
        error_kind=error.kind.value if error.kind else None,
    )
    return error_cls(
        f"Code {operation} failed: {error}",
        kind=error.kind,
        cause=error.cause if error.cause is not None else error,
        status_code=error.status_code,
    )


def _response_field(
    operation: str,
    body: Dict[str, Any],
    field: str,
    error_cls: Type[OperationError],
) -> Any:
    """
    Pull a single field out of an operation response body.

    Raises:
        OperationError: ``error_cls`` with ErrorKind.INVALID_RESPONSE if the
            field is absent
    """
    try:
        return body[field]
    except KeyError as e:
        logger.error(f"Code {operation} response is missing '{field}'")
        raise error_cls(
            f"Code {operation} failed: response is missing '{field}'",
            kind=ErrorKind.INVALID_RESPONSE,
            cause=e,
        ) from e


class CodeClient:
    """
    SDK client for the Qwen Coder API.

    Provides methods for:
    - Analyzing code
    - Generating code from a prompt
    - Refactoring code towards an objective

    Authentication is transparent: the API key is exchanged for a bearer
    token on first use and again whenever the cached token is within
    ``refresh_margin_seconds`` of its expiry.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        refresh_margin_seconds: float = DEFAULT_REFRESH_MARGIN_SECONDS,
        clock: Clock = time.time,
    ):
        """
        Initialize the SDK client.

        Args:
            api_key: Long-lived API key, exchanged for bearer tokens
            model: Model identifier sent with every operation (default: qwen-3-coder)
            base_url: Base URL for the API (default: https://api.qwen.ai/v1)
            timeout_ms: Request timeout in milliseconds. requests applies it as
                the connect timeout and again as the read timeout for each
                socket read, so it is not an overall deadline: a server that
                keeps sending bytes can hold a call longer. AsyncCodeClient
                enforces it as a total deadline instead.
            refresh_margin_seconds: How long before the declared expiry a token
                is considered stale (default: 300)
            clock: Epoch time source, replaceable in tests

        Raises:
            ClientConfigurationError: If configuration is invalid
        """
        _validate_settings(base_url, model, timeout_ms)

        self.model = model
        self.base_url = base_url.rstrip('/')
        self.timeout_ms = timeout_ms
        self.timeout = timeout_ms / 1000.0

        self.session = requests.Session()
        self.session.headers.update({
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        })

        self.gate = CredentialGate(
            api_key=api_key,
            exchange=self._exchange_api_key,
            refresh_margin_seconds=refresh_margin_seconds,
            clock=clock,
        )

        logger.info("Qwen Coder SDK client initialized", base_url=self.base_url, model=self.model)

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs: Any) -> "CodeClient":
        """Build a client from a loaded ClientConfig."""
        return cls(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            timeout_ms=config.timeout_ms,
            refresh_margin_seconds=config.refresh_margin_seconds,
            **kwargs,
        )

    def _make_request(
        self,
        endpoint: str,
        data: Dict[str, Any],
        token: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        POST a JSON body and return the decoded JSON object.

        Args:
            endpoint: API endpoint path
            data: Request body data
            token: Bearer token, omitted for the token endpoint itself

        Returns:
            Response data as dictionary

        Raises:
            TransportError: If the request fails or the body is not a JSON object
        """
        url = f"{self.base_url}{endpoint}"
        headers = {"Authorization": f"Bearer {token}"} if token else None

        try:
            logger.debug(f"Making POST request to {url}")
            response = self.session.post(url, json=data, headers=headers, timeout=self.timeout)
            response.raise_for_status()

        except requests.exceptions.Timeout as e:
            raise TransportError(
                f"Request timeout after {self.timeout_ms}ms: {e}",
                kind=ErrorKind.TIMEOUT,
                cause=e,
            ) from e

        except requests.exceptions.HTTPError as e:
            status_code = e.response.status_code if e.response is not None else None
            raise TransportError(
                f"Request failed with status {status_code}: {e}",
                kind=ErrorKind.HTTP_STATUS,
                cause=e,
                status_code=status_code,
            ) from e

        except requests.exceptions.ConnectionError as e:
            raise TransportError(
                f"Connection error: {e}", kind=ErrorKind.CONNECTION, cause=e
            ) from e

        except requests.exceptions.RequestException as e:
            raise TransportError(
                f"Request failed: {e}", kind=ErrorKind.CONNECTION, cause=e
            ) from e

        try:
            body = response.json()
        except ValueError as e:
            raise TransportError(
                f"Response body is not valid JSON: {e}",
                kind=ErrorKind.INVALID_RESPONSE,
                cause=e,
            ) from e

        if not isinstance(body, dict):
            raise TransportError(
                f"Expected a JSON object, got {type(body).__name__}",
                kind=ErrorKind.INVALID_RESPONSE,
                cause=TypeError(type(body).__name__),
            )
        return body

    def _exchange_api_key(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return self._make_request(TOKEN_ENDPOINT, payload)

    def _call(
        self,
        operation: str,
        endpoint: str,
        payload: Dict[str, Any],
        error_cls: Type[OperationError],
    ) -> Dict[str, Any]:
        """Authenticate, send one operation request and wrap any failure."""
        token = self.gate.ensure_token()

        start = time.monotonic()
        try:
            body = self._make_request(endpoint, payload, token=token)
        except TransportError as e:
            error = _operation_error(operation, endpoint, e, error_cls, start)
            raise error from error.cause

        log_operation_request(
            logger, operation, endpoint, success=True, duration_ms=_elapsed_ms(start),
        )
        return body

    def analyze_code(
        self,
        request: Union[AnalysisRequest, Mapping[str, Any]],
    ) -> AnalysisResponse:
        """
        Analyze code and return the service's findings unmodified.

        Args:
            request: AnalysisRequest, or a mapping with code, language and task

        Returns:
            Response body with analysis, suggestions and severity

        Raises:
            AuthenticationError: If a token cannot be obtained
            AnalysisError: If the analysis request fails
        """
        if not isinstance(request, AnalysisRequest):
            request = AnalysisRequest.from_mapping(dict(request))

        body = self._call(
            "analysis", ANALYZE_ENDPOINT, request.to_payload(self.model), AnalysisError
        )
        return body  # type: ignore[return-value]

    def generate_code(self, prompt: str, language: str = "typescript") -> str:
        """
        Generate code from a natural-language prompt.

        Raises:
            AuthenticationError: If a token cannot be obtained
            GenerationError: If the generation request fails
        """
        request = GenerationRequest(prompt=prompt, language=language)
        body = self._call(
            "generation", GENERATE_ENDPOINT, request.to_payload(self.model), GenerationError
        )
        return _response_field("generation", body, "code", GenerationError)

    def refactor_code(self, code: str, objective: str) -> str:
        """
        Refactor code towards the given objective.

        Raises:
            AuthenticationError: If a token cannot be obtained
            RefactorError: If the refactoring request fails
        """
        request = RefactorRequest(code=code, objective=objective)
        body = self._call(
            "refactoring", REFACTOR_ENDPOINT, request.to_payload(self.model), RefactorError
        )
        return _response_field("refactoring", body, "refactored_code", RefactorError)

    def close(self) -> None:
        """
        Close the HTTP session and release resources.

        The cached token is kept; a closed client must not be reused.
        """
        if self.session:
            self.session.close()
            logger.debug("Closed Qwen Coder SDK client session")

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
