"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Qwen Coder Client, a product of Garudex Labs

Async SDK client for the Qwen Coder code-intelligence API.

Same contract as CodeClient, for asyncio applications. One instance may be
shared by many tasks; they share the cached bearer token.
"""

import asyncio
import time
from typing import Any, Dict, Mapping, Optional, Type, Union

import aiohttp
from aiohttp import ClientTimeout

from qwencoder.config.settings import (
    DEFAULT_BASE_URL,
    DEFAULT_MODEL,
    DEFAULT_REFRESH_MARGIN_SECONDS,
    DEFAULT_TIMEOUT_MS,
    ClientConfig,
)
from qwencoder.exceptions import (
    AnalysisError,
    ErrorKind,
    GenerationError,
    OperationError,
    RefactorError,
    TransportError,
)
from qwencoder.logging_config import get_logger, log_operation_request
from qwencoder.sdk.client import (
    ANALYZE_ENDPOINT,
    GENERATE_ENDPOINT,
    REFACTOR_ENDPOINT,
    USER_AGENT,
    _elapsed_ms,
    _operation_error,
    _response_field,
    _validate_settings,
)
from qwencoder.sdk.credentials import TOKEN_ENDPOINT, AsyncCredentialGate, Clock
from qwencoder.sdk.models import (
    AnalysisRequest,
    AnalysisResponse,
    GenerationRequest,
    RefactorRequest,
)

logger = get_logger(__name__)


class AsyncCodeClient:
    """
    Async SDK client for the Qwen Coder API.

    Provides async methods for:
    - Analyzing code
    - Generating code from a prompt
    - Refactoring code towards an objective

    The aiohttp session is created lazily on first use, so the client can be
    constructed outside a running event loop.
    """

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        base_url: str = DEFAULT_BASE_URL,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        refresh_margin_seconds: float = DEFAULT_REFRESH_MARGIN_SECONDS,
        max_connections: int = 100,
        clock: Clock = time.time,
    ):
        """
        Initialize the async SDK client.

        Args:
            api_key: Long-lived API key, exchanged for bearer tokens
            model: Model identifier sent with every operation
            base_url: Base URL for the API
            timeout_ms: Overall timeout applied to every request, in milliseconds
            refresh_margin_seconds: How long before the declared expiry a token
                is considered stale
            max_connections: Maximum number of concurrent connections (default: 100)
            clock: Epoch time source, replaceable in tests

        Raises:
            ClientConfigurationError: If configuration is invalid
        """
        _validate_settings(base_url, model, timeout_ms)

        self.model = model
        self.base_url = base_url.rstrip('/')
        self.timeout_ms = timeout_ms
        self.timeout = ClientTimeout(total=timeout_ms / 1000.0)
        self.max_connections = max_connections

        self.headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
        }

        # Session will be created on first use
        self._session: Optional[aiohttp.ClientSession] = None

        self.gate = AsyncCredentialGate(
            api_key=api_key,
            exchange=self._exchange_api_key,
            refresh_margin_seconds=refresh_margin_seconds,
            clock=clock,
        )

        logger.info(
            "Async Qwen Coder SDK client initialized", base_url=self.base_url, model=self.model
        )

    @classmethod
    def from_config(cls, config: ClientConfig, **kwargs: Any) -> "AsyncCodeClient":
        """Build a client from a loaded ClientConfig."""
        return cls(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            timeout_ms=config.timeout_ms,
            refresh_margin_seconds=config.refresh_margin_seconds,
            **kwargs,
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=self.headers,
                timeout=self.timeout,
                connector=aiohttp.TCPConnector(limit=self.max_connections),
            )
        return self._session

    async def _make_request(
        self,
        endpoint: str,
        data: Dict[str, Any],
        token: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        POST a JSON body and return the decoded JSON object.

        Raises:
            TransportError: If the request fails or the body is not a JSON object
        """
        url = f"{self.base_url}{endpoint}"
        headers = {"Authorization": f"Bearer {token}"} if token else None
        session = await self._get_session()

        try:
            logger.debug(f"Making async POST request to {url}")

            async with session.post(url, json=data, headers=headers) as response:
                response.raise_for_status()
                # content_type=None: decode regardless of the declared type
                body = await response.json(content_type=None)

        except asyncio.TimeoutError as e:
            raise TransportError(
                f"Request timeout after {self.timeout_ms}ms",
                kind=ErrorKind.TIMEOUT,
                cause=e,
            ) from e

        except aiohttp.ClientResponseError as e:
            raise TransportError(
                f"Request failed with status {e.status}: {e.message}",
                kind=ErrorKind.HTTP_STATUS,
                cause=e,
                status_code=e.status,
            ) from e

        except aiohttp.ClientError as e:
            raise TransportError(
                f"Connection error: {e}", kind=ErrorKind.CONNECTION, cause=e
            ) from e

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

    async def _exchange_api_key(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._make_request(TOKEN_ENDPOINT, payload)

    async def _call(
        self,
        operation: str,
        endpoint: str,
        payload: Dict[str, Any],
        error_cls: Type[OperationError],
    ) -> Dict[str, Any]:
        token = await self.gate.ensure_token()

        start = time.monotonic()
        try:
            body = await self._make_request(endpoint, payload, token=token)
        except TransportError as e:
            error = _operation_error(operation, endpoint, e, error_cls, start)
            raise error from error.cause

        log_operation_request(
            logger, operation, endpoint, success=True, duration_ms=_elapsed_ms(start),
        )
        return body

    async def analyze_code(
        self,
        request: Union[AnalysisRequest, Mapping[str, Any]],
    ) -> AnalysisResponse:
        """
        Analyze code and return the service's findings unmodified.

        Raises:
            AuthenticationError: If a token cannot be obtained
            AnalysisError: If the analysis request fails
        """
        if not isinstance(request, AnalysisRequest):
            request = AnalysisRequest.from_mapping(dict(request))

        body = await self._call(
            "analysis", ANALYZE_ENDPOINT, request.to_payload(self.model), AnalysisError
        )
        return body  # type: ignore[return-value]

    async def generate_code(self, prompt: str, language: str = "typescript") -> str:
        """Generate code from a natural-language prompt."""
        request = GenerationRequest(prompt=prompt, language=language)
        body = await self._call(
            "generation", GENERATE_ENDPOINT, request.to_payload(self.model), GenerationError
        )
        return _response_field("generation", body, "code", GenerationError)

    async def refactor_code(self, code: str, objective: str) -> str:
        """Refactor code towards the given objective."""
        request = RefactorRequest(code=code, objective=objective)
        body = await self._call(
            "refactoring", REFACTOR_ENDPOINT, request.to_payload(self.model), RefactorError
        )
        return _response_field("refactoring", body, "refactored_code", RefactorError)

    async def close(self) -> None:
        """
        Close the HTTP session and release resources.

        Should be called when the client is no longer needed.
        """
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug("Closed async Qwen Coder SDK client session")

    async def __aenter__(self):
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Async context manager exit."""
        await self.close()
