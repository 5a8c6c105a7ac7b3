"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Qwen Coder Client, a product of Garudex Labs

Credential gate: trades the long-lived API key for a short-lived bearer
token and caches it in memory until shortly before it expires.

The cached token is a single immutable SessionToken held in one attribute.
Concurrent callers may each perform an exchange when nothing valid is
cached; the last successful exchange wins and no caller can ever observe
a token without its expiry.
"""

import math
import time
from typing import Any, Awaitable, Callable, Dict, Optional

from qwencoder.config.settings import DEFAULT_REFRESH_MARGIN_SECONDS
from qwencoder.exceptions import (
    AuthenticationError,
    ClientConfigurationError,
    ErrorKind,
    TransportError,
)
from qwencoder.logging_config import get_logger, log_token_exchange
from qwencoder.sdk.models import SessionToken

logger = get_logger(__name__)

TOKEN_ENDPOINT = "/auth/token"

Clock = Callable[[], float]
Exchange = Callable[[Dict[str, Any]], Dict[str, Any]]
AsyncExchange = Callable[[Dict[str, Any]], Awaitable[Dict[str, Any]]]


class _TokenCache:
    """State and expiry policy shared by the sync and async gates."""

    def __init__(
        self,
        api_key: str,
        refresh_margin_seconds: float = DEFAULT_REFRESH_MARGIN_SECONDS,
        clock: Clock = time.time,
    ):
        if not api_key:
            raise ClientConfigurationError("api_key is required")
        if refresh_margin_seconds < 0:
            raise ClientConfigurationError(
                f"refresh_margin_seconds cannot be negative, got {refresh_margin_seconds}"
            )

        self._api_key = api_key
        self.refresh_margin_seconds = refresh_margin_seconds
        self._clock = clock
        self._token: Optional[SessionToken] = None

    @property
    def token(self) -> Optional[SessionToken]:
        """The cached record, which may be stale. None before the first exchange."""
        return self._token

    def invalidate(self) -> None:
        """Drop the cached token so the next call performs a fresh exchange."""
        self._token = None
        logger.debug("Cached session token invalidated")

    def _cached_access_token(self) -> Optional[str]:
        token = self._token
        if token is not None and token.is_valid(self._clock()):
            return token.access_token
        return None

    def _exchange_payload(self) -> Dict[str, Any]:
        return {"api_key": self._api_key}

    def _store(self, data: Any, issued_at: float, duration_ms: float) -> str:
        """Build a SessionToken from an ``/auth/token`` body and cache it."""
        token = self._parse_token(data, issued_at)
        self._token = token

        log_token_exchange(
            logger,
            success=True,
            expires_in=data["expires_in"],
            duration_ms=round(duration_ms, 2),
        )
        if not token.is_valid(issued_at):
            logger.warning(
                "Issued token lifetime is shorter than the refresh margin; "
                "every call will re-authenticate",
                expires_in=data["expires_in"],
                refresh_margin_seconds=self.refresh_margin_seconds,
            )
        return token.access_token

    def _parse_token(self, data: Any, issued_at: float) -> SessionToken:
        try:
            if not isinstance(data, dict):
                raise TypeError(f"expected a JSON object, got {type(data).__name__}")
            access_token = data["access_token"]
            expires_in = data["expires_in"]
            if not isinstance(access_token, str) or not access_token:
                raise ValueError("access_token must be a non-empty string")
            if isinstance(expires_in, bool) or not isinstance(expires_in, (int, float)):
                raise TypeError(f"expires_in must be a number, got {expires_in!r}")
            if not math.isfinite(expires_in):
                raise ValueError(f"expires_in must be finite, got {expires_in!r}")
        except (KeyError, TypeError, ValueError) as e:
            log_token_exchange(logger, success=False, reason=ErrorKind.INVALID_RESPONSE.value)
            raise AuthenticationError(
                f"Authentication failed: malformed token response ({e})",
                kind=ErrorKind.INVALID_RESPONSE,
                cause=e,
            ) from e

        return SessionToken(
            access_token=access_token,
            expires_at=issued_at + expires_in - self.refresh_margin_seconds,
            issued_at=issued_at,
            token_type=data.get("token_type") or "Bearer",
            refresh_token=data.get("refresh_token"),
        )

    def _fail(self, error: TransportError) -> AuthenticationError:
        cause = error.cause if error.cause is not None else error
        log_token_exchange(
            logger,
            success=False,
            reason=error.kind.value if error.kind else "unknown",
            status_code=error.status_code,
        )
        return AuthenticationError(
            f"Authentication failed: {error}",
            kind=error.kind,
            cause=cause,
            status_code=error.status_code,
        )


class CredentialGate(_TokenCache):
    """
    Supplies a currently-valid bearer token to synchronous callers.

    Args:
        api_key: Long-lived API key sent to the token endpoint.
        exchange: Callable that POSTs a JSON payload to ``/auth/token`` and
            returns the decoded body. It must raise TransportError on failure.
        refresh_margin_seconds: Subtracted from the declared token lifetime.
        clock: Source of the current epoch time in seconds.
    """

    def __init__(
        self,
        api_key: str,
        exchange: Exchange,
        refresh_margin_seconds: float = DEFAULT_REFRESH_MARGIN_SECONDS,
        clock: Clock = time.time,
    ):
        super().__init__(api_key, refresh_margin_seconds, clock)
        self._exchange = exchange

    def ensure_token(self) -> str:
        """
        Return a valid access token, exchanging the API key if needed.

        Raises:
            AuthenticationError: If the exchange fails. The cache is left as it was.
        """
        access_token = self._cached_access_token()
        if access_token is not None:
            return access_token

        logger.debug("No valid session token cached, exchanging API key")
        issued_at = self._clock()
        start = time.monotonic()
        try:
            data = self._exchange(self._exchange_payload())
        except TransportError as e:
            raise self._fail(e) from (e.cause or e)

        return self._store(data, issued_at, (time.monotonic() - start) * 1000)


class AsyncCredentialGate(_TokenCache):
    """Asyncio flavor of CredentialGate; ``exchange`` is a coroutine function."""

    def __init__(
        self,
        api_key: str,
        exchange: AsyncExchange,
        refresh_margin_seconds: float = DEFAULT_REFRESH_MARGIN_SECONDS,
        clock: Clock = time.time,
    ):
        super().__init__(api_key, refresh_margin_seconds, clock)
        self._exchange = exchange

    async def ensure_token(self) -> str:
        access_token = self._cached_access_token()
        if access_token is not None:
            return access_token

        logger.debug("No valid session token cached, exchanging API key")
        issued_at = self._clock()
        start = time.monotonic()
        try:
            data = await self._exchange(self._exchange_payload())
        except TransportError as e:
            raise self._fail(e) from (e.cause or e)

        return self._store(data, issued_at, (time.monotonic() - start) * 1000)
