"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Qwen Coder Client, a product of Garudex Labs

Unit tests for the credential gate.

Covers token caching, early expiry, and failure behavior of both the sync
and async gates.
"""

import asyncio

import pytest
from unittest.mock import AsyncMock, Mock

from qwencoder.exceptions import (
    AuthenticationError,
    ClientConfigurationError,
    ErrorKind,
    TransportError,
)
from qwencoder.sdk.credentials import AsyncCredentialGate, CredentialGate
from qwencoder.sdk.models import SessionToken


def _transport_error(kind=ErrorKind.CONNECTION, status_code=None):
    cause = OSError("network unreachable")
    return TransportError("boom", kind=kind, cause=cause, status_code=status_code)


class TestCredentialGateInitialization:
    """Test CredentialGate construction."""

    def test_requires_api_key(self):
        """Test gate rejects an empty API key."""
        with pytest.raises(ClientConfigurationError):
            CredentialGate(api_key="", exchange=Mock())

    def test_rejects_negative_margin(self):
        """Test gate rejects a negative refresh margin."""
        with pytest.raises(ClientConfigurationError):
            CredentialGate(api_key="key", exchange=Mock(), refresh_margin_seconds=-1)

    def test_starts_without_token(self):
        """Test no token is cached before the first call."""
        gate = CredentialGate(api_key="key", exchange=Mock())
        assert gate.token is None
        assert gate.refresh_margin_seconds == 300


class TestCredentialGateEnsureToken:
    """Test CredentialGate.ensure_token caching behavior."""

    def test_first_call_exchanges_api_key(self, clock, token_body):
        """Test the API key is sent to the exchange on first use."""
        exchange = Mock(return_value=token_body)
        gate = CredentialGate(api_key="secret-key", exchange=exchange, clock=clock)

        assert gate.ensure_token() == "tok-1"
        exchange.assert_called_once_with({"api_key": "secret-key"})

    def test_expiry_includes_margin(self, clock, token_body):
        """Test expiry is issuance time plus lifetime minus 300 seconds."""
        gate = CredentialGate(api_key="key", exchange=Mock(return_value=token_body), clock=clock)
        gate.ensure_token()

        token = gate.token
        assert isinstance(token, SessionToken)
        assert token.issued_at == clock.now
        assert token.expires_at == clock.now + 600 - 300
        assert token.token_type == "Bearer"
        assert token.refresh_token == "refresh-1"

    def test_cached_token_reused_until_margin(self, clock, token_body):
        """Test a token fetched at T is reused through T+299."""
        exchange = Mock(return_value=token_body)
        gate = CredentialGate(api_key="key", exchange=exchange, clock=clock)

        gate.ensure_token()
        for _ in range(299):
            clock.advance(1)
            assert gate.ensure_token() == "tok-1"

        assert exchange.call_count == 1

    def test_token_refreshed_at_margin(self, clock, token_body):
        """Test a call at T+300 triggers a new exchange."""
        second = dict(token_body, access_token="tok-2")
        exchange = Mock(side_effect=[token_body, second])
        gate = CredentialGate(api_key="key", exchange=exchange, clock=clock)

        gate.ensure_token()
        clock.advance(300)

        assert gate.ensure_token() == "tok-2"
        assert exchange.call_count == 2
        assert gate.token.access_token == "tok-2"

    def test_one_exchange_per_window(self, clock, token_body):
        """Test at most one exchange per (expires_in - margin) window."""
        exchange = Mock(return_value=dict(token_body, expires_in=900))
        gate = CredentialGate(api_key="key", exchange=exchange, clock=clock)

        # 30 minutes of calls every 10 seconds with a 600 second window
        for _ in range(180):
            gate.ensure_token()
            clock.advance(10)

        assert exchange.call_count == 3

    def test_custom_margin(self, clock, token_body):
        """Test the refresh margin is configurable."""
        exchange = Mock(return_value=token_body)
        gate = CredentialGate(
            api_key="key", exchange=exchange, refresh_margin_seconds=0, clock=clock
        )

        gate.ensure_token()
        clock.advance(599)
        gate.ensure_token()
        assert exchange.call_count == 1

        clock.advance(1)
        gate.ensure_token()
        assert exchange.call_count == 2

    def test_short_lifetime_always_refreshes(self, clock, token_body):
        """Test a lifetime below the margin never yields a reusable token."""
        exchange = Mock(return_value=dict(token_body, expires_in=120))
        gate = CredentialGate(api_key="key", exchange=exchange, clock=clock)

        gate.ensure_token()
        gate.ensure_token()
        assert exchange.call_count == 2

    def test_invalidate_forces_exchange(self, clock, token_body):
        """Test invalidate() drops the cached token."""
        exchange = Mock(return_value=token_body)
        gate = CredentialGate(api_key="key", exchange=exchange, clock=clock)

        gate.ensure_token()
        gate.invalidate()
        assert gate.token is None

        gate.ensure_token()
        assert exchange.call_count == 2

    def test_token_type_defaults_to_bearer(self, clock):
        """Test a response without token_type still yields a Bearer token."""
        exchange = Mock(return_value={"access_token": "t", "expires_in": 3600})
        gate = CredentialGate(api_key="key", exchange=exchange, clock=clock)

        gate.ensure_token()
        assert gate.token.token_type == "Bearer"
        assert gate.token.refresh_token is None


class TestCredentialGateFailures:
    """Test CredentialGate failure handling."""

    def test_transport_failure_raises_authentication_error(self, clock):
        """Test exchange failures surface as AuthenticationError."""
        error = _transport_error(kind=ErrorKind.HTTP_STATUS, status_code=401)
        gate = CredentialGate(api_key="key", exchange=Mock(side_effect=error), clock=clock)

        with pytest.raises(AuthenticationError) as exc_info:
            gate.ensure_token()

        assert exc_info.value.kind is ErrorKind.HTTP_STATUS
        assert exc_info.value.status_code == 401
        assert exc_info.value.cause is error.cause
        assert exc_info.value.__cause__ is error.cause

    def test_failure_leaves_absent_cache_absent(self, clock):
        """Test a failed first exchange caches nothing."""
        gate = CredentialGate(
            api_key="key", exchange=Mock(side_effect=_transport_error()), clock=clock
        )

        with pytest.raises(AuthenticationError):
            gate.ensure_token()
        assert gate.token is None

    def test_failed_refresh_keeps_previous_record(self, clock, token_body):
        """Test a failed refresh leaves the stale record untouched and unused."""
        exchange = Mock(side_effect=[token_body, _transport_error()])
        gate = CredentialGate(api_key="key", exchange=exchange, clock=clock)

        gate.ensure_token()
        previous = gate.token
        clock.advance(301)

        with pytest.raises(AuthenticationError):
            gate.ensure_token()
        assert gate.token is previous

    def test_failure_is_not_retried(self, clock):
        """Test one failed call performs exactly one exchange."""
        exchange = Mock(side_effect=_transport_error(kind=ErrorKind.TIMEOUT))
        gate = CredentialGate(api_key="key", exchange=exchange, clock=clock)

        with pytest.raises(AuthenticationError) as exc_info:
            gate.ensure_token()
        assert exc_info.value.is_timeout
        assert exchange.call_count == 1

    def test_next_call_retries_after_failure(self, clock, token_body):
        """Test the gate recovers on the next call after a failure."""
        exchange = Mock(side_effect=[_transport_error(), token_body])
        gate = CredentialGate(api_key="key", exchange=exchange, clock=clock)

        with pytest.raises(AuthenticationError):
            gate.ensure_token()
        assert gate.ensure_token() == "tok-1"

    @pytest.mark.parametrize("body", [
        {"token_type": "Bearer", "expires_in": 600},
        {"access_token": "", "expires_in": 600},
        {"access_token": "t"},
        {"access_token": "t", "expires_in": "600"},
        {"access_token": "t", "expires_in": True},
        {"access_token": "t", "expires_in": float("inf")},
        {"access_token": "t", "expires_in": float("nan")},
        ["not", "an", "object"],
    ])
    def test_malformed_response(self, clock, body):
        """Test malformed token bodies raise AuthenticationError and cache nothing."""
        gate = CredentialGate(api_key="key", exchange=Mock(return_value=body), clock=clock)

        with pytest.raises(AuthenticationError) as exc_info:
            gate.ensure_token()

        assert exc_info.value.kind is ErrorKind.INVALID_RESPONSE
        assert exc_info.value.cause is not None
        assert gate.token is None


class TestAsyncCredentialGate:
    """Test AsyncCredentialGate."""

    @pytest.mark.asyncio
    async def test_caches_token(self, clock, token_body):
        """Test the async gate reuses a valid token."""
        exchange = AsyncMock(return_value=token_body)
        gate = AsyncCredentialGate(api_key="key", exchange=exchange, clock=clock)

        assert await gate.ensure_token() == "tok-1"
        clock.advance(299)
        assert await gate.ensure_token() == "tok-1"
        exchange.assert_awaited_once_with({"api_key": "key"})

    @pytest.mark.asyncio
    async def test_refreshes_stale_token(self, clock, token_body):
        """Test the async gate re-exchanges once the token is stale."""
        second = dict(token_body, access_token="tok-2")
        exchange = AsyncMock(side_effect=[token_body, second])
        gate = AsyncCredentialGate(api_key="key", exchange=exchange, clock=clock)

        await gate.ensure_token()
        clock.advance(300)
        assert await gate.ensure_token() == "tok-2"

    @pytest.mark.asyncio
    async def test_failure_raises_authentication_error(self, clock):
        """Test async exchange failures surface as AuthenticationError."""
        error = _transport_error()
        gate = AsyncCredentialGate(
            api_key="key", exchange=AsyncMock(side_effect=error), clock=clock
        )

        with pytest.raises(AuthenticationError) as exc_info:
            await gate.ensure_token()
        assert exc_info.value.cause is error.cause
        assert gate.token is None

    @pytest.mark.asyncio
    async def test_concurrent_first_use_never_returns_partial_token(self, clock, token_body):
        """Test concurrent callers all receive a complete token."""
        async def exchange(payload):
            await asyncio.sleep(0)
            return token_body

        gate = AsyncCredentialGate(api_key="key", exchange=exchange, clock=clock)

        tokens = await asyncio.gather(*(gate.ensure_token() for _ in range(10)))

        assert tokens == ["tok-1"] * 10
        assert gate.token.access_token == "tok-1"
        assert gate.token.expires_at == clock.now + 300
