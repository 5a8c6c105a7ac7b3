"""
Pytest configuration and shared fixtures for Qwen Coder client tests.
"""

import tempfile
from pathlib import Path
from typing import Generator

import pytest


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


TOKEN_BODY = {
    "access_token": "tok-1",
    "token_type": "Bearer",
    "expires_in": 600,
    "refresh_token": "refresh-1",
}


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    Create a temporary directory for test files.

    Yields:
        Path to temporary directory that is cleaned up after test.
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clock() -> FakeClock:
    """Fake clock starting at a fixed epoch."""
    return FakeClock()


@pytest.fixture
def token_body() -> dict:
    """A fresh copy of a successful /auth/token body (expires_in=600)."""
    return dict(TOKEN_BODY)

