"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Qwen Coder Client, a product of Garudex Labs

Request and response shapes for the code operations, and the cached
session token record.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Literal, Optional, TypedDict


Severity = Literal["low", "medium", "high"]


@dataclass(frozen=True)
class SessionToken:
    """Bearer token issued by ``/auth/token``.

    ``expires_at`` is an absolute epoch timestamp that already has the
    refresh margin subtracted. Instances are never mutated; a refresh
    replaces the whole record.
    """
    access_token: str
    expires_at: float
    issued_at: float
    token_type: str = "Bearer"
    refresh_token: Optional[str] = None

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at

    def __repr__(self) -> str:
        return (
            f"SessionToken(token_type={self.token_type!r}, "
            f"issued_at={self.issued_at!r}, expires_at={self.expires_at!r})"
        )


class AuthResponse(TypedDict, total=False):
    access_token: str
    token_type: str
    expires_in: int
    refresh_token: str


@dataclass
class AnalysisRequest:
    """Input for ``/code/analyze``."""
    code: str
    language: str
    task: str

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "AnalysisRequest":
        return cls(code=data["code"], language=data["language"], task=data["task"])

    def to_payload(self, model: str) -> Dict[str, Any]:
        payload = asdict(self)
        payload["model"] = model
        return payload


class AnalysisResponse(TypedDict):
    analysis: str
    suggestions: List[str]
    severity: Severity


@dataclass
class GenerationRequest:
    """Input for ``/code/generate``."""
    prompt: str
    language: str = "typescript"

    def to_payload(self, model: str) -> Dict[str, Any]:
        payload = asdict(self)
        payload["model"] = model
        return payload


@dataclass
class RefactorRequest:
    """Input for ``/code/refactor``."""
    code: str
    objective: str

    def to_payload(self, model: str) -> Dict[str, Any]:
        payload = asdict(self)
        payload["model"] = model
        return payload
