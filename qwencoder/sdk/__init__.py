"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Qwen Coder Client, a product of Garudex Labs

Python SDK for the Qwen Coder API.

Provides sync and async clients for code analysis, generation and
refactoring, fronted by an in-memory bearer token cache.
"""

from qwencoder.sdk.client import CodeClient
from qwencoder.sdk.async_client import AsyncCodeClient
from qwencoder.sdk.credentials import AsyncCredentialGate, CredentialGate
from qwencoder.sdk.models import (
    AnalysisRequest,
    AnalysisResponse,
    GenerationRequest,
    RefactorRequest,
    SessionToken,
)

__all__ = [
    "CodeClient",
    "AsyncCodeClient",
    "CredentialGate",
    "AsyncCredentialGate",
    "AnalysisRequest",
    "AnalysisResponse",
    "GenerationRequest",
    "RefactorRequest",
    "SessionToken",
]
