"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Qwen Coder Client, a product of Garudex Labs

Qwen Coder Client - Code intelligence over HTTP with cached bearer tokens

Exchanges a long-lived API key for short-lived bearer tokens, caches them in
memory, and uses them to call the remote analyze, generate and refactor
operations.
"""

from qwencoder._version import __version__
from qwencoder.exceptions import (
    AnalysisError,
    AuthenticationError,
    ErrorKind,
    GenerationError,
    QwenCoderError,
    RefactorError,
)
from qwencoder.sdk import AsyncCodeClient, CodeClient

__all__ = [
    "__version__",
    "AnalysisError",
    "AsyncCodeClient",
    "AuthenticationError",
    "CodeClient",
    "ErrorKind",
    "GenerationError",
    "QwenCoderError",
    "RefactorError",
]
