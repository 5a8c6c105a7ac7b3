"""
Copyright (C) 2026 Garudex Labs.  All Rights Reserved.
Qwen Coder Client, a product of Garudex Labs

Demo script for the Qwen Coder SDK clients.

This script demonstrates how to analyze, generate and refactor code with
CodeClient and AsyncCodeClient.

Requirements:
- QWEN_API_KEY environment variable set to a valid API key, or an api_key in
  ~/.qwencoder/config.yaml (QWEN_CONFIG overrides the path)
- Network access to https://api.qwen.ai/v1 (or QWEN_BASE_URL)
"""

import asyncio
import os

from qwencoder import AsyncCodeClient, CodeClient, QwenCoderError
from qwencoder.config import load_config, setup_logging_from_config


def demo_synchronous_client(api_key: str, base_url: str):
    """Demonstrate synchronous CodeClient usage."""
    print("=== Synchronous CodeClient Demo ===\n")

    with CodeClient(api_key=api_key, base_url=base_url) as client:
        # 1. Analyze code (the first call exchanges the API key for a token)
        print("1. Analyzing code...")
        result = client.analyze_code({
            "code": "def add(a, b): return a+b",
            "language": "python",
            "task": "lint",
        })
        print(f"   Severity: {result['severity']}")
        for suggestion in result["suggestions"]:
            print(f"   - {suggestion}")
        print()

        # 2. Generate code (reuses the cached token)
        print("2. Generating code...")
        code = client.generate_code("write a function that sorts a list of ints", "go")
        print(code)
        print()

        # 3. Refactor code
        print("3. Refactoring code...")
        refactored = client.refactor_code("x=1\ny=x+1", "use descriptive names")
        print(refactored)
        print()

        token = client.gate.token
        if token is not None:
            print(f"Token cached until {token.expires_at:.0f} (epoch seconds)\n")


async def demo_async_client(api_key: str, base_url: str):
    """Demonstrate AsyncCodeClient usage with concurrent calls."""
    print("\n=== Async CodeClient Demo ===\n")

    async with AsyncCodeClient(api_key=api_key, base_url=base_url) as client:
        snippets = await asyncio.gather(
            client.generate_code("fizzbuzz", "python"),
            client.generate_code("fizzbuzz", "rust"),
        )
        for snippet in snippets:
            print(snippet)
            print("-" * 20)

    print("Async client automatically closed\n")


if __name__ == "__main__":
    # Missing config file means defaults; QWEN_CONFIG points at another file
    config = load_config(os.environ.get("QWEN_CONFIG"))
    setup_logging_from_config(config.logging)

    api_key = os.environ.get("QWEN_API_KEY", config.client.api_key)
    base_url = os.environ.get("QWEN_BASE_URL", config.client.base_url)

    print("Qwen Coder SDK Demo")
    print("=" * 50)
    print()

    try:
        demo_synchronous_client(api_key, base_url)
        asyncio.run(demo_async_client(api_key, base_url))
    except QwenCoderError as e:
        print(f"Error ({e.kind.value if e.kind else 'unknown'}): {e}")
        if e.cause is not None:
            print(f"Caused by: {e.cause!r}")
