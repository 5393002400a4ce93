"""Pytest configuration and fixtures for integration tests.

Ensures environment variables are loaded and skips the live API tests when
no API key is configured.
"""

import os
from pathlib import Path

import pytest
from dotenv import load_dotenv


def pytest_configure(config):
    """Load .env before test collection so the client sees the API key."""
    env_path = Path(__file__).parent.parent.parent / ".env"
    load_dotenv(env_path)

    print("\n" + "=" * 70)
    print("Note: These tests call the live messages API and require ANTHROPIC_API_KEY")
    print(f"Environment loaded from: {env_path}")
    print("=" * 70 + "\n")


@pytest.fixture(scope="session", autouse=True)
def check_api_key():
    """Skip every integration test if ANTHROPIC_API_KEY is missing."""
    if not os.getenv("ANTHROPIC_API_KEY"):
        pytest.skip(
            "Integration tests skipped. Missing API key: ANTHROPIC_API_KEY. Please set it in your .env file.",
            allow_module_level=True,
        )
