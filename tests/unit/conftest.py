"""Pytest fixtures for unit tests."""

import logging

import pytest

from fakes import RecordingSleep


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def test_logger() -> logging.Logger:
    """Isolated logger so tests never depend on environment log settings."""
    log = logging.getLogger("recipe_client.tests")
    log.setLevel(logging.DEBUG)
    return log
