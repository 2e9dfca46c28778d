# tests/conftest.py

"""Shared pytest fixtures for all tests."""

from collections.abc import Generator
from unittest.mock import AsyncMock, patch

import pytest


@pytest.fixture(autouse=True)
def mock_pause() -> Generator[AsyncMock, None, None]:
    """Patch the shared delay hook so cooldowns and backoff run instantly."""
    with patch(
        "wholesale_finder.services.retry.pause", new_callable=AsyncMock
    ) as mocked:
        yield mocked
