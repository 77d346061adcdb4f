"""
Pytest configuration and fixtures for the service tests.
"""

from __future__ import annotations

import pytest

from jsonui.kernel.data_store import DataStore
from jsonui.kernel.mock_stream import MockStream


@pytest.fixture
def mock_stream() -> MockStream:
    """MockStream over the golden JSONL fixtures."""
    return MockStream()


@pytest.fixture
def store() -> DataStore:
    return DataStore()
