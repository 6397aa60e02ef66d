"""Pytest configuration and shared fixtures for all tests."""

from unittest.mock import Mock

import pytest
import requests

from .fakes import FakeRegistry


@pytest.fixture
def mock_session():
    """Create a mock requests session."""
    return Mock(spec=requests.Session)


@pytest.fixture
def fake_registry():
    return FakeRegistry()
