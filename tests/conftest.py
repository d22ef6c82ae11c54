"""Shared fixtures for Fintrack tests."""

import pytest

from fintrack.config import get_settings
from scripted import RecordingAuditLogger, ScriptedClient


@pytest.fixture
def scripted_client():
    return ScriptedClient()


@pytest.fixture
def audit_logger():
    return RecordingAuditLogger()


@pytest.fixture(autouse=True)
def fresh_settings():
    """Reload settings for every test so env changes never leak."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
