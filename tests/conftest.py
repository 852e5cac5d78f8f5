"""Shared pytest fixtures."""

import pytest

from core.settings import get_app_settings


@pytest.fixture(autouse=True)
def fresh_settings(monkeypatch):
    """Reload settings for every test so env overrides apply."""
    monkeypatch.delenv("WORKFLOW_DEFAULT_USE_TRANSACTION", raising=False)
    monkeypatch.delenv("WORKFLOW_RECORD_EXECUTIONS", raising=False)
    get_app_settings.cache_clear()
    yield
    get_app_settings.cache_clear()


@pytest.fixture
def user():
    """Opaque user the workflows run for."""
    return {"id": 1, "email": "buyer@example.com"}
