"""Shared fixtures for the test suite."""
import pytest

from idea_hunter.config import AppConfig, Settings


@pytest.fixture
def settings(monkeypatch):
    """Settings with every credential present."""
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("NOTION_TOKEN", "secret_test")
    monkeypatch.setenv("NOTION_DATABASE_ID", "db-123")
    monkeypatch.delenv("BASE_URL", raising=False)
    monkeypatch.delenv("PROXY_URL", raising=False)
    return Settings()


@pytest.fixture
def bare_settings(monkeypatch):
    """Settings with no credentials at all."""
    for name in ("OPENAI_API_KEY", "API_KEY", "NOTION_TOKEN", "NOTION_API_KEY", "NOTION_DATABASE_ID"):
        monkeypatch.delenv(name, raising=False)
    return Settings()


@pytest.fixture
def config():
    return AppConfig()
