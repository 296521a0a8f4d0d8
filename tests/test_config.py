"""Test configuration loading."""
from __future__ import annotations

import pytest
from pydantic import ValidationError

from estate_crm.core.config import (
    PROJECT_ROOT,
    Settings,
    _resolve_database_url,
    get_settings,
    reload_settings,
)


def test_settings_load():
    """Test that settings load correctly."""
    settings = get_settings()

    assert settings.log_level in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
    assert settings.auth_cookie_name == "auth-token"
    assert settings.default_page_limit == 10
    assert settings.max_page_limit >= settings.default_page_limit


def test_allowed_origins_split(monkeypatch):
    monkeypatch.setenv("ALLOWED_ORIGINS", "http://a.example.com, ,http://b.example.com")
    settings = Settings()
    assert settings.get_allowed_origins() == ["http://a.example.com", "http://b.example.com"]


def test_status_transition_mode(monkeypatch):
    monkeypatch.setenv("STATUS_TRANSITION_MODE", "STRICT")
    assert Settings().is_strict_transitions() is True

    monkeypatch.setenv("STATUS_TRANSITION_MODE", "sometimes")
    with pytest.raises(ValidationError):
        Settings()


def test_invalid_log_level(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "LOUD")
    with pytest.raises(ValidationError):
        Settings()


def test_production_requires_secret(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setenv("JWT_SECRET_KEY", "change-me-in-production")
    with pytest.raises(ValidationError):
        Settings()


def test_relative_sqlite_path_is_absolute():
    resolved = _resolve_database_url("sqlite:///./data/crm.db")
    assert resolved == f"sqlite:///{(PROJECT_ROOT / 'data' / 'crm.db').as_posix()}"
    assert _resolve_database_url("sqlite:///:memory:") == "sqlite:///:memory:"
    assert _resolve_database_url("postgresql://u:p@db/crm") == "postgresql://u:p@db/crm"


def test_reload_settings_clears_cache(monkeypatch):
    first = get_settings()
    monkeypatch.setenv("DEFAULT_PAGE_LIMIT", "25")
    try:
        assert reload_settings().default_page_limit == 25
        assert get_settings() is not first
    finally:
        monkeypatch.undo()
        reload_settings()
