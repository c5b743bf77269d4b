"""Settings tests — AKCENT_* environment loading and the production guard."""

import pytest
from pydantic import ValidationError

from akcent.config import Settings


def test_defaults_start_without_services(monkeypatch):
    monkeypatch.delenv("AKCENT_DATABASE_URL", raising=False)
    s = Settings()
    assert s.database_url.startswith("sqlite+aiosqlite")
    assert s.environment == "development"


def test_env_prefix(monkeypatch):
    monkeypatch.setenv("AKCENT_DATABASE_URL", "postgresql+asyncpg://u:p@db/akcent")
    monkeypatch.setenv("AKCENT_MAX_UPLOAD_BYTES", "1024")
    s = Settings()
    assert s.database_url == "postgresql+asyncpg://u:p@db/akcent"
    assert s.max_upload_bytes == 1024


def test_production_requires_a_session_secret(monkeypatch):
    monkeypatch.setenv("AKCENT_ENVIRONMENT", "production")
    monkeypatch.delenv("AKCENT_SESSION_SECRET", raising=False)
    with pytest.raises(ValidationError):
        Settings()

    monkeypatch.setenv("AKCENT_SESSION_SECRET", "s" * 32)
    assert Settings().environment == "production"


def test_settings_expose_only_declared_fields():
    assert not hasattr(Settings, "is_sqlite")
    assert "database_url" in Settings.model_fields
