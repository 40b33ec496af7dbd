"""
Tests for Configuration
"""

import pytest
from pydantic import ValidationError

from pr_reviewer.config import Settings


class TestSettings:
    """Tests for Settings validation and computed properties."""

    def test_defaults(self, monkeypatch):
        """Test the defaults used without an environment."""
        monkeypatch.delenv("STORAGE_BACKEND", raising=False)
        settings = Settings(_env_file=None)

        assert settings.storage_backend == "database"
        assert settings.port == 8080
        assert settings.operation_timeout == 4.0
        assert settings.uses_memory_storage is False

    def test_env_override(self, monkeypatch):
        """Test that environment variables are picked up case-insensitively."""
        monkeypatch.setenv("STORAGE_BACKEND", "Memory")
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("OPERATION_TIMEOUT", "1.5")

        settings = Settings(_env_file=None)

        assert settings.uses_memory_storage is True
        assert settings.log_level == "DEBUG"
        assert settings.operation_timeout == 1.5

    def test_invalid_backend(self):
        with pytest.raises(ValidationError):
            Settings(storage_backend="redis", _env_file=None)

    def test_invalid_log_level(self):
        with pytest.raises(ValidationError):
            Settings(log_level="LOUD", _env_file=None)

    def test_timeout_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(operation_timeout=0, _env_file=None)

    def test_redacted_database_url(self):
        """Test that the password is masked."""
        settings = Settings(
            database_url="postgresql+asyncpg://svc:hunter2@db:5432/reviews",
            _env_file=None,
        )

        assert settings.redacted_database_url == "postgresql+asyncpg://svc:***@db:5432/reviews"
        assert "hunter2" not in settings.redacted_database_url

    def test_redacted_url_without_credentials(self):
        settings = Settings(database_url="sqlite+aiosqlite:///./local.db", _env_file=None)

        assert settings.redacted_database_url == "sqlite+aiosqlite:///./local.db"
