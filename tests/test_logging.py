"""
Tests for Logging Configuration
"""

import logging

from pr_reviewer.config import Settings
from pr_reviewer.logging_config import (
    add_app_context,
    filter_sensitive_data,
    get_logger,
    setup_logging,
)


class TestSensitiveDataFilter:
    """Tests for the redaction processor."""

    def test_redacts_secret_keys(self):
        """Test that values under secret-looking keys are replaced."""
        event = {"event": "connect", "db_password": "hunter2", "Authorization": "Bearer x"}

        result = filter_sensitive_data(None, "info", event)

        assert result["db_password"] == "[REDACTED]"
        assert result["Authorization"] == "[REDACTED]"
        assert result["event"] == "connect"

    def test_masks_password_in_url(self):
        """Test that a DSN password is masked, user and host kept."""
        event = {"event": "ready", "dsn": "postgresql://svc:hunter2@db:5432/reviews"}

        result = filter_sensitive_data(None, "info", event)

        assert result["dsn"] == "postgresql://svc:***@db:5432/reviews"

    def test_nested_dicts(self):
        event = {"event": "x", "extra": {"api_token": "abc", "pr_id": "pr1"}}

        result = filter_sensitive_data(None, "info", event)

        assert result["extra"] == {"api_token": "[REDACTED]", "pr_id": "pr1"}


class TestSetup:
    """Tests for setup_logging."""

    def test_app_context(self):
        result = add_app_context(None, "info", {"event": "x"})

        assert result["app"] == "pr-reviewer"
        assert "version" in result

    def test_setup_sets_root_level(self):
        """Test that the configured level reaches the root logger."""
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging(Settings(log_level="WARNING", log_json_format=True, _env_file=None))

            assert root.level == logging.WARNING
            assert len(root.handlers) == 1
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)
        assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING

    def test_get_logger_binds(self):
        logger = get_logger("pr_reviewer.tests").bind(pr_id="pr1")

        assert logger is not None
