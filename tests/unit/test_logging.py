"""Unit tests for logging service."""

from datetime import datetime, timezone

import pytest

from techhive.services.logging_service import (
    RequestLogFile,
    configure_logging,
    get_logger,
    redact_sensitive,
)


class TestRedactSensitive:
    """Tests for redact_sensitive processor."""

    def test_redacts_api_key(self):
        """Test api_key field is redacted."""
        event_dict = {"x_api_key": "techhive-2025", "event": "test"}
        result = redact_sensitive(None, None, event_dict)
        assert result["x_api_key"] == "REDACTED"
        assert result["event"] == "test"

    def test_redacts_authorization(self):
        """Test authorization field is redacted."""
        event_dict = {"authorization": "Bearer token123", "event": "test"}
        result = redact_sensitive(None, None, event_dict)
        assert result["authorization"] == "REDACTED"

    def test_redacts_token_and_password(self):
        event_dict = {"access_token": "a.b.c", "password": "admin123"}
        result = redact_sensitive(None, None, event_dict)
        assert result == {"access_token": "REDACTED", "password": "REDACTED"}

    def test_redacts_secret_in_key_name(self):
        """Test fields containing 'secret' are redacted."""
        event_dict = {"jwt_secret": "abc123", "event": "test"}
        result = redact_sensitive(None, None, event_dict)
        assert result["jwt_secret"] == "REDACTED"

    def test_preserves_non_sensitive_fields(self):
        """Test non-sensitive fields are preserved."""
        event_dict = {"request_id": "req_1_ab", "user_id": "42", "duration_ms": 3}
        result = redact_sensitive(None, None, dict(event_dict))
        assert result == event_dict

    def test_counts_are_not_redacted(self):
        event_dict = {"revoked_count": 3, "event": "application_shutdown"}
        result = redact_sensitive(None, None, dict(event_dict))
        assert result == event_dict

    def test_case_insensitive_redaction(self):
        """Test redaction works regardless of case."""
        event_dict = {"API_KEY": "secret1", "Password": "secret2"}
        result = redact_sensitive(None, None, event_dict)
        assert result["API_KEY"] == "REDACTED"
        assert result["Password"] == "REDACTED"


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def test_configure_logging_sets_level(self):
        """Test logging level is set correctly."""
        configure_logging("DEBUG")
        logger = get_logger("test")
        assert logger is not None

    def test_unknown_level_falls_back_to_info(self):
        configure_logging("NOT_A_LEVEL")
        assert get_logger() is not None


class TestRequestLogFile:
    """Tests for the daily request log file."""

    def test_daily_file_name(self, tmp_path):
        log_file = RequestLogFile(tmp_path)
        when = datetime(2026, 3, 7, 12, 0, tzinfo=timezone.utc)
        assert log_file.path_for(when) == tmp_path / "api-2026-03-07.log"

    def test_appends_lines(self, tmp_path):
        log_file = RequestLogFile(tmp_path / "logs")
        when = datetime(2026, 3, 7, 12, 0, tzinfo=timezone.utc)

        log_file.write("GET", "/users?role=admin", "10.0.0.1", "curl/8.0", when=when)
        log_file.write("POST", "/auth/login", None, None, when=when)

        lines = log_file.path_for(when).read_text(encoding="utf-8").splitlines()
        assert lines == [
            "[2026-03-07T12:00:00+00:00] GET /users?role=admin - 10.0.0.1 - curl/8.0",
            "[2026-03-07T12:00:00+00:00] POST /auth/login - Unknown - Unknown",
        ]

    def test_write_failure_is_not_raised(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x")
        log_file = RequestLogFile(blocker)

        # Directory creation fails because a file sits at the path.
        log_file.write("GET", "/health", "127.0.0.1", "pytest")

        assert blocker.read_text() == "x"
