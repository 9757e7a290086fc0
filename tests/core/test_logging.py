"""Tests for log configuration and redaction."""

import json
import logging

import pytest
import structlog

from healthauth.core.logging import (
    configure_production_logging,
    mask_email,
    redact_sensitive_data,
    redact_string,
)


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class TestRedaction:
    def test_sensitive_keys_are_removed(self):
        event = {
            "event": "login",
            "password": "Str0ng!Pass1234",
            "session_token": "a" * 64,
            "otp_code": "123456",
            "reset_token": "b" * 64,
        }

        redacted = redact_sensitive_data(None, "info", event)

        assert redacted["event"] == "login"
        for key in ("password", "session_token", "otp_code", "reset_token"):
            assert redacted[key] == "***REDACTED***"

    def test_original_event_untouched(self):
        event = {"event": "x", "password": "secret"}

        redact_sensitive_data(None, "info", event)

        assert event["password"] == "secret"

    def test_emails_in_values_are_masked(self):
        redacted = redact_sensitive_data(None, "info", {"event": "x", "email": "jane.doe@example.com"})

        assert redacted["email"] == "j***@example.com"

    def test_long_tokens_are_shortened(self):
        value = "0123456789abcdef" * 4

        assert redact_string(value) == "01234567...cdef"

    def test_short_values_pass_through(self):
        assert redact_string("login") == "login"
        assert redact_string("10.0.0.1") == "10.0.0.1"

    def test_mask_email(self):
        assert mask_email("user@example.com") == "u***@example.com"


class TestProductionLogging:
    def test_stdlib_records_render_as_json(self, restore_root_logger):
        configure_production_logging(logging.INFO)

        handler = restore_root_logger.handlers[0]
        record = logging.LogRecord(
            "healthauth.services.sessions", logging.INFO, __file__, 1, "Session invalidated", None, None
        )
        payload = json.loads(handler.format(record))

        assert payload["event"] == "Session invalidated"
        assert payload["level"] == "info"
        assert payload["logger"] == "healthauth.services.sessions"
        assert "timestamp" in payload

    def test_level_is_applied(self, restore_root_logger):
        configure_production_logging(logging.WARNING)

        assert restore_root_logger.level == logging.WARNING


class TestSetupLogging:
    def test_production_mode_installs_json_handler(self, restore_root_logger, monkeypatch):
        from healthauth.core import logging as logging_module

        monkeypatch.setattr(logging_module.settings, "DEBUG", False)
        monkeypatch.setattr(logging_module.settings, "LOG_LEVEL", "ERROR")

        logging_module.setup_logging()

        assert isinstance(restore_root_logger.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)
        assert restore_root_logger.level == logging.ERROR
