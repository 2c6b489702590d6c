"""Tests for the structlog processors shared by every logger."""
from core.logging import _add_app_name, _censor_sensitive_keys, _render_bytes, db_logger, service_logger


class TestProcessors:
    def test_row_versions_render_as_hex(self) -> None:
        event = _render_bytes(None, "info", {"event": "entity_updated", "timestamp": b"\x00\xff"})
        assert event["timestamp"] == "00ff"

    def test_sensitive_keys_are_redacted(self) -> None:
        event = _censor_sensitive_keys(
            None,
            "info",
            {"event": "service_context_started", "password": "hunter2", "settings": {"Token": "abc", "level": 1}},
        )
        assert event["password"] == "[REDACTED]"
        assert event["settings"] == {"Token": "[REDACTED]", "level": 1}

    def test_app_name_does_not_overwrite(self) -> None:
        assert _add_app_name(None, "info", {})["app"] == "restworld"
        assert _add_app_name(None, "info", {"app": "blog"})["app"] == "blog"


class TestNamedLoggers:
    def test_loggers_are_cached_per_name(self) -> None:
        assert service_logger() is service_logger()
        assert service_logger() is not db_logger()
