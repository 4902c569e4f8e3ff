"""Tests for settings defaults, structlog configuration and the log notifier."""

from __future__ import annotations

from unittest.mock import patch

import structlog

from src.salesboard.config import Environment, Settings, StoreBackend, get_settings
from src.salesboard.observability import configure_structlog
from src.salesboard.pipeline.notifications import LogNotifier


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.DEAL_STORE_BACKEND == StoreBackend.supabase
        assert settings.WON_STAGE_ID == "closed_won"
        assert settings.PERSIST_SIBLING_POSITIONS is True
        assert "closed_lost" in settings.ACCEPTED_STAGE_IDS

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("DEAL_STORE_BACKEND", "postgres")
        monkeypatch.setenv("SERIALIZE_DRAGS", "false")
        settings = Settings()
        assert settings.DEAL_STORE_BACKEND == StoreBackend.postgres
        assert settings.SERIALIZE_DRAGS is False

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestConfigureStructlog:
    def test_development_uses_console_renderer(self):
        configure_structlog(Settings(ENVIRONMENT=Environment.development))
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.dev.ConsoleRenderer)

    def test_production_uses_json_renderer(self):
        configure_structlog(Settings(ENVIRONMENT=Environment.production))
        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)


class TestLogNotifier:
    def test_success_is_logged_at_info(self):
        with patch("src.salesboard.pipeline.notifications.logger") as mock_logger:
            LogNotifier().success("Deal marked as lost")
        mock_logger.info.assert_called_once_with(
            "notification.success", message="Deal marked as lost"
        )

    def test_error_is_logged_as_warning(self):
        with patch("src.salesboard.pipeline.notifications.logger") as mock_logger:
            LogNotifier().error("Could not move the deal")
        mock_logger.warning.assert_called_once_with(
            "notification.error", message="Could not move the deal"
        )
