"""Tests for settings and logging configuration."""

import json
import logging

import pytest

pytestmark = pytest.mark.unit

from researchvault.config import Settings
from researchvault.logging_config import JsonFormatter, build_logging_config


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("RESEARCHVAULT_DATABASE_URL", raising=False)
        settings = Settings(_env_file=None)
        assert settings.is_sqlite()
        assert not settings.is_postgresql()
        assert settings.backup_keep_count == 10

    def test_env_prefix(self, monkeypatch, tmp_path):
        monkeypatch.setenv("RESEARCHVAULT_DATABASE_URL", "postgresql://u:p@localhost/vault")
        monkeypatch.setenv("RESEARCHVAULT_ASSET_DIR", str(tmp_path))
        monkeypatch.setenv("RESEARCHVAULT_BACKUP_KEEP_COUNT", "3")

        settings = Settings(_env_file=None)
        assert settings.is_postgresql()
        assert settings.get_asset_dir() == tmp_path
        assert settings.backup_keep_count == 3


class TestLoggingConfig:
    """Tests for the dictConfig mapping."""

    def test_json_by_default(self):
        config = build_logging_config(Settings(_env_file=None))
        assert config["handlers"]["console"]["formatter"] == "json"
        assert config["root"]["level"] == "INFO"
        assert config["loggers"]["sqlalchemy.engine"]["level"] == "WARNING"

    def test_debug_and_text(self):
        settings = Settings(_env_file=None, debug=True, log_format="text", sql_echo=True)
        config = build_logging_config(settings)
        assert config["handlers"]["console"]["formatter"] == "text"
        assert config["root"]["level"] == "DEBUG"
        assert config["loggers"]["sqlalchemy.engine"]["level"] == "INFO"

    def test_json_formatter(self):
        record = logging.LogRecord(
            "researchvault.test", logging.WARNING, __file__, 1, "Checked %d", (3,), None
        )
        payload = json.loads(JsonFormatter().format(record))
        assert payload["level"] == "WARNING"
        assert payload["logger"] == "researchvault.test"
        assert payload["message"] == "Checked 3"
        assert "exception" not in payload
