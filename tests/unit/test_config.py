"""
Unit tests for configuration loading and validation.
"""

import logging

import pytest

from taskdesk.config import AppConfig, IdentityConfig, ObservabilityConfig, SeedConfig


class TestFromEnv:
    """Tests for environment loading."""

    def test_defaults(self, monkeypatch):
        for name in (
            "TASKDESK_DB_PATH",
            "TASKDESK_MAX_FAILED_ATTEMPTS",
            "TM_ADMIN_EMAIL",
            "TM_ADMIN_PASSWORD",
            "LOG_FORMAT",
        ):
            monkeypatch.delenv(name, raising=False)

        config = AppConfig.from_env()

        assert config.storage.db_path.endswith("taskdesk.db")
        assert config.identity.max_failed_attempts == 5
        assert config.identity.lockout_minutes == 15
        assert not config.seed.admin_configured
        assert config.observability.log_format == "text"

    def test_overrides(self, monkeypatch, db_path):
        monkeypatch.setenv("TASKDESK_DB_PATH", db_path)
        monkeypatch.setenv("TASKDESK_SQLITE_WAL_MODE", "false")
        monkeypatch.setenv("TASKDESK_MAX_FAILED_ATTEMPTS", "0")
        monkeypatch.setenv("TM_ADMIN_EMAIL", "root@example.com")
        monkeypatch.setenv("TM_ADMIN_PASSWORD", "hunter22")
        monkeypatch.setenv("TASKDESK_SEED_DEMO_DATA", "false")
        monkeypatch.setenv("LOG_FORMAT", "json")

        config = AppConfig.from_env()

        assert config.storage.db_path == db_path
        assert config.storage.wal_mode is False
        assert config.identity.max_failed_attempts == 0
        assert config.seed.admin_configured
        assert config.seed.demo_data is False
        assert config.observability.log_format == "json"


class TestValidate:
    """Tests for AppConfig.validate."""

    def test_invalid_log_format(self):
        config = AppConfig(observability=ObservabilityConfig(log_format="xml"))
        with pytest.raises(ValueError, match="LOG_FORMAT"):
            config.validate()

    def test_negative_attempts(self):
        config = AppConfig(identity=IdentityConfig(max_failed_attempts=-1))
        with pytest.raises(ValueError):
            config.validate()

    def test_blank_admin_not_configured(self):
        assert not SeedConfig(admin_email="  ", admin_password="pw").admin_configured
        assert not SeedConfig(admin_email="a@example.com").admin_configured

    def test_log_config_redacts_password(self, caplog):
        config = AppConfig(seed=SeedConfig(admin_email="a@example.com", admin_password="topsecret"))
        with caplog.at_level(logging.INFO, logger="taskdesk.config"):
            config.log_config()

        record = caplog.records[-1]
        assert record.admin_password == "***"
        assert "topsecret" not in caplog.text
