"""
================================================================================
Herdbook - Configuration Unit Tests
================================================================================

Description:
    Unit tests for the herdbook.config module: dataclass defaults, the
    singleton, .config.json loading and environment variable overrides.

Test Coverage:
    - Default values
    - Singleton behavior
    - JSON file sections
    - Environment overrides (database, tier, jobs, web)
    - setup_logging file handler

================================================================================
"""
import json
import logging
import logging.handlers
from pathlib import Path

import pytest

from herdbook.config import (
    config,
    get_config,
    setup_logging,
    AuthConfig,
    DatabaseConfig,
    DirectoryConfig,
    Environment,
    JobsConfig,
    UnifiedConfig,
    WebConfig,
)


@pytest.fixture
def reload_config(monkeypatch):
    """Reload the singleton after the test has patched the environment"""
    yield config.load
    monkeypatch.undo()
    config.load()


class TestConfigDefaults:
    """Test dataclass defaults"""

    def test_database_defaults(self):
        db = DatabaseConfig()

        assert db.db_type == "sqlite"
        assert db.path == Path("data/database/herdbook.db")
        assert db.auto_create_schema is True

    def test_directory_defaults(self):
        directories = DirectoryConfig()

        assert directories.reports_dir == Path("data/reports")
        assert directories.logs_dir == Path("data/logs")
        assert not hasattr(directories, "data_dir")

    def test_web_defaults(self):
        assert WebConfig().port == 7071

    def test_auth_and_jobs_defaults(self):
        assert AuthConfig().mock_user_tier == "free"
        assert JobsConfig().enabled is False
        assert JobsConfig().poll_interval_seconds == 30


class TestConfigSingleton:
    """Test singleton access"""

    def test_same_instance(self):
        assert UnifiedConfig() is config
        assert get_config() is config

    def test_to_dict(self):
        data = config.to_dict()

        assert data['environment'] == config.environment.value
        assert data['database']['type'] == config.database.db_type
        assert 'mock_user_tier' in data['auth']


class TestEnvironmentOverrides:
    """Test environment variable overrides"""

    def test_database_overrides(self, monkeypatch, reload_config):
        monkeypatch.setenv("HERDBOOK_DB_TYPE", "postgresql")
        monkeypatch.setenv("PGHOST", "db.internal")
        monkeypatch.setenv("PGPORT", "6543")
        monkeypatch.setenv("PGDATABASE", "farm")
        reload_config()

        assert config.database.db_type == "postgresql"
        assert config.database.postgresql_host == "db.internal"
        assert config.database.postgresql_port == 6543
        assert config.database.postgresql_database == "farm"

    def test_sqlite_path(self, monkeypatch, reload_config):
        monkeypatch.setenv("HERDBOOK_DB_PATH", "/tmp/elsewhere.db")
        reload_config()

        assert config.database.path == Path("/tmp/elsewhere.db")

    def test_user_tier(self, monkeypatch, reload_config):
        monkeypatch.setenv("HERDBOOK_USER_TIER", "premium")
        reload_config()

        assert config.auth.mock_user_tier == "premium"

    @pytest.mark.parametrize("raw, expected", [("true", True), ("1", True), ("no", False)])
    def test_jobs_enabled(self, monkeypatch, reload_config, raw, expected):
        monkeypatch.setenv("HERDBOOK_JOBS_ENABLED", raw)
        reload_config()

        assert config.jobs.enabled is expected

    def test_environment_and_port(self, monkeypatch, reload_config):
        monkeypatch.setenv("HERDBOOK_ENVIRONMENT", "production")
        monkeypatch.setenv("HERDBOOK_PORT", "9000")
        reload_config()

        assert config.environment == Environment.PRODUCTION
        assert config.is_production()
        assert config.web.port == 9000


class TestJsonConfig:
    """Test .config.json loading"""

    def test_sections_loaded(self, temp_dir, monkeypatch, reload_config):
        config_file = temp_dir / ".config.json"
        config_file.write_text(json.dumps({
            "database": {"type": "sqlite", "sqlite": {"path": "custom/farm.db"}},
            "jobs": {"enabled": True, "poll_interval_seconds": 5},
            "auth": {"mock_user_tier": "enterprise"},
        }), encoding="utf-8")
        monkeypatch.setattr(UnifiedConfig, "_config_file", config_file)
        monkeypatch.delenv("HERDBOOK_USER_TIER", raising=False)
        monkeypatch.delenv("HERDBOOK_JOBS_ENABLED", raising=False)
        monkeypatch.delenv("HERDBOOK_DB_PATH", raising=False)
        reload_config()

        assert config.database.path == Path("custom/farm.db")
        assert config.jobs.enabled is True
        assert config.jobs.poll_interval_seconds == 5
        assert config.auth.mock_user_tier == "enterprise"

    def test_invalid_json_falls_back_to_defaults(self, temp_dir, monkeypatch, reload_config):
        config_file = temp_dir / ".config.json"
        config_file.write_text("{not json", encoding="utf-8")
        monkeypatch.setattr(UnifiedConfig, "_config_file", config_file)
        monkeypatch.delenv("HERDBOOK_PORT", raising=False)
        reload_config()

        assert config.web.port == 7071


class TestSetupLogging:
    """Test logging setup"""

    def test_file_handler_added_once(self, temp_dir, monkeypatch):
        monkeypatch.setattr(config.directories, "logs_dir", temp_dir / "logs")
        monkeypatch.setattr(config.logging, "enable_file", True)
        root_logger = logging.getLogger()

        try:
            setup_logging()
            setup_logging()

            handlers = [h for h in root_logger.handlers
                        if isinstance(h, logging.handlers.RotatingFileHandler)
                        and Path(h.baseFilename).parent == (temp_dir / "logs").resolve()]
            assert len(handlers) == 1
            assert Path(handlers[0].baseFilename).name.startswith("herdbook_")
        finally:
            for handler in list(root_logger.handlers):
                if isinstance(handler, logging.handlers.RotatingFileHandler):
                    root_logger.removeHandler(handler)
                    handler.close()
