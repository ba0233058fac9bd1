"""Tests for configuration loading."""

from pathlib import Path

import pytest

from breakplanner.config import (
    DEFAULT_DATABASE_URL,
    BreakPlannerConfig,
    engine_options,
    normalize_database_url,
)


class TestBreakPlannerConfig:
    """Tests for BreakPlannerConfig.from_env."""

    def test_defaults(self):
        """An empty environment gives the defaults."""
        config = BreakPlannerConfig.from_env({}, dotenv=False)
        assert config.database_url == DEFAULT_DATABASE_URL
        assert config.staging_dir == Path(".breakplanner/staging")
        assert config.log_level == "WARNING"
        assert config.max_break_minutes == 60
        assert config.solver_time_limit == 10.0

    def test_values_from_environment(self):
        """Variables override every field."""
        config = BreakPlannerConfig.from_env(
            {
                "BREAKPLANNER_DATABASE_URL": "postgres://u:p@db/breaks",
                "BREAKPLANNER_STAGING_DIR": "/tmp/drafts",
                "BREAKPLANNER_LOG_LEVEL": "debug",
                "BREAKPLANNER_MAX_BREAK_MINUTES": "90",
                "BREAKPLANNER_SOLVER_TIME_LIMIT": "2.5",
            },
            dotenv=False,
        )
        assert config.database_url == "postgresql://u:p@db/breaks"
        assert config.staging_dir == Path("/tmp/drafts")
        assert config.log_level == "DEBUG"
        assert config.max_break_minutes == 90
        assert config.solver_time_limit == 2.5
        assert config.engine_options == {"pool_pre_ping": True, "pool_recycle": 300}

    def test_bad_number(self):
        """A non-numeric limit raises ValueError."""
        with pytest.raises(ValueError):
            BreakPlannerConfig.from_env({"BREAKPLANNER_MAX_BREAK_MINUTES": "lots"}, dotenv=False)

    def test_dotenv_file(self, tmp_path, monkeypatch):
        """A .env file fills variables not already set."""
        env_file = tmp_path / ".env"
        env_file.write_text("BREAKPLANNER_MAX_BREAK_MINUTES=75\n")
        # Registers the variable with monkeypatch so it is removed afterwards
        monkeypatch.setenv("BREAKPLANNER_MAX_BREAK_MINUTES", "")
        monkeypatch.delenv("BREAKPLANNER_MAX_BREAK_MINUTES")

        config = BreakPlannerConfig.from_env(dotenv_path=env_file)
        assert config.max_break_minutes == 75


class TestDatabaseUrls:
    """Tests for URL helpers."""

    def test_normalize_postgres(self):
        """postgres:// is rewritten for SQLAlchemy."""
        assert normalize_database_url("postgres://x/y") == "postgresql://x/y"
        assert normalize_database_url("sqlite:///a.db") == "sqlite:///a.db"

    def test_sqlite_has_no_pool_options(self):
        """SQLite needs no pool options."""
        assert engine_options("sqlite:///a.db") == {}
