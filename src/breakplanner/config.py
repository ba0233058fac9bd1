"""Configuration settings for the break planner.

Values come from the environment; a ``.env`` file in the working directory
is loaded first when present.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union

from dotenv import find_dotenv, load_dotenv

DEFAULT_DATABASE_URL = "sqlite:///breakplanner.db"
DEFAULT_STAGING_DIR = ".breakplanner/staging"


def normalize_database_url(url: str) -> str:
    """Old-style postgres:// URLs need postgresql:// for SQLAlchemy."""
    if url and url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql://", 1)
    return url


def engine_options(url: str) -> dict:
    """SQLAlchemy engine options based on database type."""
    if url.startswith("postgresql://"):
        return {
            "pool_pre_ping": True,
            "pool_recycle": 300,
        }
    return {}


@dataclass
class BreakPlannerConfig:
    """Runtime configuration.

    Attributes:
        database_url: SQLAlchemy URL of the break store.
        staging_dir: Directory for unsaved draft snapshots.
        log_level: Root logging level name for the CLI.
        max_break_minutes: Break allowance per person per shift.
        solver_time_limit: Auto-fill solver time limit in seconds.
    """

    database_url: str = DEFAULT_DATABASE_URL
    staging_dir: Path = Path(DEFAULT_STAGING_DIR)
    log_level: str = "WARNING"
    max_break_minutes: int = 60
    solver_time_limit: float = 10.0

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        dotenv: bool = True,
        dotenv_path: Optional[Union[str, Path]] = None,
    ) -> "BreakPlannerConfig":
        """Build a config from environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``.
            dotenv: Load a ``.env`` file into ``os.environ`` first.
            dotenv_path: File to load instead of the nearest ``.env`` above
                the working directory.

        Raises:
            ValueError: A numeric variable does not parse.
        """
        if dotenv:
            load_dotenv(dotenv_path or find_dotenv(usecwd=True))
        env = os.environ if environ is None else environ

        return cls(
            database_url=normalize_database_url(
                env.get("BREAKPLANNER_DATABASE_URL", DEFAULT_DATABASE_URL)
            ),
            staging_dir=Path(env.get("BREAKPLANNER_STAGING_DIR", DEFAULT_STAGING_DIR)),
            log_level=env.get("BREAKPLANNER_LOG_LEVEL", "WARNING").upper(),
            max_break_minutes=int(env.get("BREAKPLANNER_MAX_BREAK_MINUTES", 60)),
            solver_time_limit=float(env.get("BREAKPLANNER_SOLVER_TIME_LIMIT", 10)),
        )

    @property
    def engine_options(self) -> dict:
        return engine_options(self.database_url)
