"""Journal configuration using Pydantic for validation.

Loads settings from:
1. Environment variables (highest priority)
2. TOML config file (journal/config/default.toml or custom path)
3. Pydantic defaults (lowest priority)
"""

import os
import tomllib
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field

from journal.models import DEFAULT_PAIRS

DEFAULT_CONFIG_PATH = str(Path(__file__).parent / "default.toml")


class AnalyticsConfig(BaseModel):
    """Defaults for the analytics views."""
    histogram_step: int = Field(15, gt=0)             # Entry-time bucket width (minutes)
    histogram_bucketing: Literal["range", "exact"] = "range"
    histogram_start: int = Field(0, ge=0, le=1440)    # First bucket (minutes since midnight)
    histogram_end: int = Field(1440, ge=0, le=1440)   # Last bucket start (inclusive)


class JournalConfig(BaseModel):
    """Top-level journal configuration."""

    # Whose journal this is; every store call is scoped to it
    user_id: str = "local"

    # Instruments offered when logging a setup
    pairs: list[str] = Field(default_factory=lambda: list(DEFAULT_PAIRS))

    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)

    # Storage
    db_path: str = "data/journal.db"

    # Backups and reports
    export_path: Optional[str] = None    # None -> backups/trading-journal-backup.json
    reports_dir: Optional[str] = None    # None -> reports/

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = "data/journal.log"

    @classmethod
    def load(cls, config_path: Optional[str] = None) -> "JournalConfig":
        """Load config from TOML file + environment variables.

        Environment variables override TOML values:
            JOURNAL_USER_ID, JOURNAL_DB_PATH, JOURNAL_LOG_LEVEL
        """
        data = {}

        if config_path and Path(config_path).exists():
            data = _load_toml(config_path)

        env_overrides = {
            "user_id": os.getenv("JOURNAL_USER_ID"),
            "db_path": os.getenv("JOURNAL_DB_PATH"),
            "log_level": os.getenv("JOURNAL_LOG_LEVEL"),
        }
        for key, val in env_overrides.items():
            if val is not None:
                data[key] = val

        return cls(**data)


def _load_toml(path: str) -> dict:
    with open(path, "rb") as f:
        return tomllib.load(f)
