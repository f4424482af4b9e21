"""
Application settings.

All values can be overridden via environment variables or a ``.env`` file in
the working directory. The frozen dataclass keeps settings immutable for the
duration of a run.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

from breeding_atlas.exceptions import ConfigurationError

load_dotenv()


def _env(key: str, default: str) -> str:
    return os.getenv(key, default)


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key, str(default))
    try:
        return int(raw)
    except ValueError:
        msg = f"{key} must be an integer, got {raw!r}"
        raise ConfigurationError(msg) from None


def _env_bool(key: str, default: bool) -> bool:
    return os.getenv(key, str(default)).strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Immutable application settings loaded from environment variables."""

    app_name: str = field(default_factory=lambda: _env("APP_NAME", "breeding-atlas"))
    app_env: str = field(default_factory=lambda: _env("APP_ENV", "development"))
    debug: bool = field(default_factory=lambda: _env_bool("DEBUG", False))
    log_level: str = field(default_factory=lambda: _env("LOG_LEVEL", "INFO"))

    # Root of the DataStore (reference/, raw/, derived/)
    data_dir: Path = field(default_factory=lambda: Path(_env("ATLAS_DATA_DIR", "data")))

    # Collection window; observations outside it are shape faults
    first_year: int = field(default_factory=lambda: _env_int("ATLAS_FIRST_YEAR", 2020))
    last_year: int = field(default_factory=lambda: _env_int("ATLAS_LAST_YEAR", 2024))

    # Escalation threshold code; empty means the highest probable-tier code
    escalation_threshold: str | None = field(
        default_factory=lambda: _env("ATLAS_ESCALATION_THRESHOLD", "") or None
    )

    def __post_init__(self) -> None:
        if self.first_year > self.last_year:
            msg = f"first_year ({self.first_year}) is after last_year ({self.last_year})"
            raise ConfigurationError(msg)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached singleton Settings instance."""
    return Settings()
