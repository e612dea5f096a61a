"""Runtime settings read from the environment.

A ``.env`` file in the working directory is loaded first, so local
overrides never need to be exported by hand.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

# Resolve data directory relative to the project root.
# When installed in editable mode the project root is the repo root.
DATA_DIR = Path(__file__).resolve().parents[3] / "data"

DEFAULT_DATABASE_URL = f"sqlite:///{DATA_DIR / 'kiln.db'}"

_TRUTHY = ("true", "1", "yes", "on")


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    echo_sql: bool = False
    log_level: str = "INFO"
    actor: str = "system"
    max_retries: int = 3


def load_settings() -> Settings:
    load_dotenv(find_dotenv(usecwd=True))

    log_level = os.environ.get("KILN_LOG_LEVEL", "INFO").strip().upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ValueError(f"KILN_LOG_LEVEL must be a logging level name, got {log_level!r}")

    raw_retries = os.environ.get("KILN_MAX_RETRIES", "3")
    try:
        max_retries = int(raw_retries)
    except ValueError:
        raise ValueError(f"KILN_MAX_RETRIES must be an integer, got {raw_retries!r}") from None
    if max_retries < 1:
        raise ValueError("KILN_MAX_RETRIES must be at least 1")

    return Settings(
        database_url=os.environ.get("KILN_DATABASE_URL", DEFAULT_DATABASE_URL),
        echo_sql=os.environ.get("KILN_ECHO_SQL", "False").lower() in _TRUTHY,
        log_level=log_level,
        actor=os.environ.get("KILN_ACTOR", "system").strip() or "system",
        max_retries=max_retries,
    )
