"""
Phoenix Tracker — Centralized configuration.

Loads all settings from .env and validates required keys.
This module is the foundation for every other module in the project.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, field_validator

# Load .env from project root (two levels up from src/config.py)
_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_ENV_PATH)


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Telegram
    TELEGRAM_BOT_TOKEN: str

    # The single user this tracker belongs to (Telegram user id)
    OWNER_USER_ID: int = 0

    # SQLite
    DATABASE_PATH: str = "data/phoenix.db"

    # Fasting
    DEFAULT_FAST_HOURS: float = 16
    TICK_INTERVAL_SECONDS: float = 1

    # Logging
    LOG_LEVEL: str = "INFO"

    @field_validator("OWNER_USER_ID", mode="before")
    @classmethod
    def parse_owner_id(cls, v: str | int) -> int:
        if isinstance(v, str):
            return int(v.strip()) if v.strip() else 0
        return v

    @field_validator("DEFAULT_FAST_HOURS", "TICK_INTERVAL_SECONDS")
    @classmethod
    def must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def known_level(cls, v: str) -> str:
        level = v.strip().upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {v!r}")
        return level


def _load_settings() -> Settings:
    """Load settings from environment, validating required keys."""
    token = os.getenv("TELEGRAM_BOT_TOKEN", "")

    if not token or token.startswith("your-"):
        print("ERROR: TELEGRAM_BOT_TOKEN is missing or not set in .env", file=sys.stderr)
        sys.exit(1)

    return Settings(
        TELEGRAM_BOT_TOKEN=token,
        OWNER_USER_ID=os.getenv("OWNER_USER_ID", ""),
        DATABASE_PATH=os.getenv("DATABASE_PATH", "data/phoenix.db"),
        DEFAULT_FAST_HOURS=os.getenv("DEFAULT_FAST_HOURS", "16"),
        TICK_INTERVAL_SECONDS=os.getenv("TICK_INTERVAL_SECONDS", "1"),
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
    )


# Singleton, imported by all other modules as:
#   from src.config import settings
settings = _load_settings()
