"""
QuickNotes Backend: Application Configuration
=============================================

What:  Centralized configuration management using Pydantic Settings.
How:   Pydantic Settings reads from environment variables (or a .env file),
       validates types/ranges, and provides a singleton `settings` object.
Who:   Imported by main.py (logging, middleware, lifespan) and __main__.py.
When:  Loaded once at module import time; validated before the app starts.

Settings are plain configuration values. The database handle itself is not
global: main.py builds it from these values inside the application lifespan.
"""

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator

from quicknotes.database import JOURNAL_MODES, SYNCHRONOUS_LEVELS


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have defaults suitable for development. Attributes are
    grouped by concern.
    """

    # ── Database ──────────────────────────────────────────────────────────
    # Path to the SQLite store file shared by all worker processes.
    # ":memory:" gives a private in-memory store (single process only).
    database_path: str = Field(
        default="./notes.db",
        description="Path to the SQLite database file",
    )

    # Upper bound on how long a connection waits for a lock before the
    # operation fails with a busy storage error.
    db_busy_timeout_ms: int = Field(default=5000, ge=0, le=60_000)

    # Page cache size in KiB (applied as a negative PRAGMA cache_size).
    db_cache_size_kib: int = Field(default=100_000, ge=1_000, le=1_000_000)

    db_journal_mode: str = Field(default="WAL")
    db_synchronous: str = Field(default="NORMAL")

    # Echo SQL statements through the sqlalchemy.engine logger
    db_echo: bool = Field(default=False)

    @field_validator("db_journal_mode")
    @classmethod
    def validate_journal_mode(cls, v: str) -> str:
        """Ensures the journal mode is one SQLite understands."""
        upper = v.upper()
        if upper not in JOURNAL_MODES:
            raise ValueError(f"Invalid db_journal_mode '{v}'. Must be one of: {JOURNAL_MODES}")
        return upper

    @field_validator("db_synchronous")
    @classmethod
    def validate_synchronous(cls, v: str) -> str:
        """Ensures the synchronous level is one SQLite understands."""
        upper = v.upper()
        if upper not in SYNCHRONOUS_LEVELS:
            raise ValueError(f"Invalid db_synchronous '{v}'. Must be one of: {SYNCHRONOUS_LEVELS}")
        return upper

    # ── Server ────────────────────────────────────────────────────────────
    backend_host: str = Field(default="0.0.0.0")
    backend_port: int = Field(default=3000, ge=1024, le=65535)

    # Number of uvicorn worker processes sharing the database file
    workers: int = Field(default=1, ge=1, le=64)

    # Responses at or above this many bytes are gzip-compressed (>= 1: 204s stay empty)
    gzip_minimum_size: int = Field(default=1, ge=1, le=65_536)

    # ── Logging ───────────────────────────────────────────────────────────
    # Valid: DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensures log level is a valid Python logging level name."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {valid_levels}")
        return upper

    # ── Pydantic Settings Config ──────────────────────────────────────────
    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,  # DATABASE_PATH and database_path both work
    }


# Singleton instance, imported by the HTTP layer and the process entry point
settings = Settings()
