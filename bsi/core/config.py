"""
Centralised settings for the BSI core, loaded from environment / .env file.

Uses pydantic-settings so every value can be overridden via env vars
or the .env file at the project root.
"""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings

_STORAGE_BACKENDS = {"memory", "file", "database"}


class Settings(BaseSettings):
    # ── Project ──────────────────────────────────────────────────────
    PROJECT_NAME: str = "FuturePath Backend Strategy Intelligence"
    VERSION: str = "1.0.8"

    # ── Snapshot ─────────────────────────────────────────────────────
    SCHEMA_VERSION: str = "1.0.8-PROD"
    STORAGE_KEY: str = "FUTUREPATH_DB"
    STORAGE_BACKEND: str = "file"  # memory | file | database
    SNAPSHOT_PATH: str = "./futurepath_db.json"
    DATABASE_URL: str = "sqlite+aiosqlite:///./futurepath.db"

    @field_validator("STORAGE_BACKEND")
    @classmethod
    def _validate_backend(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in _STORAGE_BACKENDS:
            raise ValueError(f"STORAGE_BACKEND must be one of: {_STORAGE_BACKENDS}")
        return v

    # ── Logging ──────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }


settings = Settings()
