"""Configuration management for the financing simulator."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_DATABASE_URL = "sqlite:///financing_sim.sqlite3"
DEFAULT_STORAGE_KEY = "simulations"


@dataclass
class Settings:
    """Runtime settings shared by the CLI and the web API."""

    database_url: str = DEFAULT_DATABASE_URL
    storage_key: str = DEFAULT_STORAGE_KEY
    log_level: str = "INFO"
    log_format: str = "standard"
    secret_key: str = "dev-secret-key"
    preview_rows: int = 120
    debug: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        return cls(
            database_url=os.getenv("FINANCING_SIM_DATABASE_URL", DEFAULT_DATABASE_URL),
            storage_key=os.getenv("FINANCING_SIM_STORAGE_KEY", DEFAULT_STORAGE_KEY),
            log_level=os.getenv("FINANCING_SIM_LOG_LEVEL", "INFO"),
            log_format=os.getenv("FINANCING_SIM_LOG_FORMAT", "standard"),
            secret_key=os.getenv("FLASK_SECRET_KEY", "dev-secret-key"),
            preview_rows=int(os.getenv("FINANCING_SIM_PREVIEW_ROWS", "120")),
            debug=os.getenv("FLASK_DEBUG", "0").lower() in ("1", "true", "yes"),
        )
