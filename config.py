"""
config.py
Runtime configuration, read from environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


@dataclass
class BackendConfig:
    """Hosted backend (Supabase) connection settings."""

    url: str = ""
    anon_key: str = ""

    @property
    def is_configured(self) -> bool:
        return bool(self.url.strip() and self.anon_key.strip())


@dataclass
class AppConfig:
    """Main configuration for the console."""

    backend: BackendConfig
    log_level: str = "INFO"
    log_format: str = "standard"
    demo_mode: bool = False
    members_page_size: int = 10

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create config from environment variables."""
        backend = BackendConfig(
            url=os.getenv("SUPABASE_URL", ""),
            anon_key=os.getenv("SUPABASE_ANON_KEY", ""),
        )
        page_size = os.getenv("MEMBERS_PAGE_SIZE")

        return cls(
            backend=backend,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
            demo_mode=_env_flag("DEMO_MODE"),
            members_page_size=int(page_size) if page_size else 10,
        )
