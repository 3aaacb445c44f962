"""Configuration settings for navsync."""

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

from navsync.types import LINKS_KEY, REMOTE_SYNC_FLAG_KEY, SETTINGS_KEY


def get_navsync_home() -> Path:
    """Directory holding the local store and credentials.

    ``NAVSYNC_HOME`` overrides the default ``~/.navsync``. The directory is
    created if needed.
    """
    env_home = os.environ.get("NAVSYNC_HOME")
    home = Path(env_home).expanduser() if env_home else Path.home() / ".navsync"
    home.mkdir(parents=True, exist_ok=True)
    return home


class NavSyncConfig(BaseSettings):
    """Settings loaded from the environment (``NAVSYNC_*``) and ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="NAVSYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    home: Optional[Path] = None  # resolved by get_navsync_home() when unset

    # Remote backend
    backend_url: Optional[str] = None
    auth_token: Optional[str] = None
    request_timeout: float = 10.0

    # Local store
    storage_backend: Literal["sqlite", "json", "memory"] = "sqlite"
    settings_key: str = SETTINGS_KEY
    links_key: str = LINKS_KEY
    remote_flag_key: str = REMOTE_SYNC_FLAG_KEY

    def resolve_home(self) -> Path:
        if self.home is None:
            return get_navsync_home()
        home = self.home.expanduser()
        home.mkdir(parents=True, exist_ok=True)
        return home


@lru_cache
def get_config() -> NavSyncConfig:
    """Get cached config instance."""
    return NavSyncConfig()
