# Settings — pydantic-settings config loaded from env, .env and ~/.ytup/config.json.
# Created: 2026-10-18

from __future__ import annotations

import json
import logging
import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

YOUTUBE_SCOPES = [
    "https://www.googleapis.com/auth/youtube",
    "https://www.googleapis.com/auth/youtube.upload",
]


def _default_config_dir() -> Path:
    override = os.environ.get("YTUP_CONFIG_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".ytup"


class Settings(BaseSettings):
    """ytup configuration.

    Precedence: explicit values in ``config.json`` > ``YTUP_*`` environment
    variables > ``.env`` > defaults. Command-line flags are applied on top by
    the entry point.
    """

    model_config = SettingsConfigDict(env_prefix="YTUP_", env_file=".env", extra="ignore")

    client_id: str = ""
    client_secret: str = ""

    config_dir: Path = Field(default_factory=_default_config_dir)
    token_file: Path | None = None

    redirect_uri: str = "http://localhost:8080/"
    auth_url: str = "https://accounts.google.com/o/oauth2/auth"
    token_url: str = "https://oauth2.googleapis.com/token"
    auth_timeout: float = 300.0
    open_browser: bool = True

    @classmethod
    def load(cls) -> Settings:
        """Load settings, merging ``config.json`` from the config dir if present."""
        path = _default_config_dir() / "config.json"
        if path.exists():
            try:
                data = json.loads(path.read_text(encoding="utf-8"))
                return cls(**data)
            except (json.JSONDecodeError, ValidationError, OSError, TypeError) as e:
                logger.warning("Ignoring unreadable config file %s: %s", path, e)
        return cls()


@lru_cache
def get_settings() -> Settings:
    return Settings.load()


def get_config_dir() -> Path:
    """Get/create the ytup config directory."""
    d = get_settings().config_dir.expanduser()
    d.mkdir(parents=True, exist_ok=True)
    return d


def get_token_path() -> Path:
    """Location of the cached OAuth token."""
    settings = get_settings()
    if settings.token_file is not None:
        return settings.token_file.expanduser()
    return get_config_dir() / "oauth_token.json"
