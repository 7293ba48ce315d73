"""Central configuration loaded from environment variables and YAML files."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
CONFIG_DIR = PROJECT_ROOT / "config"
SLOTS_FILE = CONFIG_DIR / "slots.yaml"

DEFAULT_SLOT = "primary"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TWOFA_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    # Time authority (HEAD request, Date header)
    time_authority_url: str = "https://2fa.run/"
    resync_interval_s: float = 0.0

    # TOTP
    period_s: int = 30
    digits: int = 6
    max_auto_refresh: int = 3

    # Slots, in display order
    slots: list[str] = Field(default_factory=lambda: [DEFAULT_SLOT])

    # Storage
    store_path: Path = Field(default_factory=lambda: Path.home() / ".twofa" / "store.json")

    # Logging
    log_level: str = "INFO"

    @field_validator("period_s", "digits")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    @field_validator("max_auto_refresh")
    @classmethod
    def _non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_auto_refresh must be >= 0")
        return v

    @field_validator("slots")
    @classmethod
    def _unique_slots(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("at least one slot is required")
        if len(set(v)) != len(v):
            raise ValueError("slot names must be unique")
        return v

    @field_validator("time_authority_url")
    @classmethod
    def _http_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("time_authority_url must be an http(s) URL")
        return v


def load_slots_config(path: Path | None = None) -> list[str]:
    """Load slot names from a YAML file.

    The file holds either a plain list of names or a mapping with a
    ``slots`` key. Returns an empty list when the file does not exist.
    """
    path = path or SLOTS_FILE
    if not path.exists():
        return []
    with open(path) as f:
        data: Any = yaml.safe_load(f)
    if data is None:
        return []
    if isinstance(data, dict):
        data = data.get("slots", [])
    if not isinstance(data, list):
        raise ValueError(f"Slots config must be a list: {path}")
    return [str(name) for name in data]


settings = Settings()
