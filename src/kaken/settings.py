"""Configuration helpers for the KAKEN client."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from kaken.constants import (
    DEFAULT_LANGUAGE,
    DEFAULT_MAX_RETRIES,
    DEFAULT_TIMEOUT_SECONDS,
    PROJECTS_ENDPOINT,
    RESEARCHERS_ENDPOINT,
    RETRY_BASE_DELAY_SECONDS,
    RETRY_MAX_DELAY_SECONDS,
)

DEFAULT_CACHE_DIR = Path(tempfile.gettempdir()) / "kaken-api-cache"
_FALSE_VALUES = {"0", "false", "no", "off"}


class Settings(BaseModel):
    """Runtime configuration loaded from env vars with sensible defaults."""

    app_id: str | None = None
    cache_dir: Path = Field(default_factory=lambda: DEFAULT_CACHE_DIR)
    use_cache: bool = True
    timeout: float = DEFAULT_TIMEOUT_SECONDS
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    retry_base_delay: float = RETRY_BASE_DELAY_SECONDS
    retry_max_delay: float = RETRY_MAX_DELAY_SECONDS
    language: Literal["ja", "en"] = DEFAULT_LANGUAGE
    log_level: str = "INFO"
    projects_url: str = PROJECTS_ENDPOINT
    researchers_url: str = RESEARCHERS_ENDPOINT

    @classmethod
    def load(cls) -> "Settings":
        load_dotenv()
        return cls(
            app_id=os.environ.get("KAKEN_APP_ID") or None,
            cache_dir=Path(os.environ.get("KAKEN_CACHE_DIR", DEFAULT_CACHE_DIR)),
            use_cache=os.environ.get("KAKEN_USE_CACHE", "1").strip().lower() not in _FALSE_VALUES,
            timeout=float(os.environ.get("KAKEN_TIMEOUT", DEFAULT_TIMEOUT_SECONDS)),
            max_retries=int(os.environ.get("KAKEN_MAX_RETRIES", DEFAULT_MAX_RETRIES)),
            retry_base_delay=float(
                os.environ.get("KAKEN_RETRY_BASE_DELAY", RETRY_BASE_DELAY_SECONDS)
            ),
            retry_max_delay=float(
                os.environ.get("KAKEN_RETRY_MAX_DELAY", RETRY_MAX_DELAY_SECONDS)
            ),
            language=os.environ.get("KAKEN_LANGUAGE", DEFAULT_LANGUAGE),
            log_level=os.environ.get("KAKEN_LOG_LEVEL", "INFO"),
            projects_url=os.environ.get("KAKEN_PROJECTS_URL", PROJECTS_ENDPOINT),
            researchers_url=os.environ.get("KAKEN_RESEARCHERS_URL", RESEARCHERS_ENDPOINT),
        )


def get_settings() -> Settings:
    """Convenience accessor for lazy modules."""
    return Settings.load()
