"""Runtime configuration for the intelligence backend."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from fastapi import Request

logger = logging.getLogger(__name__)

ENV_FILE = Path(__file__).parent.parent / ".env"

FATHOM_API_BASE = "https://api.fathom.ai/external/v1"


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}, using {default}")
        return default


@dataclass(frozen=True)
class Settings:
    """
    Explicit configuration passed to the analyzer, Fathom client and routes.

    Built once at startup with `Settings.from_env()`; tests construct it directly.
    """

    database_url: Optional[str] = None
    webhook_secret: str = ""
    fathom_api_key: Optional[str] = None
    fathom_api_base: str = FATHOM_API_BASE
    fathom_timeout: float = 15.0
    llm_provider: str = "openai"
    llm_model: Optional[str] = None
    llm_timeout: float = 60.0
    import_meeting_timeout: float = 180.0

    @classmethod
    def from_env(cls, env_file: Path | None = ENV_FILE) -> "Settings":
        """Load settings from the process environment (and `.env` if present)."""
        if env_file is not None:
            load_dotenv(env_file)

        database_url = os.getenv("DATABASE_URL")
        if not database_url:
            logger.warning(
                "DATABASE_URL not set. Database features will be unavailable."
            )

        return cls(
            database_url=database_url or None,
            webhook_secret=os.getenv("WEBHOOK_SECRET", ""),
            fathom_api_key=os.getenv("FATHOM_API_KEY") or None,
            fathom_api_base=os.getenv("FATHOM_API_BASE", FATHOM_API_BASE),
            fathom_timeout=_float_env("FATHOM_TIMEOUT", 15.0),
            llm_provider=os.getenv("LLM_PROVIDER", "openai").lower(),
            llm_model=os.getenv("LLM_MODEL") or None,
            llm_timeout=_float_env("LLM_TIMEOUT", 60.0),
            import_meeting_timeout=_float_env("IMPORT_MEETING_TIMEOUT", 180.0),
        )


def get_settings(request: Request) -> Settings:
    """Dependency returning the settings stored on the application at startup."""
    settings = getattr(request.app.state, "settings", None)
    if settings is None:
        settings = Settings.from_env()
        request.app.state.settings = settings
    return settings
