"""Dependency injection for API routes."""

from __future__ import annotations

from typing import AsyncIterator

from fastapi import Depends

from .config import Settings, get_settings
from .services.analyzer import MeetingAnalyzer
from .services.fathom import FathomClient
from .services.providers import build_extractor


def get_analyzer(settings: Settings = Depends(get_settings)) -> MeetingAnalyzer:
    """A request-scoped analyzer backed by the configured LLM provider."""
    return MeetingAnalyzer(build_extractor(settings), timeout=settings.llm_timeout)


async def get_fathom_client(
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[FathomClient]:
    """Fathom API client; raises ConfigurationError when FATHOM_API_KEY is missing."""
    async with FathomClient.from_settings(settings) as client:
        yield client
