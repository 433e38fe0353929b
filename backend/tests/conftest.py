"""Shared test fixtures for the intelligence backend."""

from __future__ import annotations

import asyncio
import copy
from datetime import datetime, timezone
from typing import Any, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from omniscope.config import Settings, get_settings
from omniscope.database import Base, build_engine, get_db
from omniscope.deps import get_analyzer
from omniscope.main import app
from omniscope.services.analyzer import MeetingAnalyzer
from omniscope.services.providers import ExtractionResult, StructuredExtractor

FIXED_NOW = datetime(2026, 3, 1, 22, 30, tzinfo=timezone.utc)


class FakeExtractor(StructuredExtractor):
    """Deterministic stand-in for an LLM provider."""

    provider = "fake"
    model_id = "fake-model"

    def __init__(
        self,
        data: Optional[dict[str, Any]] = None,
        error: Optional[str] = None,
        exc: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.data = data
        self.error = error
        self.exc = exc
        self.delay = delay
        self.calls: list[dict[str, Any]] = []

    async def extract(self, system_prompt, user_prompt, schema_name, schema) -> ExtractionResult:
        self.calls.append(
            {
                "system_prompt": system_prompt,
                "user_prompt": user_prompt,
                "schema_name": schema_name,
                "schema": schema,
            }
        )
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc:
            raise self.exc
        if self.error:
            return ExtractionResult.failure(self.error, provider=self.provider)
        return ExtractionResult(data=copy.deepcopy(self.data))


@pytest.fixture
def fixed_now() -> datetime:
    return FIXED_NOW


@pytest.fixture
def llm_analysis() -> dict[str, Any]:
    """A schema-valid LLM reply; the compound vendor item is split in two."""
    return {
        "executiveSummary": "Hassan and Jake agreed to set up a shared channel and exchange the pitch deck.",
        "strategicHighlights": ["Joint go-to-market in the GCC"],
        "opportunities": ["Stablecoin liquidity partnership"],
        "risks": ["KYC requirements unclear"],
        "keyQuotes": ["\"We can move quickly on this.\""],
        "sectors": ["Stablecoin Liquidity"],
        "jurisdictions": ["UAE (Dubai/ADGM)"],
        "meetingType": "Partnership",
        "actionItems": [
            {
                "title": "Create group chat with Hassan and Jake",
                "description": "Set up a shared chat so both sides can coordinate next steps.",
                "assignedTo": "Junaid Qureshi",
                "priority": "high",
                "dueDate": "2026-03-05",
            },
            {
                "title": "Request pitch deck and visuals from Hassan " + "with full appendix " * 5,
                "description": "Prompt Hassan for the deck plus supporting visuals.",
                "assignedTo": "hassan",
                "priority": "urgent",
                "dueDate": None,
            },
        ],
    }


@pytest.fixture
def make_analyzer(fixed_now):
    """Build an analyzer around a FakeExtractor with a frozen clock."""

    def _make(
        data: Optional[dict[str, Any]] = None,
        error: Optional[str] = None,
        exc: Optional[Exception] = None,
        delay: float = 0.0,
        timeout: float = 5.0,
    ) -> MeetingAnalyzer:
        extractor = FakeExtractor(data=data, error=error, exc=exc, delay=delay)
        return MeetingAnalyzer(extractor, timeout=timeout, clock=lambda: fixed_now)

    return _make


@pytest.fixture
def fathom_payload() -> dict[str, Any]:
    """A representative Fathom webhook delivery."""
    return {
        "title": "Hassan x Jake",
        "url": "https://fathom.video/calls/4242",
        "share_url": "https://fathom.video/share/xyz123",
        "created_at": "2026-02-27T17:01:30Z",
        "recording_id": 4242,
        "recording_start_time": "2026-02-27T17:00:00Z",
        "recording_end_time": "2026-02-27T17:45:00Z",
        "recorded_by": {
            "name": "Junaid Qureshi",
            "email": "junaid@omniscopex.ae",
            "email_domain": "omniscopex.ae",
        },
        "calendar_invitees": [
            {
                "name": "Junaid Qureshi",
                "email": "junaid@omniscopex.ae",
                "is_external": False,
                "email_domain": "omniscopex.ae",
                "matched_speaker_display_name": "Junaid Qureshi",
            },
            {
                "name": "haskari189@gmail.com",
                "email": "haskari189@gmail.com",
                "is_external": True,
                "email_domain": "gmail.com",
            },
            {
                "name": "Jake Morrison",
                "email": "jake@acme-capital.io",
                "is_external": True,
                "email_domain": "acme-capital.io",
            },
        ],
        "transcript": [
            {"speaker": {"display_name": "Junaid Qureshi"}, "text": "Thanks for joining.", "timestamp": "00:00:01"},
            {"speaker": {"display_name": "Jake Morrison"}, "text": "Happy to be here.", "timestamp": "00:00:05"},
        ],
        "default_summary": {
            "template_name": "general",
            "markdown_formatted": "## Summary\nDiscussed a stablecoin liquidity partnership.",
        },
        "action_items": [
            {
                "description": "Create group chat w/ Hassan & Jake; prompt Hassan for deck + visuals",
                "user_generated": False,
                "completed": False,
                "assignee": {"name": "Junaid Qureshi", "email": "junaid@omniscopex.ae"},
            },
        ],
    }


@pytest.fixture
def canonical_payload() -> dict[str, Any]:
    """Canonical intelligence data as sent by the Plaud/Zapier relay."""
    return {
        "sourceId": "plaud-rec-001",
        "sourceType": "plaud",
        "meetingTitle": "Acme Capital intro",
        "meetingDate": "2026-02-20T09:30:00Z",
        "primaryLead": "Junaid Qureshi",
        "participants": ["Junaid Qureshi", "Sara Khan", "Sara Khan", ""],
        "organizations": ["Acme Capital"],
        "jurisdictions": ["GCC"],
        "sectors": ["Real Estate Capital"],
        "executiveSummary": "Introductory call about a real estate debt facility.",
        "strategicHighlights": ["USD 50m facility under discussion"],
        "opportunities": None,
        "risks": [],
        "keyQuotes": [],
        "actionItems": [
            "Send NDA to Acme",
            {
                "title": "Prepare term sheet",
                "description": "Draft indicative terms for the facility.",
                "assignedTo": "sara khan",
                "priority": "high",
                "dueDate": "2026-02-25",
            },
        ],
        "intelligenceData": {"plaudDeviceId": "P-17"},
    }


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(test_engine):
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def test_session(session_maker):
    async with session_maker() as session:
        yield session


@pytest.fixture
def settings() -> Settings:
    return Settings(database_url=None, webhook_secret="", fathom_api_key=None)


@pytest.fixture
def analyzer(make_analyzer, llm_analysis) -> MeetingAnalyzer:
    return make_analyzer(data=llm_analysis)


@pytest_asyncio.fixture
async def client(session_maker, settings, analyzer):
    """HTTP client against the app with database, settings and LLM overridden."""

    async def _get_db():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_analyzer] = lambda: analyzer

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
