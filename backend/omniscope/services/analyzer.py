"""LLM analysis of meeting recordings with a deterministic fallback."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from pydantic import ValidationError

from ..constants import (
    DEFAULT_DUE_DAYS,
    DEFAULT_PRIORITY,
    FALLBACK_MEETING_TYPE,
    FALLBACK_SECTORS,
    MEETING_INTELLIGENCE_SCHEMA,
    MEETING_INTELLIGENCE_SCHEMA_NAME,
    MAX_TASK_TITLE_CHARS,
    MEETING_TYPES,
    UNASSIGNED,
    UNTITLED_MEETING,
    USER_PROMPT,
    get_system_prompt,
)
from ..models import AnalyzedActionItem, FathomPayload, MeetingAnalysis
from ..processor import build_transcript_text, extract_participants, truncate_transcript
from .providers import StructuredExtractor

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def default_due_date(now: datetime) -> str:
    """Due date used when the meeting names no deadline: two days out, date only."""
    return (now.astimezone(timezone.utc) + timedelta(days=DEFAULT_DUE_DAYS)).date().isoformat()


def normalize_action_item(item: AnalyzedActionItem, due_date: str) -> AnalyzedActionItem:
    """Fill the default due date; title and priority are already normalized by the model."""
    if item.due_date:
        return item
    return item.model_copy(update={"due_date": due_date})


def _raw_action_items_text(payload: FathomPayload) -> str:
    lines = []
    for item in payload.action_items or []:
        text = item.description
        if item.assignee and item.assignee.name:
            text += f" (Fathom assignee: {item.assignee.name})"
        lines.append(text)
    return "\n- ".join(lines)


def build_user_prompt(payload: FathomPayload, due_date: str) -> str:
    transcript = build_transcript_text(payload.transcript) if payload.transcript else ""
    return USER_PROMPT.format(
        title=payload.display_title or UNTITLED_MEETING,
        participants=", ".join(extract_participants(payload)),
        summary=payload.summary_text,
        raw_action_items=_raw_action_items_text(payload) or "None recorded",
        transcript=truncate_transcript(transcript) or "No transcript available",
        meeting_types=", ".join(f'"{t}"' for t in MEETING_TYPES),
        max_title=MAX_TASK_TITLE_CHARS,
        default_due_date=due_date,
    )


def fallback_summary(payload: FathomPayload) -> str:
    title = payload.display_title or UNTITLED_MEETING
    return payload.summary_text or f'Meeting "{title}" with {", ".join(extract_participants(payload))}.'


def fallback_analysis(payload: FathomPayload, due_date: str) -> MeetingAnalysis:
    """
    Degraded analysis built only from the vendor payload.

    Used whenever the LLM is unavailable or misbehaves; always structurally complete.
    Vendor action items map 1:1 to tasks (no splitting).
    """
    action_items = [
        AnalyzedActionItem(
            title=item.description,
            description=item.description,
            assigned_to=item.assignee.name if item.assignee else UNASSIGNED,
            priority=DEFAULT_PRIORITY,
            due_date=due_date,
        )
        for item in payload.action_items or []
    ]
    return MeetingAnalysis(
        executive_summary=fallback_summary(payload),
        strategic_highlights=[],
        opportunities=[],
        risks=[],
        key_quotes=[],
        sectors=list(FALLBACK_SECTORS),
        jurisdictions=[],
        meeting_type=FALLBACK_MEETING_TYPE,
        action_items=action_items,
    )


class MeetingAnalyzer:
    """Runs the structured extraction for one recording and never raises on LLM failure."""

    def __init__(
        self,
        extractor: StructuredExtractor,
        timeout: Optional[float] = 60.0,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.extractor = extractor
        self.timeout = timeout
        self.clock = clock

    async def analyze(self, payload: FathomPayload) -> MeetingAnalysis:
        # Computed once so the prompt and the post-processing agree
        due_date = default_due_date(self.clock())
        title = payload.display_title or UNTITLED_MEETING

        try:
            result = await asyncio.wait_for(
                self.extractor.extract(
                    system_prompt=get_system_prompt(due_date),
                    user_prompt=build_user_prompt(payload, due_date),
                    schema_name=MEETING_INTELLIGENCE_SCHEMA_NAME,
                    schema=MEETING_INTELLIGENCE_SCHEMA,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"LLM analysis timed out after {self.timeout}s for \"{title}\", using fallback")
            return fallback_analysis(payload, due_date)
        except Exception as e:
            logger.error(f"LLM analysis raised for \"{title}\", using fallback: {e}", exc_info=True)
            return fallback_analysis(payload, due_date)

        if not result.ok:
            logger.warning(f"LLM analysis failed for \"{title}\", using fallback: {result.error}")
            return fallback_analysis(payload, due_date)

        try:
            analysis = MeetingAnalysis.model_validate(result.data)
        except ValidationError as e:
            logger.warning(f"LLM analysis for \"{title}\" did not match the schema, using fallback: {e}")
            return fallback_analysis(payload, due_date)

        updates = {
            "action_items": [normalize_action_item(item, due_date) for item in analysis.action_items],
        }
        if not analysis.executive_summary.strip():
            updates["executive_summary"] = fallback_summary(payload)
        return analysis.model_copy(update=updates)
