"""Pydantic models for vendor payloads, canonical intelligence data and pipeline results."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .constants import (
    DEFAULT_PRIORITY,
    FALLBACK_MEETING_TYPE,
    MAX_TASK_TITLE_CHARS,
    MEETING_TYPES,
    PRIORITIES,
    UNASSIGNED,
    UNKNOWN_LEAD,
)


def parse_iso_datetime(value: str) -> datetime:
    """Parse an ISO-8601 date or datetime, accepting a trailing 'Z'."""
    return datetime.fromisoformat(value.strip().replace("Z", "+00:00"))


def _clean_strings(value: Any) -> list[str]:
    """Coerce a loosely-typed list field into stripped, non-empty strings."""
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, (list, tuple)):
        return []
    return [item.strip() for item in value if isinstance(item, str) and item.strip()]


def _distinct_strings(value: Any) -> list[str]:
    return list(dict.fromkeys(_clean_strings(value)))


# ---------------------------------------------------------------------------
# Fathom (vendor) payload
# ---------------------------------------------------------------------------


class _VendorModel(BaseModel):
    """Base for vendor shapes: unknown keys are ignored and explicit nulls fall back to defaults."""

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class FathomSpeaker(_VendorModel):
    display_name: str = ""
    matched_calendar_invitee_email: Optional[str] = None


class TranscriptEntry(_VendorModel):
    speaker: FathomSpeaker = Field(default_factory=FathomSpeaker)
    text: str = ""
    timestamp: str = ""

    @field_validator("timestamp", mode="before")
    @classmethod
    def _timestamp_as_text(cls, value: Any) -> str:
        return str(value)


class FathomAssignee(_VendorModel):
    name: str = ""
    email: Optional[str] = None
    team: Optional[str] = None


class FathomActionItem(_VendorModel):
    description: str = ""
    user_generated: bool = False
    completed: bool = False
    recording_timestamp: Optional[str] = None
    recording_playback_url: Optional[str] = None
    assignee: Optional[FathomAssignee] = None


class CalendarInvitee(_VendorModel):
    name: str = ""
    email: str = ""
    is_external: bool = False
    email_domain: str = ""
    matched_speaker_display_name: Optional[str] = None


class RecordedBy(_VendorModel):
    name: str = ""
    email: str = ""
    email_domain: Optional[str] = None
    team: Optional[str] = None


class DefaultSummary(_VendorModel):
    template_name: str = ""
    markdown_formatted: str = ""


class FathomPayload(_VendorModel):
    """A raw Fathom recording as delivered by webhook or the meetings API. Every field is optional."""

    title: Optional[str] = None
    meeting_title: Optional[str] = None
    url: Optional[str] = None
    share_url: Optional[str] = None
    created_at: Optional[str] = None
    scheduled_start_time: Optional[str] = None
    scheduled_end_time: Optional[str] = None
    recording_start_time: Optional[str] = None
    recording_end_time: Optional[str] = None
    recording_id: Optional[Union[int, str]] = None
    transcript: Optional[list[TranscriptEntry]] = None
    default_summary: Optional[DefaultSummary] = None
    action_items: Optional[list[FathomActionItem]] = None
    calendar_invitees: list[CalendarInvitee] = Field(default_factory=list)
    recorded_by: Optional[RecordedBy] = None

    @field_validator("default_summary", mode="before")
    @classmethod
    def _summary_from_text(cls, value: Any) -> Any:
        # Some deliveries carry the summary as plain markdown
        if isinstance(value, str):
            return {"markdown_formatted": value}
        return value

    @property
    def display_title(self) -> Optional[str]:
        return self.title or self.meeting_title or None

    @property
    def summary_text(self) -> str:
        return self.default_summary.markdown_formatted if self.default_summary else ""


# ---------------------------------------------------------------------------
# Analysis and canonical intelligence data
# ---------------------------------------------------------------------------


class AnalyzedActionItem(BaseModel):
    """A single atomic task. Title and priority are normalized on construction."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str
    description: str = ""
    assigned_to: str = UNASSIGNED
    priority: str = DEFAULT_PRIORITY
    due_date: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _title_from_description(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("title") and data.get("description"):
            return {**data, "title": data["description"]}
        return data

    @field_validator("title", mode="after")
    @classmethod
    def _truncate_title(cls, value: str) -> str:
        return value.strip()[:MAX_TASK_TITLE_CHARS]

    @field_validator("description", mode="before")
    @classmethod
    def _description_text(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @field_validator("assigned_to", mode="before")
    @classmethod
    def _assignee_or_unassigned(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return UNASSIGNED

    @field_validator("priority", mode="before")
    @classmethod
    def _coerce_priority(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip().lower() in PRIORITIES:
            return value.strip().lower()
        return DEFAULT_PRIORITY

    @field_validator("due_date", mode="before")
    @classmethod
    def _blank_due_date(cls, value: Any) -> Optional[str]:
        return value if isinstance(value, str) and value.strip() else None


class MeetingAnalysis(BaseModel):
    """Structured LLM output. Every field is required; a missing key is a failed extraction."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    executive_summary: str
    strategic_highlights: list[str]
    opportunities: list[str]
    risks: list[str]
    key_quotes: list[str]
    sectors: list[str]
    jurisdictions: list[str]
    meeting_type: str
    action_items: list[AnalyzedActionItem]

    @field_validator("meeting_type", mode="before")
    @classmethod
    def _known_meeting_type(cls, value: Any) -> str:
        if isinstance(value, str):
            for meeting_type in MEETING_TYPES:
                if meeting_type.lower() == value.strip().lower():
                    return meeting_type
        return FALLBACK_MEETING_TYPE


class IntelligenceData(BaseModel):
    """
    Canonical, vendor-agnostic meeting record consumed by the ingestion pipeline.

    Required: source_id, meeting_date (ISO-8601) and executive_summary. Optional
    list fields tolerate nulls and stray types and come out as distinct strings.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    source_id: str = Field(min_length=1)
    source_type: str = Field(default="webhook", min_length=1)
    meeting_title: Optional[str] = None
    meeting_date: str
    primary_lead: str = UNKNOWN_LEAD
    participants: list[str] = Field(default_factory=list)
    organizations: list[str] = Field(default_factory=list)
    jurisdictions: list[str] = Field(default_factory=list)
    jurisdiction_tags: list[str] = Field(default_factory=list)
    sectors: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    executive_summary: str = Field(min_length=1)
    strategic_highlights: list[str] = Field(default_factory=list)
    opportunities: list[str] = Field(default_factory=list)
    risks: list[str] = Field(default_factory=list)
    key_quotes: list[str] = Field(default_factory=list)
    action_items: list[Union[str, AnalyzedActionItem]] = Field(default_factory=list)
    full_transcript: Optional[str] = None
    intelligence_data: dict[str, Any] = Field(default_factory=dict)

    @field_validator("source_id", "source_type", "executive_summary", mode="before")
    @classmethod
    def _strip_required(cls, value: Any) -> Any:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            value = str(value)
        return value.strip() if isinstance(value, str) else value

    @field_validator("meeting_date")
    @classmethod
    def _iso_date(cls, value: str) -> str:
        try:
            parse_iso_datetime(value)
        except ValueError:
            raise ValueError(f"meetingDate is not an ISO-8601 date: {value!r}")
        return value.strip()

    @field_validator("primary_lead", mode="before")
    @classmethod
    def _lead_or_unknown(cls, value: Any) -> str:
        if isinstance(value, str) and value.strip():
            return value.strip()
        return UNKNOWN_LEAD

    @field_validator(
        "participants",
        "organizations",
        "jurisdictions",
        "jurisdiction_tags",
        "sectors",
        mode="before",
    )
    @classmethod
    def _name_lists(cls, value: Any) -> list[str]:
        return _distinct_strings(value)

    @field_validator(
        "tags", "strategic_highlights", "opportunities", "risks", "key_quotes", mode="before"
    )
    @classmethod
    def _string_lists(cls, value: Any) -> list[str]:
        return _clean_strings(value)

    @field_validator("action_items", mode="before")
    @classmethod
    def _usable_action_items(cls, value: Any) -> list[Any]:
        if not isinstance(value, list):
            return []
        items: list[Any] = []
        for item in value:
            if isinstance(item, str) and item.strip():
                items.append(item.strip())
            elif isinstance(item, AnalyzedActionItem):
                items.append(item)
            elif isinstance(item, dict) and (item.get("title") or item.get("description")):
                items.append(item)
        return items

    @field_validator("intelligence_data", mode="before")
    @classmethod
    def _metadata_bag(cls, value: Any) -> dict[str, Any]:
        return value if isinstance(value, dict) else {}

    @property
    def meeting_datetime(self) -> datetime:
        return parse_iso_datetime(self.meeting_date)


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------


class IngestionResult(BaseModel):
    success: bool
    meeting_id: Optional[int] = None
    reason: Optional[str] = None


class ImportResult(BaseModel):
    imported: int = 0
    skipped: int = 0
    errors: int = 0
    next_cursor: Optional[str] = None


class FathomMeetingPage(BaseModel):
    """One page of the Fathom meetings API. Items stay raw so each is parsed in isolation."""

    items: list[dict[str, Any]] = Field(default_factory=list)
    next_cursor: Optional[str] = None


class WebhookRegistration(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    url: str
    webhook_secret: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> str:
        return str(value)
