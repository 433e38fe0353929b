from __future__ import annotations

import re
import time
from datetime import datetime, timezone
from typing import Iterable, Optional, Sequence

from .constants import (
    COMMON_EMAIL_DOMAINS,
    MAX_TRANSCRIPT_CHARS,
    TRUNCATION_MARKER,
    UNKNOWN_LEAD,
    UNTITLED_MEETING,
)
from .models import FathomPayload, IntelligenceData, MeetingAnalysis, TranscriptEntry

# Separators between names in titles like "Hassan x Jake" or "Acme | OmniScope"
_TITLE_SEPARATORS = re.compile(r"\s*(?:x|X|&|,|\||with|and|vs)\s*")
_DIGITS = re.compile(r"[0-9]")
_EMAIL_NOISE = re.compile(r"[0-9._\-]+")
_ORG_TLD = re.compile(r"\.(?:com|io|ae|co|org|net|ai)$")
_ORG_WORD_SEPARATORS = re.compile(r"[.\-_]+")


def _ordered_unique(names: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(name for name in names if name))


def build_transcript_text(entries: Sequence[TranscriptEntry]) -> str:
    """
    Flatten Fathom's speaker turns into plain text.

    Each entry becomes ``[timestamp] Speaker: text``; vendor order is kept.
    """
    return "\n".join(
        f"[{entry.timestamp}] {entry.speaker.display_name}: {entry.text}" for entry in entries
    )


def truncate_transcript(text: str) -> str:
    """Cut a transcript to the analysis budget, marking the cut."""
    if len(text) > MAX_TRANSCRIPT_CHARS:
        return text[:MAX_TRANSCRIPT_CHARS] + TRUNCATION_MARKER
    return text


def resolve_name_from_email(email: str, meeting_title: Optional[str] = None) -> str:
    """
    Best-effort human name for an email-only invitee.

    Title fragments are tried first, e.g. "Hassan x Jake" + "haskari189@gmail.com"
    gives "Hassan" because "has" prefixes both. Otherwise the local part is
    humanized ("jane.doe42" -> "Jane Doe").
    """
    local_part = email.split("@")[0] or email
    local_lower = _DIGITS.sub("", local_part.lower())

    if meeting_title:
        fragments = [part.strip() for part in _TITLE_SEPARATORS.split(meeting_title)]
        for fragment in filter(None, fragments):
            name_lower = fragment.lower()
            if name_lower.startswith(local_lower[:3]) or local_lower.startswith(name_lower[:3]):
                return fragment

    cleaned = " ".join(word.capitalize() for word in _EMAIL_NOISE.sub(" ", local_part).split())
    return cleaned or local_part


def extract_participants(payload: FathomPayload) -> list[str]:
    """Distinct participant names: invitees first, then transcript speakers, then the recorder."""
    names: list[str] = []
    title = payload.display_title

    for invitee in payload.calendar_invitees:
        if invitee.matched_speaker_display_name:
            # Voice-matched to a transcript speaker
            names.append(invitee.matched_speaker_display_name)
        elif invitee.name and invitee.name != invitee.email:
            names.append(invitee.name)
        elif invitee.email:
            names.append(resolve_name_from_email(invitee.email, title))

    for entry in payload.transcript or []:
        names.append(entry.speaker.display_name)

    if payload.recorded_by:
        names.append(payload.recorded_by.name)

    return _ordered_unique(names)


def organization_from_domain(domain: str) -> Optional[str]:
    """'acme-capital.io' -> 'Acme Capital'; consumer mail domains give None."""
    domain = domain.strip().lower()
    if not domain or domain in COMMON_EMAIL_DOMAINS:
        return None
    stem = _ORG_TLD.sub("", domain)
    words = [word.capitalize() for word in _ORG_WORD_SEPARATORS.split(stem) if word]
    return " ".join(words) or None


def extract_organizations(payload: FathomPayload) -> list[str]:
    """Organizations inferred from external invitees' email domains."""
    orgs = (
        organization_from_domain(invitee.email_domain)
        for invitee in payload.calendar_invitees
        if invitee.is_external and invitee.email_domain
    )
    return _ordered_unique(org for org in orgs if org)


def determine_primary_lead(payload: FathomPayload) -> str:
    """The internal person who owns the recording."""
    if payload.recorded_by and payload.recorded_by.name:
        return payload.recorded_by.name

    internal = next((i for i in payload.calendar_invitees if not i.is_external), None)
    if internal and internal.name:
        return internal.name

    return UNKNOWN_LEAD


def build_source_id(payload: FathomPayload) -> str:
    if payload.recording_id:
        return f"fathom-{payload.recording_id}"
    if payload.url:
        return f"fathom-{payload.url}"
    return f"fathom-{int(time.time() * 1000)}"


def determine_meeting_date(payload: FathomPayload, now: Optional[datetime] = None) -> str:
    return (
        payload.recording_start_time
        or payload.scheduled_start_time
        or payload.created_at
        or (now or datetime.now(timezone.utc)).isoformat()
    )


def build_intelligence_data(payload: FathomPayload, analysis: MeetingAnalysis) -> IntelligenceData:
    """
    Combine a Fathom recording with its analysis into the canonical record.

    Args:
        payload: Parsed vendor payload
        analysis: Result of the LLM (or fallback) analysis

    Returns:
        IntelligenceData ready for the ingestion pipeline
    """
    title = payload.display_title or UNTITLED_MEETING
    transcript = build_transcript_text(payload.transcript) if payload.transcript else None

    return IntelligenceData(
        source_id=build_source_id(payload),
        source_type="fathom",
        meeting_title=payload.display_title,
        meeting_date=determine_meeting_date(payload),
        primary_lead=determine_primary_lead(payload),
        participants=extract_participants(payload),
        organizations=extract_organizations(payload),
        jurisdictions=analysis.jurisdictions,
        jurisdiction_tags=analysis.jurisdictions,
        sectors=analysis.sectors,
        tags=[],
        executive_summary=analysis.executive_summary,
        strategic_highlights=analysis.strategic_highlights,
        opportunities=analysis.opportunities,
        risks=analysis.risks,
        key_quotes=analysis.key_quotes,
        action_items=list(analysis.action_items),
        full_transcript=transcript,
        intelligence_data={
            "fathomUrl": payload.url,
            "fathomShareUrl": payload.share_url,
            "fathomTitle": title,
            "fathomSummary": payload.summary_text or None,
            "recordingStartTime": payload.recording_start_time,
            "recordingEndTime": payload.recording_end_time,
            "meetingType": analysis.meeting_type,
        },
    )
