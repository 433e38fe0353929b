"""Classify inbound webhook bodies and parse them into typed payloads."""

from __future__ import annotations

import logging
from typing import Any, Optional, Union

from pydantic import ValidationError

from .models import FathomPayload, IntelligenceData

logger = logging.getLogger(__name__)

RECORDING = "recording"
CANONICAL = "canonical"

_CANONICAL_KEYS = (
    ("sourceId", "source_id"),
    ("meetingDate", "meeting_date"),
    ("executiveSummary", "executive_summary"),
)


def is_raw_recording_payload(data: Any) -> bool:
    """
    Duck-type check for a vendor recording payload.

    Needs a title (``title`` or ``meeting_title``) plus at least one of
    ``recorded_by``, ``calendar_invitees`` or ``share_url``.
    """
    if not isinstance(data, dict):
        return False
    has_title = bool(data.get("title") or data.get("meeting_title"))
    has_vendor_marker = bool(
        data.get("recorded_by") or data.get("calendar_invitees") or data.get("share_url")
    )
    return has_title and has_vendor_marker


def is_canonical_intelligence_payload(data: Any) -> bool:
    """True when the body carries the canonical sourceId/meetingDate/executiveSummary keys."""
    if not isinstance(data, dict):
        return False
    return all(any(key in data for key in keys) for keys in _CANONICAL_KEYS)


def parse_recording_payload(data: Any) -> Optional[FathomPayload]:
    """Parse a vendor recording payload, or return None if it does not even loosely match."""
    if not is_raw_recording_payload(data):
        return None
    try:
        return FathomPayload.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Recording payload failed schema validation: {e.error_count()} error(s): {e}")
        return None


def validate_intelligence_data(
    data: Any, default_source_type: Optional[str] = None
) -> Optional[IntelligenceData]:
    """
    Validate a canonical intelligence payload.

    Returns None when required fields (sourceId, meetingDate, executiveSummary)
    are missing or malformed.
    """
    if not is_canonical_intelligence_payload(data):
        return None
    if default_source_type and not (data.get("sourceType") or data.get("source_type")):
        data = {**data, "sourceType": default_source_type}
    try:
        return IntelligenceData.model_validate(data)
    except ValidationError as e:
        logger.warning(f"Invalid intelligence data: {e}")
        return None


def classify_payload(
    data: Any, default_source_type: Optional[str] = None
) -> Optional[tuple[str, Union[FathomPayload, IntelligenceData]]]:
    """Vendor shape first, canonical second; None when neither matches."""
    recording = parse_recording_payload(data)
    if recording is not None:
        return RECORDING, recording

    canonical = validate_intelligence_data(data, default_source_type)
    if canonical is not None:
        return CANONICAL, canonical

    return None
