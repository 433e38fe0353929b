"""Fathom API client, recording processing and batch import."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import FATHOM_API_BASE, Settings
from ..constants import UNTITLED_MEETING
from ..database import get_meeting_by_source
from ..errors import ConfigurationError, FathomAPIError
from ..models import (
    FathomMeetingPage,
    FathomPayload,
    ImportResult,
    IngestionResult,
    WebhookRegistration,
)
from ..processor import build_intelligence_data, build_source_id
from .analyzer import MeetingAnalyzer
from .ingestion import DUPLICATE, process_intelligence_data

logger = logging.getLogger(__name__)


class FathomClient:
    """Thin async wrapper around the Fathom external API."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = FATHOM_API_BASE,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not api_key:
            raise ConfigurationError("FATHOM_API_KEY not configured")
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"X-Api-Key": api_key, "Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(
        cls, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> "FathomClient":
        return cls(
            api_key=settings.fathom_api_key,
            base_url=settings.fathom_api_base,
            timeout=settings.fathom_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "FathomClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.TimeoutException as e:
            raise FathomAPIError(504, f"timeout: {e}") from e
        except httpx.TransportError as e:
            raise FathomAPIError(502, str(e)) from e
        if response.is_error:
            raise FathomAPIError(response.status_code, response.text or response.reason_phrase)
        return response

    async def list_meetings(self, limit: int = 10, cursor: Optional[str] = None) -> FathomMeetingPage:
        """Fetch one page of meetings with transcript, summary and action items included."""
        params: dict[str, Any] = {
            "limit": limit,
            "include_transcript": "true",
            "include_summary": "true",
            "include_action_items": "true",
        }
        if cursor:
            params["cursor"] = cursor

        logger.info(f"Fetching {limit} meetings from Fathom API...")
        response = await self._request("GET", "/meetings", params=params)
        return FathomMeetingPage.model_validate(response.json())

    async def register_webhook(self, destination_url: str) -> WebhookRegistration:
        """Ask Fathom to deliver future recordings to ``destination_url``."""
        logger.info(f"Registering Fathom webhook to: {destination_url}")
        response = await self._request(
            "POST",
            "/webhooks",
            json={
                "url": destination_url,
                "triggers": ["my_recordings"],
                "include_transcript": True,
                "include_summary": True,
                "include_action_items": True,
            },
        )
        registration = WebhookRegistration.model_validate(response.json())
        logger.info(f"Fathom webhook registered successfully: {registration.id}")
        return registration

    async def list_webhooks(self) -> list[dict[str, Any]]:
        response = await self._request("GET", "/webhooks")
        data = response.json()
        # The API has answered both a bare list and {"items": [...]}
        if isinstance(data, dict):
            return list(data.get("items") or [])
        return list(data)

    async def delete_webhook(self, webhook_id: str) -> None:
        await self._request("DELETE", f"/webhooks/{webhook_id}")
        logger.info(f"Fathom webhook {webhook_id} deleted")


async def process_fathom_payload(
    session: AsyncSession,
    payload: FathomPayload,
    analyzer: MeetingAnalyzer,
    org_id: Optional[int] = None,
) -> IngestionResult:
    """
    Run a Fathom recording through extraction, analysis and ingestion.

    Analysis failures are absorbed by the analyzer's fallback; persistence
    errors propagate.
    """
    title = payload.display_title or UNTITLED_MEETING
    source_id = build_source_id(payload)
    logger.info(f"Processing Fathom meeting: \"{title}\" (sourceId: {source_id})")

    existing = await get_meeting_by_source(session, source_id, "fathom")
    if existing:
        logger.info(f"Meeting not ingested ({DUPLICATE}): \"{title}\" already stored as {existing.id}")
        return IngestionResult(success=False, meeting_id=existing.id, reason=DUPLICATE)

    analysis = await analyzer.analyze(payload)
    logger.info(
        f"Analysis complete for \"{title}\": {len(analysis.action_items)} action item(s), "
        f"summary: {analysis.executive_summary[:100]}"
    )

    data = build_intelligence_data(payload, analysis)
    result = await process_intelligence_data(session, data, org_id=org_id)

    if result.success:
        logger.info(f"Successfully ingested meeting {result.meeting_id}: \"{title}\"")
    else:
        logger.info(f"Meeting not ingested ({result.reason}): \"{title}\"")
    return result


async def import_fathom_meetings(
    session: AsyncSession,
    client: FathomClient,
    analyzer: MeetingAnalyzer,
    limit: int = 10,
    cursor: Optional[str] = None,
    org_id: Optional[int] = None,
    meeting_timeout: Optional[float] = None,
) -> ImportResult:
    """
    Import one page of Fathom meetings, one meeting at a time.

    A failing meeting (bad shape, timeout, persistence error) counts as one
    error and the loop moves on. Failing to fetch the page raises.
    """
    page = await client.list_meetings(limit=limit, cursor=cursor)
    result = ImportResult(next_cursor=page.next_cursor)

    for item in page.items:
        title = item.get("title") or item.get("meeting_title") or UNTITLED_MEETING
        try:
            payload = FathomPayload.model_validate(item)
            outcome = await asyncio.wait_for(
                process_fathom_payload(session, payload, analyzer, org_id=org_id),
                timeout=meeting_timeout,
            )
        except Exception as e:
            logger.error(f"Error importing Fathom meeting \"{title}\": {e}", exc_info=True)
            await session.rollback()
            result.errors += 1
            continue

        if outcome.success:
            result.imported += 1
        else:
            result.skipped += 1

    logger.info(
        f"Fathom import complete: {result.imported} imported, "
        f"{result.skipped} skipped, {result.errors} errors"
    )
    return result
