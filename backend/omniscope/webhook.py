from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Union

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from .classifier import RECORDING, classify_payload
from .config import Settings, get_settings
from .constants import UNTITLED_MEETING
from .database import get_db
from .deps import get_analyzer
from .models import FathomPayload, IntelligenceData
from .services.analyzer import MeetingAnalyzer
from .services.fathom import process_fathom_payload
from .services.ingestion import process_intelligence_data

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/webhook", tags=["webhook"])

UNRECOGNIZED_PAYLOAD = "Unrecognized webhook payload format"
INTERNAL_ERROR = "Internal error processing webhook"


async def verify_webhook_secret(
    x_webhook_secret: str | None = Header(None),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Verify webhook secret header.

    For local dev: allows requests if WEBHOOK_SECRET is not configured.
    For production: requires a matching X-Webhook-Secret header.
    """
    if not settings.webhook_secret:
        logger.debug("WEBHOOK_SECRET not set - webhook endpoints are open")
        return

    if not x_webhook_secret or x_webhook_secret != settings.webhook_secret:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook secret",
        )


def _payload_title(payload: Union[FathomPayload, IntelligenceData]) -> str:
    if isinstance(payload, FathomPayload):
        return payload.display_title or UNTITLED_MEETING
    return payload.meeting_title or payload.source_id


async def _handle_webhook(
    request: Request,
    default_source: str,
    db: AsyncSession,
    analyzer: MeetingAnalyzer,
) -> JSONResponse:
    try:
        body = await request.json()
    except ValueError as e:
        logger.warning(f"Webhook body is not valid JSON: {e}")
        body = None

    logger.info(f"Webhook received ({default_source}): {str(body)[:500]}")

    classified = classify_payload(body, default_source_type=default_source)
    if classified is None:
        logger.warning(f"Rejected unrecognized {default_source} webhook payload")
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"success": False, "error": UNRECOGNIZED_PAYLOAD},
        )

    kind, payload = classified
    title = _payload_title(payload)
    try:
        if kind == RECORDING:
            source = "fathom"
            result = await process_fathom_payload(db, payload, analyzer)
        else:
            source = payload.source_type
            result = await process_intelligence_data(db, payload)
    except Exception as e:
        logger.error(f"Error processing {default_source} webhook \"{title}\": {e}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": INTERNAL_ERROR},
        )

    content: dict[str, Any] = {"success": result.success, "meetingId": result.meeting_id, "source": source}
    if not result.success:
        content["reason"] = result.reason
    return JSONResponse(status_code=status.HTTP_200_OK, content=content)


@router.post("/ingest")
async def webhook_ingest(
    request: Request,
    _: None = Depends(verify_webhook_secret),
    db: AsyncSession = Depends(get_db),
    analyzer: MeetingAnalyzer = Depends(get_analyzer),
) -> JSONResponse:
    """
    Universal ingestion webhook.

    Accepts either a raw recording payload (runs extraction and LLM analysis)
    or canonical intelligence data (ingested directly).
    """
    return await _handle_webhook(request, "webhook", db, analyzer)


@router.post("/fathom")
async def webhook_fathom(
    request: Request,
    _: None = Depends(verify_webhook_secret),
    db: AsyncSession = Depends(get_db),
    analyzer: MeetingAnalyzer = Depends(get_analyzer),
) -> JSONResponse:
    """Webhook endpoint registered with Fathom for new recordings."""
    return await _handle_webhook(request, "fathom", db, analyzer)


@router.post("/plaud")
async def webhook_plaud(
    request: Request,
    _: None = Depends(verify_webhook_secret),
    db: AsyncSession = Depends(get_db),
    analyzer: MeetingAnalyzer = Depends(get_analyzer),
) -> JSONResponse:
    """Webhook endpoint for Plaud recordings relayed through Zapier/n8n."""
    return await _handle_webhook(request, "plaud", db, analyzer)


@router.get("/health")
async def webhook_health() -> dict[str, Any]:
    """Health check for webhook senders. No auth."""
    return {
        "status": "ok",
        "service": "omniscope-intelligence",
        "webhooks": {
            "plaud": "/api/webhook/plaud",
            "fathom": "/api/webhook/fathom",
            "universal": "/api/webhook/ingest",
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
