"""Admin API router for Fathom import and webhook registration."""

from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings, get_settings
from ..database import get_db
from ..deps import get_analyzer, get_fathom_client
from ..models import ImportResult, WebhookRegistration
from ..services.analyzer import MeetingAnalyzer
from ..services.fathom import FathomClient, import_fathom_meetings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/fathom", tags=["fathom"])


class ImportRequest(BaseModel):
    """Request body for a batch import."""

    limit: int = Field(10, ge=1, le=100)
    cursor: Optional[str] = None
    org_id: Optional[int] = None


class RegisterWebhookRequest(BaseModel):
    """Request body for registering the Fathom webhook."""

    destination_url: str


@router.post("/import")
async def import_meetings(
    request: ImportRequest,
    db: AsyncSession = Depends(get_db),
    client: FathomClient = Depends(get_fathom_client),
    analyzer: MeetingAnalyzer = Depends(get_analyzer),
    settings: Settings = Depends(get_settings),
) -> ImportResult:
    """
    Import up to ``limit`` meetings from Fathom.

    Returns counts plus ``next_cursor`` for continuing the import.
    """
    return await import_fathom_meetings(
        db,
        client,
        analyzer,
        limit=request.limit,
        cursor=request.cursor,
        org_id=request.org_id,
        meeting_timeout=settings.import_meeting_timeout,
    )


@router.post("/webhooks")
async def register_webhook(
    request: RegisterWebhookRequest,
    client: FathomClient = Depends(get_fathom_client),
) -> WebhookRegistration:
    """One-time setup: ask Fathom to deliver recordings to ``destination_url``."""
    return await client.register_webhook(request.destination_url)


@router.get("/webhooks")
async def list_webhooks(
    client: FathomClient = Depends(get_fathom_client),
) -> dict[str, Any]:
    webhooks = await client.list_webhooks()
    return {"webhooks": webhooks}


@router.delete("/webhooks/{webhook_id}")
async def delete_webhook(
    webhook_id: str,
    client: FathomClient = Depends(get_fathom_client),
) -> dict[str, str]:
    await client.delete_webhook(webhook_id)
    return {"status": "deleted", "id": webhook_id}
