"""Persist canonical intelligence data as meetings, contacts, companies and tasks."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional, Sequence, Union

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..constants import UNASSIGNED
from ..database import (
    Company,
    Contact,
    Meeting,
    MeetingCompany,
    MeetingContact,
    Task,
    find_company_by_name,
    find_contact_by_name,
    get_meeting_by_id,
    get_meeting_by_source,
    name_key,
)
from ..errors import IngestionError
from ..models import AnalyzedActionItem, IngestionResult, IntelligenceData

logger = logging.getLogger(__name__)

DUPLICATE = "duplicate"
NOT_FOUND = "not_found"


def _naive_utc(value: datetime) -> datetime:
    """Store meeting times as naive UTC so comparisons work on every backend."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


async def _resolve_contact(
    session: AsyncSession, name: str, org_id: Optional[int]
) -> Contact:
    contact = await find_contact_by_name(session, name, org_id)
    if contact is not None:
        return contact

    contact = Contact(name=name, name_key=name_key(name), org_id=org_id, meeting_count=0)
    try:
        async with session.begin_nested():
            session.add(contact)
    except IntegrityError:
        # Created by a concurrent ingestion since the lookup
        existing = await find_contact_by_name(session, name, org_id)
        if existing is None:
            raise
        logger.info(f"Contact {name} created concurrently, using {existing.id}")
        return existing
    logger.info(f"Created contact {contact.id}: {name}")
    return contact


async def _resolve_company(
    session: AsyncSession, name: str, org_id: Optional[int]
) -> Company:
    company = await find_company_by_name(session, name, org_id)
    if company is not None:
        return company

    company = Company(name=name, name_key=name_key(name), org_id=org_id, meeting_count=0)
    try:
        async with session.begin_nested():
            session.add(company)
    except IntegrityError:
        existing = await find_company_by_name(session, name, org_id)
        if existing is None:
            raise
        logger.info(f"Company {name} created concurrently, using {existing.id}")
        return existing
    logger.info(f"Created company {company.id}: {name}")
    return company


def _touch(entity: Union[Contact, Company], meeting_date: datetime) -> None:
    entity.meeting_count = (entity.meeting_count or 0) + 1
    if entity.last_meeting_date is None or entity.last_meeting_date < meeting_date:
        entity.last_meeting_date = meeting_date


async def _link_contacts(
    session: AsyncSession, meeting_id: int, contacts: Sequence[Contact], meeting_date: datetime
) -> None:
    result = await session.execute(
        select(MeetingContact.contact_id).where(MeetingContact.meeting_id == meeting_id)
    )
    linked = set(result.scalars().all())
    for contact in contacts:
        if contact.id in linked:
            continue
        session.add(MeetingContact(meeting_id=meeting_id, contact_id=contact.id))
        linked.add(contact.id)
        _touch(contact, meeting_date)


async def _link_companies(
    session: AsyncSession, meeting_id: int, companies: Sequence[Company], meeting_date: datetime
) -> None:
    result = await session.execute(
        select(MeetingCompany.company_id).where(MeetingCompany.meeting_id == meeting_id)
    )
    linked = set(result.scalars().all())
    for company in companies:
        if company.id in linked:
            continue
        session.add(MeetingCompany(meeting_id=meeting_id, company_id=company.id))
        linked.add(company.id)
        _touch(company, meeting_date)


def _build_task(
    item: Union[str, AnalyzedActionItem],
    meeting_id: int,
    contacts_by_key: dict[str, Contact],
    source: str,
    org_id: Optional[int],
) -> Task:
    if isinstance(item, str):
        item = AnalyzedActionItem(title=item, description=item)

    assignee = item.assigned_to if item.assigned_to != UNASSIGNED else None
    contact = contacts_by_key.get(name_key(assignee)) if assignee else None

    return Task(
        meeting_id=meeting_id,
        org_id=org_id,
        title=item.title,
        description=item.description,
        assigned_to=assignee,
        assigned_contact_id=contact.id if contact else None,
        priority=item.priority,
        due_date=item.due_date,
        status="open",
        source=source,
    )


def _meeting_fields(data: IntelligenceData, meeting_date: datetime) -> dict:
    return {
        "title": data.meeting_title,
        "meeting_date": meeting_date,
        "primary_lead": data.primary_lead,
        "participants": data.participants,
        "organizations": data.organizations,
        "executive_summary": data.executive_summary,
        "strategic_highlights": data.strategic_highlights,
        "opportunities": data.opportunities,
        "risks": data.risks,
        "key_quotes": data.key_quotes,
        "sectors": data.sectors,
        "jurisdictions": list(dict.fromkeys(data.jurisdictions + data.jurisdiction_tags)),
        "tags": data.tags,
        "full_transcript": data.full_transcript,
        "intelligence_data": data.intelligence_data,
    }


async def process_intelligence_data(
    session: AsyncSession,
    data: IntelligenceData,
    existing_meeting_id: Optional[int] = None,
    org_id: Optional[int] = None,
) -> IngestionResult:
    """
    Ingest one canonical intelligence record.

    Args:
        session: Database session (committed on success, rolled back on failure)
        data: Validated intelligence data
        existing_meeting_id: Update this meeting in place instead of creating one
        org_id: Tenant scope for the meeting and for contact/company resolution

    Returns:
        IngestionResult; ``reason="duplicate"`` when the source was already ingested

    Raises:
        IngestionError: On an integrity violation other than a dedup-key collision
        Any other persistence error, unchanged
    """
    label = data.meeting_title or data.source_id
    meeting_date = _naive_utc(data.meeting_datetime)

    if existing_meeting_id is None:
        existing = await get_meeting_by_source(session, data.source_id, data.source_type)
        if existing:
            logger.info(f"Skipping duplicate {data.source_type} meeting {data.source_id} (DB ID: {existing.id})")
            return IngestionResult(success=False, meeting_id=existing.id, reason=DUPLICATE)
        meeting = None
    else:
        meeting = await get_meeting_by_id(session, existing_meeting_id)
        if meeting is None:
            logger.warning(f"Meeting {existing_meeting_id} not found for re-ingestion of \"{label}\"")
            return IngestionResult(success=False, reason=NOT_FOUND)

    try:
        contacts_by_key: dict[str, Contact] = {}
        for name in data.participants:
            if name_key(name) not in contacts_by_key:
                contacts_by_key[name_key(name)] = await _resolve_contact(session, name, org_id)

        companies_by_key: dict[str, Company] = {}
        for name in data.organizations:
            if name_key(name) not in companies_by_key:
                companies_by_key[name_key(name)] = await _resolve_company(session, name, org_id)

        if meeting is None:
            meeting = Meeting(
                source_id=data.source_id,
                source_type=data.source_type,
                org_id=org_id,
                **_meeting_fields(data, meeting_date),
            )
            session.add(meeting)
        else:
            for key, value in _meeting_fields(data, meeting_date).items():
                setattr(meeting, key, value)
        await session.flush()
        meeting_id = meeting.id

        await _link_contacts(session, meeting_id, list(contacts_by_key.values()), meeting_date)
        await _link_companies(session, meeting_id, list(companies_by_key.values()), meeting_date)

        for item in data.action_items:
            session.add(_build_task(item, meeting_id, contacts_by_key, data.source_type, org_id))

        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        if existing_meeting_id is None:
            # A concurrent delivery may have won the race on the dedup key
            winner = await get_meeting_by_source(session, data.source_id, data.source_type)
            if winner:
                logger.info(f"Concurrent duplicate for {data.source_type} meeting {data.source_id} (DB ID: {winner.id})")
                return IngestionResult(success=False, meeting_id=winner.id, reason=DUPLICATE)
        raise IngestionError(f"Failed to persist meeting {data.source_id}: {e.orig}") from e
    except Exception:
        await session.rollback()
        raise

    logger.info(
        f"Ingested meeting {meeting_id} \"{label}\": {len(contacts_by_key)} contact(s), "
        f"{len(companies_by_key)} company(ies), {len(data.action_items)} task(s)"
    )
    return IngestionResult(success=True, meeting_id=meeting_id)
