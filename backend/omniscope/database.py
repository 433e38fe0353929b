from __future__ import annotations

import logging
from datetime import datetime
from typing import AsyncIterator, Optional

from sqlalchemy import (
    JSON,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
    func,
    select,
    text,
)
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


class Meeting(Base):
    __tablename__ = "meetings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    source_id: Mapped[str] = mapped_column(String(255), nullable=False)
    source_type: Mapped[str] = mapped_column(String(50), nullable=False)
    org_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    meeting_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    primary_lead: Mapped[str] = mapped_column(String(255), nullable=False)
    participants: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    organizations: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    executive_summary: Mapped[str] = mapped_column(Text, nullable=False)
    strategic_highlights: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    opportunities: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    risks: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    key_quotes: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    sectors: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    jurisdictions: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    tags: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    full_transcript: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    intelligence_data: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        # Dedup key; the pipeline's pre-check relies on this as its backstop
        UniqueConstraint("source_id", "source_type", name="uq_meeting_source"),
        Index("idx_meeting_date", "meeting_date"),
    )


class Contact(Base):
    __tablename__ = "contacts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    name_key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    meeting_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_meeting_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("org_id", "name_key", name="uq_contact_org_name"),
        # NULLs never collide in the constraint above
        Index(
            "uq_contact_name_no_org",
            "name_key",
            unique=True,
            postgresql_where=text("org_id IS NULL"),
            sqlite_where=text("org_id IS NULL"),
        ),
    )


class Company(Base):
    __tablename__ = "companies"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    org_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    name_key: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    meeting_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_meeting_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = (
        UniqueConstraint("org_id", "name_key", name="uq_company_org_name"),
        Index(
            "uq_company_name_no_org",
            "name_key",
            unique=True,
            postgresql_where=text("org_id IS NULL"),
            sqlite_where=text("org_id IS NULL"),
        ),
    )


class MeetingContact(Base):
    __tablename__ = "meeting_contacts"

    meeting_id: Mapped[int] = mapped_column(ForeignKey("meetings.id", ondelete="CASCADE"), primary_key=True)
    contact_id: Mapped[int] = mapped_column(ForeignKey("contacts.id", ondelete="CASCADE"), primary_key=True)


class MeetingCompany(Base):
    __tablename__ = "meeting_companies"

    meeting_id: Mapped[int] = mapped_column(ForeignKey("meetings.id", ondelete="CASCADE"), primary_key=True)
    company_id: Mapped[int] = mapped_column(ForeignKey("companies.id", ondelete="CASCADE"), primary_key=True)


class Task(Base):
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    meeting_id: Mapped[int] = mapped_column(
        ForeignKey("meetings.id", ondelete="CASCADE"), nullable=False, index=True
    )
    org_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    assigned_to: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    assigned_contact_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True, index=True
    )
    priority: Mapped[str] = mapped_column(String(10), nullable=False, default="medium")
    due_date: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="open")
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )


def build_engine(database_url: str) -> AsyncEngine:
    """Create an async engine; SQLite gets explicit BEGIN so savepoints nest properly."""
    async_engine = create_async_engine(database_url, echo=False)

    if async_engine.dialect.name == "sqlite":
        @event.listens_for(async_engine.sync_engine, "connect")
        def _disable_pysqlite_begin(dbapi_connection, connection_record):
            dbapi_connection.isolation_level = None

        @event.listens_for(async_engine.sync_engine, "begin")
        def _emit_begin(conn):
            conn.exec_driver_sql("BEGIN")

    return async_engine


engine: Optional[AsyncEngine] = None
async_session_maker: Optional[async_sessionmaker[AsyncSession]] = None


def configure_database(database_url: Optional[str]) -> None:
    """Create the async engine and session factory (no-op without a URL)."""
    global engine, async_session_maker

    if not database_url:
        logger.warning("Database not configured. Set DATABASE_URL to enable ingestion.")
        engine = None
        async_session_maker = None
        return

    engine = build_engine(database_url)
    async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db() -> None:
    """Initialize database by creating all tables."""
    if not engine:
        logger.warning("Database not configured, skipping initialization")
        return

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


async def get_db() -> AsyncIterator[AsyncSession]:
    """Dependency for FastAPI routes to get database session."""
    if not async_session_maker:
        from fastapi import HTTPException
        raise HTTPException(
            status_code=503,
            detail="Database not configured. Set DATABASE_URL environment variable."
        )
    async with async_session_maker() as session:
        yield session


def name_key(name: str) -> str:
    """Normalized form used for case-insensitive entity matching."""
    return " ".join(name.split()).lower()


def _org_scope(column, org_id: Optional[int]):
    return column.is_(None) if org_id is None else column == org_id


async def get_meeting_by_source(
    session: AsyncSession, source_id: str, source_type: str
) -> Optional[Meeting]:
    """Retrieve a meeting by its dedup key."""
    stmt = select(Meeting).where(
        Meeting.source_id == source_id, Meeting.source_type == source_type
    )
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def get_meeting_by_id(session: AsyncSession, meeting_id: int) -> Optional[Meeting]:
    return await session.get(Meeting, meeting_id)


async def find_contact_by_name(
    session: AsyncSession, name: str, org_id: Optional[int] = None
) -> Optional[Contact]:
    stmt = select(Contact).where(
        Contact.name_key == name_key(name), _org_scope(Contact.org_id, org_id)
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def find_company_by_name(
    session: AsyncSession, name: str, org_id: Optional[int] = None
) -> Optional[Company]:
    stmt = select(Company).where(
        Company.name_key == name_key(name), _org_scope(Company.org_id, org_id)
    )
    result = await session.execute(stmt)
    return result.scalars().first()


async def list_tasks_for_meeting(session: AsyncSession, meeting_id: int) -> list[Task]:
    stmt = select(Task).where(Task.meeting_id == meeting_id).order_by(Task.id)
    result = await session.execute(stmt)
    return list(result.scalars().all())
