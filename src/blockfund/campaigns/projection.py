"""
Campaign projection cache.

Local, possibly stale copies of ledger records for display. The cache is
written only with records just read from the ledger and is never consulted
for authorization or eligibility decisions.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Protocol

from sqlalchemy import DateTime, Integer, String, create_engine, delete, select
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, sessionmaker

from blockfund.ledger.models import CampaignRecord, CampaignStatus


@dataclass(frozen=True)
class ProjectionEntry:
    record: CampaignRecord
    fetched_at: datetime


class ProjectionCache(Protocol):
    """Protocol for campaign projection stores."""

    def get(self, campaign_id: int) -> ProjectionEntry | None: ...

    def put(self, record: CampaignRecord) -> ProjectionEntry: ...

    def invalidate(self, campaign_id: int) -> None: ...

    def all(self) -> list[ProjectionEntry]: ...

    def clear(self) -> None: ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryProjectionCache:
    """Dict-backed projection cache shared within one process."""

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        self._clock = clock
        self._entries: dict[int, ProjectionEntry] = {}

    def get(self, campaign_id: int) -> ProjectionEntry | None:
        return self._entries.get(campaign_id)

    def put(self, record: CampaignRecord) -> ProjectionEntry:
        entry = ProjectionEntry(record=record, fetched_at=self._clock())
        self._entries[record.id] = entry
        return entry

    def invalidate(self, campaign_id: int) -> None:
        self._entries.pop(campaign_id, None)

    def all(self) -> list[ProjectionEntry]:
        return [self._entries[k] for k in sorted(self._entries)]

    def clear(self) -> None:
        self._entries.clear()


class Base(DeclarativeBase):
    """Declarative base for projection tables."""


class CampaignProjection(Base):
    """Row mirroring one ledger campaign record."""

    __tablename__ = "campaign_projections"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    creator: Mapped[str] = mapped_column(String(128), nullable=False)
    # Amounts and deadlines are uint values that can exceed 64 bits, stored as decimal strings
    goal: Mapped[str] = mapped_column(String(80), nullable=False)
    deadline: Mapped[str] = mapped_column(String(80), nullable=False)
    total_funded: Mapped[str] = mapped_column(String(80), nullable=False, default="0")
    metadata_cid: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    status: Mapped[int] = mapped_column(Integer, nullable=False)
    fetched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def to_entry(self) -> ProjectionEntry:
        record = CampaignRecord(
            id=self.id,
            creator=self.creator,
            goal=int(self.goal),
            deadline=int(self.deadline),
            total_funded=int(self.total_funded),
            metadata_cid=self.metadata_cid,
            status=CampaignStatus(self.status),
        )
        fetched_at = self.fetched_at
        if fetched_at.tzinfo is None:
            fetched_at = fetched_at.replace(tzinfo=timezone.utc)
        return ProjectionEntry(record=record, fetched_at=fetched_at)


class SqlProjectionCache:
    """Projection cache persisted with SQLAlchemy so separate processes share it."""

    def __init__(
        self,
        database_url: str = "sqlite:///blockfund_projections.db",
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._engine = create_engine(database_url)
        self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        self._clock = clock
        Base.metadata.create_all(self._engine)

    def get(self, campaign_id: int) -> ProjectionEntry | None:
        with self._session_factory() as session:
            row = session.get(CampaignProjection, campaign_id)
            return row.to_entry() if row else None

    def put(self, record: CampaignRecord) -> ProjectionEntry:
        fetched_at = self._clock()
        with self._session_factory() as session, session.begin():
            row = session.get(CampaignProjection, record.id)
            if row is None:
                row = CampaignProjection(id=record.id)
                session.add(row)
            row.creator = record.creator
            row.goal = str(record.goal)
            row.deadline = str(record.deadline)
            row.total_funded = str(record.total_funded)
            row.metadata_cid = record.metadata_cid
            row.status = int(record.status)
            row.fetched_at = fetched_at
        return ProjectionEntry(record=record, fetched_at=fetched_at)

    def invalidate(self, campaign_id: int) -> None:
        with self._session_factory() as session, session.begin():
            session.execute(delete(CampaignProjection).where(CampaignProjection.id == campaign_id))

    def all(self) -> list[ProjectionEntry]:
        with self._session_factory() as session:
            rows = session.execute(
                select(CampaignProjection).order_by(CampaignProjection.id)
            ).scalars().all()
            return [row.to_entry() for row in rows]

    def clear(self) -> None:
        with self._session_factory() as session, session.begin():
            session.execute(delete(CampaignProjection))

    def close(self) -> None:
        self._engine.dispose()
