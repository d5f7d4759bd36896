"""SQLAlchemy-backed store. Works with any SQLAlchemy URL; SQLite by default."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

import structlog
from sqlalchemy import (
    Boolean,
    DateTime,
    Integer,
    String,
    Text,
    UniqueConstraint,
    create_engine,
    func,
    or_,
    select,
)
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker
from sqlalchemy.pool import StaticPool

from schemas import (
    CountBucket,
    JobPage,
    JobQuery,
    RunLog,
    StoredJobRecord,
    StoreStats,
)
from storage.base import JobStore, StoreConstraintError, StoreError

logger = structlog.get_logger()


class Base(DeclarativeBase):
    pass


class JobRow(Base):
    __tablename__ = "jobs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    company: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    location: Mapped[str | None] = mapped_column(Text, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    salary: Mapped[str | None] = mapped_column(Text)
    job_type: Mapped[str | None] = mapped_column(Text)
    category: Mapped[str | None] = mapped_column(Text)
    source: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    source_url: Mapped[str] = mapped_column(Text, nullable=False)
    posted_date: Mapped[str | None] = mapped_column(Text)
    scraped_date: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (UniqueConstraint("source_url", name="uq_jobs_source_url"),)


class RunLogRow(Base):
    __tablename__ = "scraping_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    jobs_scraped: Mapped[int] = mapped_column(Integer, default=0)
    jobs_added: Mapped[int] = mapped_column(Integer, default=0)
    jobs_updated: Mapped[int] = mapped_column(Integer, default=0)
    status: Mapped[str] = mapped_column(String(20))
    error_message: Mapped[str | None] = mapped_column(Text)
    scraped_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    duration_ms: Mapped[int] = mapped_column(Integer, default=0)


def _make_engine(database_url: str) -> Engine:
    url = make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return create_engine(url)

    if url.database in (None, "", ":memory:"):
        # One shared connection, otherwise every session sees an empty database
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, connect_args={"check_same_thread": False})


class SqlJobStore(JobStore):
    """Relational store with a unique constraint on ``source_url``."""

    def __init__(self, database_url: str) -> None:
        self.engine = _make_engine(database_url)
        Base.metadata.create_all(self.engine)
        self._sessions = sessionmaker(self.engine, expire_on_commit=False)

    @contextmanager
    def _session(self) -> Iterator[Session]:
        session = self._sessions()
        try:
            yield session
        except IntegrityError as e:
            session.rollback()
            raise StoreConstraintError(str(e.orig)) from e
        except SQLAlchemyError as e:
            session.rollback()
            raise StoreError(str(e)) from e
        finally:
            session.close()

    # --- Write side ---

    def find_by_source_url(self, url: str) -> StoredJobRecord | None:
        with self._session() as session:
            row = session.scalars(
                select(JobRow).where(JobRow.source_url == url)
            ).one_or_none()
            return StoredJobRecord.model_validate(row) if row else None

    def upsert(self, record: StoredJobRecord) -> None:
        values = record.model_dump()
        with self._session() as session:
            row = session.get(JobRow, record.id)
            if row is None:
                session.add(JobRow(**values))
            else:
                for name, value in values.items():
                    setattr(row, name, value)
            session.commit()

    def append_run_log(self, entry: RunLog) -> None:
        values = entry.model_dump()
        values["status"] = entry.status.value
        with self._session() as session:
            session.add(RunLogRow(**values))
            session.commit()

    # --- Read side ---

    def get_job(self, job_id: str) -> StoredJobRecord | None:
        with self._session() as session:
            row = session.get(JobRow, job_id)
            return StoredJobRecord.model_validate(row) if row else None

    def list_jobs(self, query: JobQuery) -> JobPage:
        stmt = select(JobRow).where(JobRow.is_active.is_(True))
        if query.search:
            term = f"%{query.search}%"
            stmt = stmt.where(
                or_(
                    JobRow.title.ilike(term),
                    JobRow.description.ilike(term),
                    JobRow.company.ilike(term),
                )
            )
        if query.location:
            stmt = stmt.where(JobRow.location.ilike(f"%{query.location}%"))
        if query.source:
            stmt = stmt.where(JobRow.source == query.source)

        with self._session() as session:
            total = session.scalar(
                select(func.count()).select_from(stmt.subquery())
            ) or 0
            rows = session.scalars(
                stmt.order_by(JobRow.scraped_date.desc())
                .limit(query.limit)
                .offset(query.offset)
            ).all()
            return JobPage(
                items=[StoredJobRecord.model_validate(r) for r in rows],
                total=total,
                page=query.page,
                limit=query.limit,
            )

    def stats(self, top_locations: int = 10, recent_logs: int = 10) -> StoreStats:
        active = JobRow.is_active.is_(True)
        count = func.count().label("count")
        with self._session() as session:
            total = (
                session.scalar(select(func.count()).select_from(JobRow).where(active))
                or 0
            )
            by_source = session.execute(
                select(JobRow.source, count)
                .where(active)
                .group_by(JobRow.source)
                .order_by(JobRow.source)
            ).all()
            by_location = session.execute(
                select(JobRow.location, count)
                .where(active)
                .group_by(JobRow.location)
                .order_by(count.desc())
                .limit(top_locations)
            ).all()
            logs = session.scalars(
                select(RunLogRow)
                .order_by(RunLogRow.scraped_at.desc())
                .limit(recent_logs)
            ).all()
            return StoreStats(
                total_jobs=total,
                jobs_by_source=[CountBucket(key=k, count=c) for k, c in by_source],
                jobs_by_location=[CountBucket(key=k, count=c) for k, c in by_location],
                recent_logs=[RunLog.model_validate(log) for log in logs],
            )

    def close(self) -> None:
        self.engine.dispose()
        logger.debug("Store closed", url=str(self.engine.url))
