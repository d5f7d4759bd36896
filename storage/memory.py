"""In-memory store, used for tests and throwaway runs."""

from __future__ import annotations

from collections import Counter

from schemas import (
    CountBucket,
    JobPage,
    JobQuery,
    RunLog,
    StoredJobRecord,
    StoreStats,
)
from storage.base import JobStore, StoreConstraintError


def _matches(record: StoredJobRecord, query: JobQuery) -> bool:
    if not record.is_active:
        return False
    if query.search:
        needle = query.search.lower()
        haystacks = (record.title, record.description, record.company)
        if not any(needle in (h or "").lower() for h in haystacks):
            return False
    if query.location and query.location.lower() not in (record.location or "").lower():
        return False
    if query.source and record.source != query.source:
        return False
    return True


class MemoryJobStore(JobStore):
    """Dict-backed store enforcing the same constraints as the SQL store."""

    def __init__(self) -> None:
        self._jobs: dict[str, StoredJobRecord] = {}
        self._by_url: dict[str, str] = {}
        self._logs: list[RunLog] = []

    def find_by_source_url(self, url: str) -> StoredJobRecord | None:
        job_id = self._by_url.get(url)
        return self._jobs.get(job_id) if job_id else None

    def upsert(self, record: StoredJobRecord) -> None:
        owner = self._by_url.get(record.source_url)
        if owner is not None and owner != record.id:
            raise StoreConstraintError(
                f"source_url already stored under another id: {record.source_url}"
            )

        previous = self._jobs.get(record.id)
        if previous is not None and previous.source_url != record.source_url:
            del self._by_url[previous.source_url]

        self._jobs[record.id] = record.model_copy()
        self._by_url[record.source_url] = record.id

    def append_run_log(self, entry: RunLog) -> None:
        self._logs.append(entry.model_copy())

    def get_job(self, job_id: str) -> StoredJobRecord | None:
        return self._jobs.get(job_id)

    def list_jobs(self, query: JobQuery) -> JobPage:
        matched = [r for r in self._jobs.values() if _matches(r, query)]
        matched.sort(key=lambda r: r.scraped_date, reverse=True)
        return JobPage(
            items=matched[query.offset : query.offset + query.limit],
            total=len(matched),
            page=query.page,
            limit=query.limit,
        )

    def stats(self, top_locations: int = 10, recent_logs: int = 10) -> StoreStats:
        active = [r for r in self._jobs.values() if r.is_active]
        by_source = Counter(r.source for r in active)
        by_location = Counter(r.location for r in active)
        logs = sorted(self._logs, key=lambda log: log.scraped_at, reverse=True)
        return StoreStats(
            total_jobs=len(active),
            jobs_by_source=[
                CountBucket(key=k, count=v) for k, v in sorted(by_source.items())
            ],
            jobs_by_location=[
                CountBucket(key=k, count=v)
                for k, v in by_location.most_common(top_locations)
            ],
            recent_logs=logs[:recent_logs],
        )

    @property
    def run_logs(self) -> list[RunLog]:
        """All appended run logs, oldest first."""
        return list(self._logs)

    def all_jobs(self) -> list[StoredJobRecord]:
        """Every stored record, active or not."""
        return list(self._jobs.values())
