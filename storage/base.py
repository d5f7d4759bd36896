"""Store abstraction consumed by the reconciliation engine and the read API."""

from __future__ import annotations

from abc import ABC, abstractmethod

from schemas import JobPage, JobQuery, RunLog, StoredJobRecord, StoreStats


class StoreError(Exception):
    """Raised when the store rejects a write or cannot serve a query."""


class StoreConstraintError(StoreError):
    """Raised when a write would break a uniqueness constraint."""


class JobStore(ABC):
    """A store supporting keyed upsert and predicate queries.

    ``source_url`` is unique across all stored records.
    """

    # --- Write side (pipeline) ---

    @abstractmethod
    def find_by_source_url(self, url: str) -> StoredJobRecord | None:
        """Look up the record harvested from ``url``."""

    @abstractmethod
    def upsert(self, record: StoredJobRecord) -> None:
        """Insert the record, or replace the stored record with the same id."""

    @abstractmethod
    def append_run_log(self, entry: RunLog) -> None:
        """Append one run log entry."""

    # --- Read side (API) ---

    @abstractmethod
    def get_job(self, job_id: str) -> StoredJobRecord | None:
        """Fetch a single record by id, active or not."""

    @abstractmethod
    def list_jobs(self, query: JobQuery) -> JobPage:
        """List active records matching the query, newest harvest first."""

    @abstractmethod
    def stats(self, top_locations: int = 10, recent_logs: int = 10) -> StoreStats:
        """Aggregate counts over active records plus the latest run logs."""

    def close(self) -> None:
        """Release any resources held by the store."""
