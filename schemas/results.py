"""Result shapes returned by the pipeline and the read side of the store."""

from typing import Any

from pydantic import BaseModel, Field

from .job import CanonicalPosting, StoredJobRecord
from .run_log import RunLog


class SourceStats(BaseModel):
    """Per-source counters for one run."""

    scraped: int = 0
    added: int = 0
    updated: int = 0
    failed: int = 0


class CollectionResult(BaseModel):
    """Output of the collection stage."""

    success: bool
    postings: list[CanonicalPosting] = Field(default_factory=list)
    error: str | None = None

    def for_source(self, source: str) -> list[CanonicalPosting]:
        """Slice of postings harvested from one source."""
        return [p for p in self.postings if p.source == source]


class PipelineResult(BaseModel):
    """What a trigger caller gets back from one invocation."""

    success: bool
    run_id: str
    per_source_stats: dict[str, SourceStats] = Field(default_factory=dict)
    total_jobs: int = 0
    duration_ms: int = 0
    error: str | None = None


class JobQuery(BaseModel):
    """Filters for listing stored jobs. Only active records are listed."""

    search: str = ""
    location: str = ""
    source: str = ""
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class JobPage(BaseModel):
    """One page of stored jobs plus the total match count."""

    items: list[StoredJobRecord] = Field(default_factory=list)
    total: int = 0
    page: int = 1
    limit: int = 20

    @property
    def pages(self) -> int:
        return -(-self.total // self.limit) if self.total else 0

    def pagination(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "page": self.page,
            "limit": self.limit,
            "pages": self.pages,
        }


class CountBucket(BaseModel):
    """A grouped count, e.g. jobs per source."""

    key: str | None
    count: int


class StoreStats(BaseModel):
    """Aggregate view served by the stats endpoint."""

    total_jobs: int = 0
    jobs_by_source: list[CountBucket] = Field(default_factory=list)
    jobs_by_location: list[CountBucket] = Field(default_factory=list)
    recent_logs: list[RunLog] = Field(default_factory=list)
