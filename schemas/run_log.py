"""Per-source harvest log schemas."""

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import Field

from .base import BaseSchema


class RunLogStatus(str, Enum):
    """Outcome of a source's reconciliation pass."""

    SUCCESS = "success"
    FAILURE = "failure"


class RunLog(BaseSchema):
    """One record per source per pipeline run. Append-only."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    source: str
    jobs_scraped: int = 0
    jobs_added: int = 0
    jobs_updated: int = 0
    status: RunLogStatus = RunLogStatus.SUCCESS
    error_message: str | None = None
    scraped_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    duration_ms: int = 0
