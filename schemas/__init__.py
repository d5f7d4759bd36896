"""
Pydantic schemas for JobLink.

Contract-first design: these schemas define the data contracts
between the collectors, the reconciliation engine, the store and the API.
"""

from .job import MUTABLE_FIELDS, UNSPECIFIED_LOCATION, CanonicalPosting, StoredJobRecord
from .results import (
    CollectionResult,
    CountBucket,
    JobPage,
    JobQuery,
    PipelineResult,
    SourceStats,
    StoreStats,
)
from .run_log import RunLog, RunLogStatus

__all__ = [
    # Core entities
    "CanonicalPosting",
    "StoredJobRecord",
    "RunLog",
    "RunLogStatus",
    "MUTABLE_FIELDS",
    "UNSPECIFIED_LOCATION",
    # Results
    "CollectionResult",
    "PipelineResult",
    "SourceStats",
    # Read side
    "CountBucket",
    "JobPage",
    "JobQuery",
    "StoreStats",
]
