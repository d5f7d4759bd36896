"""Run context: state machine and stage bookkeeping for one harvest run."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from core.ids import generate_run_id


def _now() -> datetime:
    return datetime.now(timezone.utc)


class RunStatus(str, Enum):
    """State of a pipeline run."""

    IDLE = "idle"
    COLLECTING = "collecting"
    RECONCILING = "reconciling"
    DONE = "done"
    FAILED = "failed"


# Any live state may fail; done and failed are terminal
ALLOWED_TRANSITIONS: dict[RunStatus, frozenset[RunStatus]] = {
    RunStatus.IDLE: frozenset({RunStatus.COLLECTING, RunStatus.FAILED}),
    RunStatus.COLLECTING: frozenset({RunStatus.RECONCILING, RunStatus.FAILED}),
    RunStatus.RECONCILING: frozenset({RunStatus.DONE, RunStatus.FAILED}),
    RunStatus.DONE: frozenset(),
    RunStatus.FAILED: frozenset(),
}


class InvalidTransition(Exception):
    """Raised when a run is moved to a state it cannot reach."""


class RunMetrics(BaseModel):
    """Counters accumulated across the stages of a run."""

    num_sources: int = 0
    num_postings: int = 0
    num_added: int = 0
    num_updated: int = 0
    num_failed: int = 0


class StageRecord(BaseModel):
    """Timing and counts for one stage (collect or reconcile)."""

    stage: str
    started_at: datetime = Field(default_factory=_now)
    finished_at: datetime | None = None
    status: str = "running"
    items_in: int = 0
    items_out: int = 0
    errors: list[str] = Field(default_factory=list)

    @property
    def duration_seconds(self) -> float | None:
        if self.finished_at is None:
            return None
        return (self.finished_at - self.started_at).total_seconds()

    def finish(
        self,
        items_out: int = 0,
        errors: list[str] | None = None,
        status: str = "completed",
    ) -> None:
        self.finished_at = _now()
        self.items_out = items_out
        self.status = status
        self.errors = list(errors or [])


class RunContext(BaseModel):
    """Travels through collect and reconcile for a single invocation."""

    run_id: str = Field(default_factory=generate_run_id)
    started_at: datetime = Field(default_factory=_now)
    status: RunStatus = RunStatus.IDLE
    completed_at: datetime | None = None

    metrics: RunMetrics = Field(default_factory=RunMetrics)
    stages: list[StageRecord] = Field(default_factory=list)

    @property
    def finished(self) -> bool:
        return self.status in (RunStatus.DONE, RunStatus.FAILED)

    def transition(self, status: RunStatus) -> None:
        """Move the run to ``status``.

        Raises:
            InvalidTransition: if ``status`` is not reachable from the current state
        """
        if status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransition(f"{self.status.value} -> {status.value}")
        self.status = status
        if self.finished:
            self.completed_at = _now()

    def start_stage(self, stage: str, items_in: int = 0) -> StageRecord:
        record = StageRecord(stage=stage, items_in=items_in)
        self.stages.append(record)
        return record

    def summary(self) -> dict[str, Any]:
        """Plain-dict view of the run, for logs and the CLI."""
        return {
            "run_id": self.run_id,
            "status": self.status.value,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "metrics": self.metrics.model_dump(),
            "stages": [
                {
                    "stage": s.stage,
                    "status": s.status,
                    "items_in": s.items_in,
                    "items_out": s.items_out,
                    "duration": s.duration_seconds,
                    "errors": len(s.errors),
                }
                for s in self.stages
            ],
        }
