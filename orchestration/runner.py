"""Pipeline runner: collect from every source, then reconcile into the store."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from pathlib import Path

import httpx
import structlog

from collectors.adapters import SourceAdapter, build_adapters
from collectors.collector import collect
from core.config import Settings, SourcesConfig, load_config
from core.context import RunContext, RunStatus
from reconciliation.engine import reconcile_all
from schemas import PipelineResult
from storage.base import JobStore

logger = structlog.get_logger()


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class HarvestPipeline:
    """The single entry point shared by scheduled and on-demand triggers.

    Invocations are serialized: a trigger that fires while a run is in
    progress waits for it to finish, then runs.
    """

    def __init__(
        self,
        adapters: Sequence[SourceAdapter],
        store: JobStore,
    ):
        self.adapters = list(adapters)
        self.store = store
        self.last_context: RunContext | None = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_config(
        cls,
        store: JobStore,
        settings: Settings | None = None,
        sources: SourcesConfig | None = None,
        sources_path: Path | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> HarvestPipeline:
        """Build a pipeline with one adapter per enabled configured source."""
        if settings is None or sources is None:
            settings, sources = load_config(sources_path, settings)
        return cls(build_adapters(sources, settings, transport), store)

    @property
    def source_ids(self) -> list[str]:
        return [adapter.source_id for adapter in self.adapters]

    @property
    def is_running(self) -> bool:
        return self._lock.locked()

    async def invoke(self) -> PipelineResult:
        """Run one harvest across all sources.

        Returns:
            PipelineResult; ``success`` is False when collection could not
            run (nothing is reconciled, no run logs are written) or when the
            run broke outside per-record handling. It never raises.
        """
        if self.is_running:
            logger.info("Harvest already running, waiting for it to finish")
        async with self._lock:
            return await self._run()

    async def _run(self) -> PipelineResult:
        run_start = time.monotonic()
        ctx = RunContext()
        self.last_context = ctx
        log = logger.bind(run_id=ctx.run_id)
        log.info("Harvest run started", sources=self.source_ids)

        try:
            ctx.transition(RunStatus.COLLECTING)
            collection = await collect(self.adapters, ctx)

            if not collection.success:
                ctx.transition(RunStatus.FAILED)
                log.error("Harvest run failed", error=collection.error)
                return PipelineResult(
                    success=False,
                    run_id=ctx.run_id,
                    duration_ms=_elapsed_ms(run_start),
                    error=collection.error or "collection failed",
                )

            ctx.transition(RunStatus.RECONCILING)
            per_source = reconcile_all(
                collection, self.source_ids, ctx, self.store, started_at=run_start
            )
            ctx.transition(RunStatus.DONE)

        except Exception as e:
            if not ctx.finished:
                ctx.transition(RunStatus.FAILED)
            log.error("Harvest run crashed", error=str(e), exc_info=True)
            return PipelineResult(
                success=False,
                run_id=ctx.run_id,
                duration_ms=_elapsed_ms(run_start),
                error=f"{type(e).__name__}: {e}",
            )

        result = PipelineResult(
            success=True,
            run_id=ctx.run_id,
            per_source_stats=per_source,
            total_jobs=len(collection.postings),
            duration_ms=_elapsed_ms(run_start),
        )
        log.info(
            "Harvest run complete",
            total_jobs=result.total_jobs,
            added=ctx.metrics.num_added,
            updated=ctx.metrics.num_updated,
            failed=ctx.metrics.num_failed,
            duration_ms=result.duration_ms,
        )
        log.debug("Run summary", summary=ctx.summary())
        return result


async def run_harvest_async(
    store: JobStore,
    settings: Settings | None = None,
    sources: SourcesConfig | None = None,
    sources_path: Path | None = None,
) -> PipelineResult:
    """Build a pipeline from configuration and run it once."""
    pipeline = HarvestPipeline.from_config(store, settings, sources, sources_path)
    return await pipeline.invoke()


def run_harvest(
    store: JobStore,
    settings: Settings | None = None,
    sources: SourcesConfig | None = None,
    sources_path: Path | None = None,
) -> PipelineResult:
    """Synchronous wrapper for run_harvest_async."""
    return asyncio.run(run_harvest_async(store, settings, sources, sources_path))
