"""Collection stage: run every source adapter concurrently and merge results."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine, Sequence
from typing import Any

import structlog

from collectors.adapters.base import SourceAdapter
from core.context import RunContext
from schemas import CanonicalPosting, CollectionResult

logger = structlog.get_logger()


async def collect(
    adapters: Sequence[SourceAdapter],
    ctx: RunContext,
) -> CollectionResult:
    """Harvest all sources concurrently and join on every one of them.

    Adapter failures are absorbed: a source that raises contributes no
    postings and the others are unaffected. ``success`` is False only when
    the harvest tasks cannot be started at all.

    Args:
        adapters: Source adapters to run, in merge order
        ctx: Run context

    Returns:
        CollectionResult with the merged, source-tagged postings
    """
    stage = ctx.start_stage("collect", items_in=len(adapters))

    coroutines: list[Coroutine[Any, Any, list[CanonicalPosting]]] = []
    try:
        for adapter in adapters:
            coroutines.append(adapter.harvest())
    except Exception as e:
        for coro in coroutines:
            coro.close()
        error = f"collection could not start: {e}"
        logger.error("Collection failed", run_id=ctx.run_id, error=error)
        stage.finish(errors=[error], status="failed")
        return CollectionResult(success=False, error=error)

    results = await asyncio.gather(*coroutines, return_exceptions=True)

    postings: list[CanonicalPosting] = []
    errors: list[str] = []

    for adapter, result in zip(adapters, results):
        if isinstance(result, BaseException):
            errors.append(f"{adapter.source_id}: {result}")
            logger.error(
                "Adapter raised during harvest",
                source=adapter.source_id,
                error=str(result),
            )
            continue

        for posting in result:
            if posting.source != adapter.source_id:
                posting = posting.model_copy(update={"source": adapter.source_id})
            postings.append(posting)

        logger.debug("Source collected", source=adapter.source_id, postings=len(result))

    ctx.metrics.num_sources = len(adapters)
    ctx.metrics.num_postings = len(postings)
    stage.finish(items_out=len(postings), errors=errors)

    logger.info(
        "Collection complete",
        run_id=ctx.run_id,
        sources=len(adapters),
        postings=len(postings),
        errors=len(errors),
    )

    return CollectionResult(success=True, postings=postings)
