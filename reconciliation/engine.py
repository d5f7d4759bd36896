"""Idempotent upsert of canonical postings keyed by ``source_url``."""

from __future__ import annotations

import time
from collections.abc import Sequence
from datetime import datetime, timezone

import structlog
from pydantic import ValidationError

from core.context import RunContext
from schemas import (
    CanonicalPosting,
    CollectionResult,
    RunLog,
    RunLogStatus,
    SourceStats,
    StoredJobRecord,
)
from storage.base import JobStore, StoreError

logger = structlog.get_logger()


def _apply(posting: CanonicalPosting, store: JobStore) -> bool:
    """Upsert one posting. Returns True when it was a new record."""
    now = datetime.now(timezone.utc)
    existing = store.find_by_source_url(posting.source_url)

    if existing is None:
        store.upsert(StoredJobRecord.from_posting(posting, now))
        return True

    # The posting's own id is discarded; the stored identity wins
    store.upsert(existing.refreshed(posting, now))
    return False


def reconcile(
    postings: Sequence[CanonicalPosting],
    source: str,
    store: JobStore,
    started_at: float | None = None,
) -> SourceStats:
    """Reconcile one source's batch against the store.

    Postings are applied one at a time, in order. A posting that fails for
    any reason is logged and counted as failed; the rest of the batch still
    goes through. A non-empty batch appends one RunLog.

    Args:
        postings: The source's harvested postings
        source: Source tag the batch belongs to
        store: Target job store
        started_at: ``time.monotonic()`` of the run trigger; the RunLog
            duration is measured from it. Defaults to the start of this batch.

    Returns:
        SourceStats with scraped/added/updated/failed counts
    """
    batch_start = time.monotonic()
    stats = SourceStats(scraped=len(postings))

    for posting in postings:
        try:
            if _apply(posting, store):
                stats.added += 1
            else:
                stats.updated += 1
        except (StoreError, ValidationError) as e:
            stats.failed += 1
            logger.warning(
                "Failed to reconcile posting",
                source=source,
                source_url=posting.source_url,
                error=str(e),
            )
        except Exception as e:
            stats.failed += 1
            logger.error(
                "Unexpected error reconciling posting",
                source=source,
                source_url=posting.source_url,
                error=str(e),
                exc_info=True,
            )

    if not postings:
        return stats

    origin = started_at if started_at is not None else batch_start
    entry = RunLog(
        source=source,
        jobs_scraped=stats.scraped,
        jobs_added=stats.added,
        jobs_updated=stats.updated,
        status=RunLogStatus.SUCCESS,
        error_message=(
            f"{stats.failed} posting(s) failed to reconcile" if stats.failed else None
        ),
        duration_ms=int((time.monotonic() - origin) * 1000),
    )
    try:
        store.append_run_log(entry)
    except Exception as e:
        logger.error("Failed to write run log", source=source, error=str(e), exc_info=True)

    logger.info(
        "Source reconciled",
        source=source,
        scraped=stats.scraped,
        added=stats.added,
        updated=stats.updated,
        failed=stats.failed,
    )
    return stats


def reconcile_all(
    collection: CollectionResult,
    sources: Sequence[str],
    ctx: RunContext,
    store: JobStore,
    started_at: float | None = None,
) -> dict[str, SourceStats]:
    """Reconcile every source's slice of a collection, one source at a time.

    Every listed source gets an entry in the result, zeros included.
    """
    stage = ctx.start_stage("reconcile", items_in=len(collection.postings))

    per_source: dict[str, SourceStats] = {}
    for source in sources:
        stats = reconcile(collection.for_source(source), source, store, started_at)
        per_source[source] = stats
        ctx.metrics.num_added += stats.added
        ctx.metrics.num_updated += stats.updated
        ctx.metrics.num_failed += stats.failed

    errors = [
        f"{source}: {stats.failed} failed"
        for source, stats in per_source.items()
        if stats.failed
    ]
    stage.finish(
        items_out=ctx.metrics.num_added + ctx.metrics.num_updated,
        errors=errors,
    )
    return per_source
