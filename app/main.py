"""FastAPI application: read API over the store plus harvest triggers."""

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager, suppress

import structlog
import uvicorn
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from fastapi import Depends, FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from core.config import Settings
from core.logging import configure_logging
from orchestration.runner import HarvestPipeline
from schemas import JobQuery, PipelineResult
from storage.base import JobStore, StoreError
from storage.sql import SqlJobStore

logger = structlog.get_logger()


async def background_harvest(
    pipeline: HarvestPipeline, trigger: str
) -> PipelineResult | None:
    """Run a harvest with no caller waiting on it, logging how it ended."""
    log = logger.bind(trigger=trigger)
    log.info("Background harvest triggered")
    try:
        result = await pipeline.invoke()
    except asyncio.CancelledError:
        log.warning("Background harvest cancelled")
        raise
    except Exception as e:
        log.error("Background harvest raised", error=str(e), exc_info=True)
        return None

    if not result.success:
        log.error("Background harvest failed", run_id=result.run_id, error=result.error)
    return result


async def scheduled_harvest(pipeline: HarvestPipeline) -> None:
    """Interval job body; same entry point as the on-demand trigger."""
    await background_harvest(pipeline, "schedule")


def build_scheduler(pipeline: HarvestPipeline, interval_minutes: int) -> AsyncIOScheduler:
    """Scheduler firing one harvest every ``interval_minutes``."""
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        scheduled_harvest,
        "interval",
        minutes=interval_minutes,
        args=[pipeline],
        id="harvest",
        max_instances=1,
        coalesce=True,
    )
    return scheduler


def get_store(request: Request) -> JobStore:
    return request.app.state.store


def get_pipeline(request: Request) -> HarvestPipeline:
    return request.app.state.pipeline


def create_app(
    settings: Settings | None = None,
    store: JobStore | None = None,
    pipeline: HarvestPipeline | None = None,
) -> FastAPI:
    """Build the API. Missing collaborators are created from settings at startup."""
    settings = settings or Settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.store = store or SqlJobStore(settings.database_url)
        app.state.pipeline = pipeline or HarvestPipeline.from_config(
            app.state.store, settings
        )

        scheduler = None
        if settings.schedule_enabled:
            scheduler = build_scheduler(app.state.pipeline, settings.harvest_interval_minutes)
            scheduler.start()
            logger.info(
                "Harvest scheduled", interval_minutes=settings.harvest_interval_minutes
            )

        startup_run = None
        if settings.harvest_on_startup:
            startup_run = asyncio.create_task(
                background_harvest(app.state.pipeline, "startup")
            )

        yield

        if scheduler is not None:
            scheduler.shutdown(wait=False)
        if startup_run is not None and not startup_run.done():
            logger.warning("Cancelling startup harvest still in progress")
            startup_run.cancel()
            with suppress(asyncio.CancelledError):
                await startup_run
        if store is None:
            app.state.store.close()

    app = FastAPI(
        title="JobLink API",
        description="Aggregated, de-duplicated job postings harvested from listing sites",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
        logger.error("Store error", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "name": "JobLink API",
            "version": "0.1.0",
            "docs": "/docs",
        }

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"success": True, "status": "healthy"}

    @app.get("/api/jobs")
    def list_jobs(
        page: int = Query(1, ge=1),
        limit: int = Query(20, ge=1, le=100),
        search: str = "",
        location: str = "",
        source: str = "",
        store: JobStore = Depends(get_store),
    ):
        """Paginated active jobs, newest harvest first."""
        result = store.list_jobs(
            JobQuery(search=search, location=location, source=source, page=page, limit=limit)
        )
        return {
            "success": True,
            "data": [job.model_dump(mode="json") for job in result.items],
            "pagination": result.pagination(),
        }

    @app.get("/api/jobs/{job_id}")
    def get_job(job_id: str, store: JobStore = Depends(get_store)):
        job = store.get_job(job_id)
        if job is None:
            return JSONResponse(
                status_code=404, content={"success": False, "error": "Job not found"}
            )
        return {"success": True, "data": job.model_dump(mode="json")}

    @app.get("/api/stats")
    def stats(store: JobStore = Depends(get_store)):
        """Counts by source and location plus the latest run logs."""
        return {"success": True, "data": store.stats().model_dump(mode="json")}

    @app.post("/api/scrape")
    async def scrape(pipeline: HarvestPipeline = Depends(get_pipeline)):
        """Trigger a harvest now and wait for its result."""
        result = await pipeline.invoke()
        return {"success": result.success, "data": result.model_dump(mode="json")}

    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn."""
    settings = Settings()
    configure_logging(settings.log_level)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
