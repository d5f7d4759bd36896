from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from conftest import make_posting, static_source
from fastapi.testclient import TestClient
from structlog.testing import capture_logs

from app.main import background_harvest, build_scheduler, create_app, scheduled_harvest
from core.config import SourcesConfig
from orchestration.runner import HarvestPipeline
from schemas import RunLog, StoredJobRecord
from storage.base import StoreError
from storage.memory import MemoryJobStore

T0 = datetime(2026, 5, 4, 8, 0, tzinfo=timezone.utc)


def seed(store: MemoryJobStore) -> list[StoredJobRecord]:
    rows = [
        ("Python Developer", "Tunis", "tanitjob", True),
        ("QA Engineer", "Sousse", "keejob", True),
        ("Data Engineer", "Tunis", "keejob", True),
        ("Retired Role", "Tunis", "keejob", False),
    ]
    records = []
    for n, (title, location, source, active) in enumerate(rows):
        posting = make_posting(
            title=title,
            location=location,
            source=source,
            description="",
            source_url=f"https://example.com/{n}",
        )
        record = StoredJobRecord.from_posting(posting, T0 + timedelta(hours=n))
        record = record.model_copy(update={"is_active": active})
        store.upsert(record)
        records.append(record)
    store.append_run_log(RunLog(source="keejob", jobs_scraped=3, jobs_added=3))
    return records


@pytest.fixture()
def client_factory(settings):
    def build(store, pipeline=None):
        pipeline = pipeline or HarvestPipeline([], store)
        app = create_app(settings, store=store, pipeline=pipeline)
        return TestClient(app)

    return build


def test_health(client_factory, store) -> None:
    with client_factory(store) as client:
        response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"success": True, "status": "healthy"}


def test_list_jobs_newest_first_and_active_only(client_factory, store) -> None:
    seed(store)
    with client_factory(store) as client:
        body = client.get("/api/jobs").json()

    assert body["success"] is True
    assert [job["title"] for job in body["data"]] == [
        "Data Engineer",
        "QA Engineer",
        "Python Developer",
    ]
    assert body["pagination"] == {"total": 3, "page": 1, "limit": 20, "pages": 1}


def test_list_jobs_filters(client_factory, store) -> None:
    seed(store)
    with client_factory(store) as client:
        by_search = client.get("/api/jobs", params={"search": "engineer"}).json()
        by_location = client.get("/api/jobs", params={"location": "tunis"}).json()
        by_source = client.get("/api/jobs", params={"source": "tanitjob"}).json()
        paged = client.get("/api/jobs", params={"page": 2, "limit": 2}).json()

    assert {job["title"] for job in by_search["data"]} == {"QA Engineer", "Data Engineer"}
    assert by_location["pagination"]["total"] == 2
    assert [job["title"] for job in by_source["data"]] == ["Python Developer"]
    assert [job["title"] for job in paged["data"]] == ["Python Developer"]
    assert paged["pagination"]["pages"] == 2


def test_list_jobs_rejects_bad_paging(client_factory, store) -> None:
    with client_factory(store) as client:
        assert client.get("/api/jobs", params={"limit": 500}).status_code == 422
        assert client.get("/api/jobs", params={"page": 0}).status_code == 422


def test_get_job_and_not_found(client_factory, store) -> None:
    records = seed(store)
    with client_factory(store) as client:
        found = client.get(f"/api/jobs/{records[0].id}")
        missing = client.get("/api/jobs/does-not-exist")

    assert found.status_code == 200
    assert found.json()["data"]["source_url"] == "https://example.com/0"
    assert missing.status_code == 404
    assert missing.json() == {"success": False, "error": "Job not found"}


def test_stats(client_factory, store) -> None:
    seed(store)
    with client_factory(store) as client:
        data = client.get("/api/stats").json()["data"]

    assert data["total_jobs"] == 3
    assert data["jobs_by_source"] == [
        {"key": "keejob", "count": 2},
        {"key": "tanitjob", "count": 1},
    ]
    assert data["jobs_by_location"][0] == {"key": "Tunis", "count": 2}
    assert [log["source"] for log in data["recent_logs"]] == ["keejob"]


def test_scrape_runs_the_pipeline(client_factory, store, settings) -> None:
    pipeline = HarvestPipeline.from_config(
        store, settings, SourcesConfig(sources=[static_source("linkedin", count=2)])
    )
    with client_factory(store, pipeline) as client:
        response = client.post("/api/scrape")
        listed = client.get("/api/jobs").json()

    body = response.json()
    assert response.status_code == 200
    assert body["success"] is True
    assert body["data"]["total_jobs"] == 2
    assert body["data"]["per_source_stats"]["linkedin"]["added"] == 2
    assert listed["pagination"]["total"] == 2


def test_store_errors_become_500(client_factory) -> None:
    class DownStore(MemoryJobStore):
        def list_jobs(self, query):
            raise StoreError("database is locked")

    with client_factory(DownStore()) as client:
        response = client.get("/api/jobs")

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "database is locked"}


def test_scrape_reports_a_crashed_run(client_factory, store, settings, monkeypatch) -> None:
    def exploding_reconcile(*args, **kwargs):
        raise RuntimeError("disk full")

    monkeypatch.setattr("orchestration.runner.reconcile_all", exploding_reconcile)
    pipeline = HarvestPipeline.from_config(
        store, settings, SourcesConfig(sources=[static_source("linkedin", count=1)])
    )
    with client_factory(store, pipeline) as client:
        response = client.post("/api/scrape")

    assert response.status_code == 200
    assert response.json()["success"] is False
    assert response.json()["data"]["error"] == "RuntimeError: disk full"


class RaisingPipeline:
    async def invoke(self):
        raise RuntimeError("pipeline exploded")


class StalledPipeline:
    async def invoke(self):
        await asyncio.Event().wait()


def test_background_harvest_logs_instead_of_raising() -> None:
    with capture_logs() as logs:
        result = asyncio.run(background_harvest(RaisingPipeline(), "startup"))

    assert result is None
    (raised,) = [log for log in logs if log["event"] == "Background harvest raised"]
    assert raised["trigger"] == "startup"
    assert raised["error"] == "pipeline exploded"
    assert raised["log_level"] == "error"


def test_background_harvest_logs_failed_runs(store) -> None:
    class NotAnAdapter:
        source_id = "broken"

    pipeline = HarvestPipeline([NotAnAdapter()], store)
    with capture_logs() as logs:
        asyncio.run(scheduled_harvest(pipeline))

    (failed,) = [log for log in logs if log["event"] == "Background harvest failed"]
    assert failed["trigger"] == "schedule"
    assert failed["error"].startswith("collection could not start")


def test_shutdown_cancels_a_stalled_startup_harvest(store, settings) -> None:
    startup_settings = settings.model_copy(update={"harvest_on_startup": True})
    app = create_app(startup_settings, store=store, pipeline=StalledPipeline())

    with capture_logs() as logs:
        with TestClient(app) as client:
            assert client.get("/api/health").status_code == 200

    events = [log["event"] for log in logs]
    assert "Cancelling startup harvest still in progress" in events


def test_scheduler_runs_harvest_on_an_interval(store) -> None:
    pipeline = HarvestPipeline([], store)
    scheduler = build_scheduler(pipeline, 15)

    job = scheduler.get_job("harvest")
    assert job is not None
    assert job.func is scheduled_harvest
    assert tuple(job.args) == (pipeline,)
    assert job.trigger.interval == timedelta(minutes=15)
    assert job.max_instances == 1
    assert job.coalesce is True
