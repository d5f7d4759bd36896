from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from core.config import Settings, SourceConfig
from schemas import CanonicalPosting
from storage.memory import MemoryJobStore

LISTING_URL = "https://jobs.example.com/offres"

# Five postings; the fourth has an empty title and must be dropped.
SAMPLE_LISTING = """
<!DOCTYPE html>
<html>
<body>
<div id="results">
  <div class="offer">
    <h2>Développeur Python</h2>
    <span class="company">Acme Tunisie</span>
    <span class="location">Tunis</span>
    <p class="description">Build and run data pipelines.</p>
  </div>
  <div class="offer">
    <h3>Ingénieur QA</h3>
    <span class="employer">Qualitas</span>
    <span class="city">Sousse</span>
    <p>Own the test strategy.</p>
  </div>
  <article class="job-card">
    <div class="job-title">Chef de projet</div>
    <div class="company">Gestia</div>
  </article>
  <div class="offer">
    <h2>   </h2>
    <span class="company">Ghost Corp</span>
  </div>
  <div class="job-item">
    <h2>Data Analyst</h2>
    <span class="company">Numeria</span>
    <span class="location">Sfax</span>
  </div>
</div>
</body>
</html>
"""


def listing_source(
    source_id: str = "tanitjob",
    url: str = LISTING_URL,
    **overrides,
) -> SourceConfig:
    data = {
        "source_id": source_id,
        "source_type": "html_listing",
        "url": url,
        "item_selector": "div.job-item, article.job-card, div.offer",
        "fields": {
            "title": ["h2", "h3", ".job-title"],
            "company": [".company", ".employer"],
            "location": [".location", ".city"],
            "description": [".description", "p"],
        },
    }
    data.update(overrides)
    return SourceConfig(**data)


def static_source(source_id: str = "linkedin", count: int = 3) -> SourceConfig:
    return SourceConfig(
        source_id=source_id,
        source_type="static",
        url=f"https://{source_id}.example.com/jobs",
        seed=[
            {
                "title": f"Role {i}",
                "company": f"Company {i}",
                "location": "Tunis",
                "salary": "2000-3000 TND",
                "source_url": f"https://{source_id}.example.com/jobs/view/{i}",
            }
            for i in range(count)
        ],
    )


def make_posting(**overrides) -> CanonicalPosting:
    data = {
        "title": "Backend Engineer",
        "company": "Acme",
        "location": "Tunis",
        "description": "Python services",
        "job_type": "CDI",
        "source": "tanitjob",
        "source_url": "https://example.com/x",
    }
    data.update(overrides)
    return CanonicalPosting(**data)


def html_transport(
    pages: dict[str, str | Exception | int],
    calls: list[str] | None = None,
) -> httpx.MockTransport:
    """Serve canned pages by URL; an exception is raised, an int is a status."""

    def handler(request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        if calls is not None:
            calls.append(url)
        page = pages.get(url, 404)
        if isinstance(page, Exception):
            raise page
        if isinstance(page, int):
            return httpx.Response(page, request=request)
        return httpx.Response(
            200,
            text=page,
            headers={"content-type": "text/html; charset=utf-8"},
            request=request,
        )

    return httpx.MockTransport(handler)


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        schedule_enabled=False,
        harvest_on_startup=False,
    )


@pytest.fixture()
def store() -> MemoryJobStore:
    return MemoryJobStore()


@pytest.fixture()
def posting_factory() -> Callable[..., CanonicalPosting]:
    return make_posting
