"""Pure functions that turn raw extracted fields into canonical postings."""

from __future__ import annotations

import re
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urljoin

from core.config import SourceConfig
from core.ids import slug_url
from schemas import UNSPECIFIED_LOCATION, CanonicalPosting

DEFAULT_DESCRIPTION_MAX_LENGTH = 500


def clean_text(text: Any) -> str:
    """Collapse whitespace and remove null bytes."""
    if text is None:
        return ""
    text = str(text).replace("\x00", "")
    return re.sub(r"\s+", " ", text).strip()


def truncate(text: str, max_length: int) -> str:
    """Cut text to at most ``max_length`` characters."""
    return text[:max_length]


def build_source_url(source: SourceConfig, title: str, link: str = "") -> str:
    """The posting's own link when known, else a slug of its title."""
    if link:
        return urljoin(source.url, link)
    return slug_url(source.url, title)


def normalize_posting(
    raw: Mapping[str, Any],
    source: SourceConfig,
    *,
    description_max_length: int = DEFAULT_DESCRIPTION_MAX_LENGTH,
    harvested_at: datetime | None = None,
) -> CanonicalPosting | None:
    """Build a CanonicalPosting from raw fields.

    Returns None when the title or the company is missing; such postings
    are not errors, they are simply not accepted.
    """
    title = clean_text(raw.get("title"))
    company = clean_text(raw.get("company"))
    if not title or not company:
        return None

    harvested_at = harvested_at or datetime.now(timezone.utc)
    link = clean_text(raw.get("source_url") or raw.get("link"))

    return CanonicalPosting(
        title=title,
        company=company,
        location=clean_text(raw.get("location")) or UNSPECIFIED_LOCATION,
        description=truncate(clean_text(raw.get("description")), description_max_length),
        salary=clean_text(raw.get("salary")),
        job_type=clean_text(raw.get("job_type")) or source.job_type,
        category=clean_text(raw.get("category")) or None,
        source=source.source_id,
        source_url=build_source_url(source, title, link),
        posted_date=clean_text(raw.get("posted_date")) or harvested_at.isoformat(),
    )
