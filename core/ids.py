"""ID generation and slug utilities."""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone


def generate_run_id() -> str:
    """Generate a unique run ID.

    Format: YYYYMMDD_HHMMSS_<short_uuid>
    """
    now = datetime.now(timezone.utc)
    short_uuid = uuid.uuid4().hex[:8]
    return f"{now.strftime('%Y%m%d_%H%M%S')}_{short_uuid}"


def generate_posting_id() -> str:
    """Generate a fresh identifier for a canonical posting."""
    return str(uuid.uuid4())


def slugify(text: str) -> str:
    """Lowercase text and replace whitespace runs with hyphens.

    Punctuation is kept so that the slug stays a deterministic function of
    the title alone.
    """
    return re.sub(r"\s+", "-", text.strip()).lower()


def slug_url(base_url: str, title: str) -> str:
    """Build a fallback source URL from a listing URL and a posting title."""
    return f"{base_url.rstrip('/')}/{slugify(title)}"
