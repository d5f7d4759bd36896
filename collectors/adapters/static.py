"""Adapter returning a fixed seed set, for sources that block automated clients."""

from __future__ import annotations

from typing import Any

from collectors.adapters.base import SourceAdapter
from schemas import CanonicalPosting


class StaticAdapter(SourceAdapter):
    """Serve the ``seed`` entries of the source config as harvested postings."""

    source_type = "static"

    async def fetch(self) -> list[dict[str, Any]]:
        return [dict(entry) for entry in self.config.seed]

    def extract(self, document: list[dict[str, Any]]) -> list[CanonicalPosting]:
        return self._build_postings(document)
