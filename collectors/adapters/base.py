"""Base source adapter: fetch a listing, extract canonical postings."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from typing import Any

import httpx
import structlog

from collectors.normalize import normalize_posting
from core.config import Settings, SourceConfig
from schemas import CanonicalPosting

logger = structlog.get_logger()


class AdapterError(Exception):
    """Raised inside an adapter when its source cannot be fetched or parsed."""


class SourceAdapter(ABC):
    """Abstract adapter for one listing source.

    Subclasses provide ``fetch`` and ``extract``; ``harvest`` ties them
    together and is the only method the coordinator calls. Each call does a
    fresh fetch.
    """

    source_type: str = "base"

    def __init__(
        self,
        config: SourceConfig,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self.settings = settings or Settings()
        self.transport = transport

    @property
    def source_id(self) -> str:
        return self.config.source_id

    @property
    def timeout(self) -> float:
        return self.config.timeout_seconds or self.settings.default_timeout

    @abstractmethod
    async def fetch(self) -> Any:
        """Retrieve the source document. Raise AdapterError on failure."""

    @abstractmethod
    def extract(self, document: Any) -> list[CanonicalPosting]:
        """Turn a fetched document into accepted canonical postings."""

    async def harvest(self) -> list[CanonicalPosting]:
        """Fetch and extract, absorbing any failure into an empty result."""
        log = logger.bind(source=self.source_id)
        try:
            document = await self.fetch()
            postings = self.extract(document)
        except Exception as e:
            log.warning("Harvest failed", error=str(e), error_type=type(e).__name__)
            return []

        log.info("Harvest complete", postings=len(postings))
        return postings

    def _build_postings(
        self, raw_items: Iterable[Mapping[str, Any]]
    ) -> list[CanonicalPosting]:
        """Normalize raw items, silently dropping unacceptable ones."""
        harvested_at = datetime.now(timezone.utc)
        postings: list[CanonicalPosting] = []
        dropped = 0

        for raw in raw_items:
            posting = normalize_posting(
                raw,
                self.config,
                description_max_length=self.settings.description_max_length,
                harvested_at=harvested_at,
            )
            if posting is None:
                dropped += 1
                continue
            postings.append(posting)

        if dropped:
            logger.debug(
                "Dropped postings without title or company",
                source=self.source_id,
                dropped=dropped,
            )
        return postings
