"""Adapter for server-rendered listing pages."""

from __future__ import annotations

from collectors.adapters.base import AdapterError, SourceAdapter
from collectors.extraction import extract_fields, parse_document, select_items
from collectors.http_client import FetchResult, HttpClient
from schemas import CanonicalPosting


class HtmlListingAdapter(SourceAdapter):
    """Fetch one listing page and read postings out of its item containers."""

    source_type = "html_listing"

    async def fetch(self) -> FetchResult:
        async with HttpClient(
            timeout=self.timeout,
            max_retries=self.settings.max_retries,
            user_agent=self.settings.user_agent,
            transport=self.transport,
        ) as client:
            result = await client.fetch(self.config.url)

        if not result.success:
            raise AdapterError(f"fetch {self.config.url} failed: {result.error}")
        return result

    def extract(self, document: FetchResult) -> list[CanonicalPosting]:
        soup = parse_document(document.content, document.encoding)
        items = select_items(soup, self.config.item_selector or "")
        raw_items = [extract_fields(item, self.config.fields) for item in items]
        return self._build_postings(raw_items)
