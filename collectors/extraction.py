"""Selector-driven field extraction from listing pages.

Each semantic field is declared as an ordered list of selector strategies.
Strategies are tried in order and the first one that yields non-empty text
wins, so a source's extraction rules live in configuration rather than in
ad hoc fallback code.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from bs4 import BeautifulSoup, Tag

from collectors.normalize import clean_text
from core.config import SelectorStrategy


def parse_document(html: str | bytes, encoding: str | None = None) -> BeautifulSoup:
    """Parse a fetched page.

    Raw bytes are decoded by the parser: ``encoding`` (the charset the server
    declared) wins, otherwise the document's own meta charset or detection.
    """
    if isinstance(html, bytes):
        return BeautifulSoup(html, "lxml", from_encoding=encoding)
    return BeautifulSoup(html, "lxml")


def select_items(soup: BeautifulSoup, item_selector: str) -> list[Tag]:
    """Return the listing item containers, in page order."""
    return soup.select(item_selector)


def _read(element: Tag, strategy: SelectorStrategy) -> str:
    if strategy.attr is None:
        return clean_text(element.get_text(" ", strip=True))
    value = element.get(strategy.attr)
    if isinstance(value, list):
        value = " ".join(value)
    return clean_text(value or "")


def resolve_field(item: Tag, strategies: Sequence[SelectorStrategy]) -> str:
    """Apply strategies in order; return the first non-empty value or ''."""
    for strategy in strategies:
        for element in item.select(strategy.css):
            value = _read(element, strategy)
            if value:
                return value
    return ""


def extract_fields(
    item: Tag,
    fields: Mapping[str, Sequence[SelectorStrategy]],
) -> dict[str, str]:
    """Resolve every declared field of one listing item."""
    return {name: resolve_field(item, strategies) for name, strategies in fields.items()}
