"""Adapter registry for the supported source types.

- html_listing: server-rendered listing pages read with CSS selectors
- static: fixed seed data for sources that cannot be fetched live
"""

from __future__ import annotations

import httpx

from collectors.adapters.base import AdapterError, SourceAdapter
from collectors.adapters.html_listing import HtmlListingAdapter
from collectors.adapters.static import StaticAdapter
from core.config import Settings, SourceConfig, SourcesConfig

ADAPTER_REGISTRY: dict[str, type[SourceAdapter]] = {
    "html_listing": HtmlListingAdapter,
    "static": StaticAdapter,
}


def get_adapter(
    config: SourceConfig,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SourceAdapter | None:
    """Get an adapter instance for the given source config."""
    adapter_cls = ADAPTER_REGISTRY.get(config.source_type)
    if adapter_cls is None:
        return None
    return adapter_cls(config, settings=settings, transport=transport)


def build_adapters(
    sources: SourcesConfig,
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> list[SourceAdapter]:
    """One adapter per enabled source, in configuration order."""
    adapters = []
    for config in sources.enabled:
        adapter = get_adapter(config, settings=settings, transport=transport)
        if adapter is not None:
            adapters.append(adapter)
    return adapters


__all__ = [
    "ADAPTER_REGISTRY",
    "AdapterError",
    "HtmlListingAdapter",
    "SourceAdapter",
    "StaticAdapter",
    "build_adapters",
    "get_adapter",
]
