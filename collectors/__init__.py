"""
Data collectors for JobLink.

Each source adapter fetches one listing site and returns canonical
postings; the collector runs them all concurrently and merges the results.
"""

from collectors.adapters import (
    AdapterError,
    HtmlListingAdapter,
    SourceAdapter,
    StaticAdapter,
    build_adapters,
)
from collectors.collector import collect

__all__ = [
    "AdapterError",
    "HtmlListingAdapter",
    "SourceAdapter",
    "StaticAdapter",
    "build_adapters",
    "collect",
]
