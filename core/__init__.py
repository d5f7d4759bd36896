"""Core infrastructure: config, run context, logging, and utilities."""

from core.config import (
    ConfigValidationError,
    SelectorStrategy,
    Settings,
    SourceConfig,
    SourcesConfig,
    load_config,
)
from core.context import InvalidTransition, RunContext, RunStatus
from core.ids import generate_posting_id, generate_run_id, slug_url, slugify
from core.logging import configure_logging

__all__ = [
    "ConfigValidationError",
    "SelectorStrategy",
    "Settings",
    "SourceConfig",
    "SourcesConfig",
    "load_config",
    "InvalidTransition",
    "RunContext",
    "RunStatus",
    "configure_logging",
    "generate_posting_id",
    "generate_run_id",
    "slug_url",
    "slugify",
]
