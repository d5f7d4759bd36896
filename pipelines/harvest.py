"""One-shot harvest from the command line."""

import argparse
import json
import sys
from pathlib import Path

import structlog

from core.config import ConfigValidationError, Settings, load_config
from core.logging import configure_logging
from orchestration.runner import run_harvest
from storage.sql import SqlJobStore

logger = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="joblink-harvest",
        description="Harvest all configured job sources once and store the results.",
    )
    parser.add_argument(
        "--sources",
        type=Path,
        default=None,
        help="Path to sources YAML (default: JOBLINK_SOURCES_PATH or config/sources.yaml)",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy database URL (default: JOBLINK_DATABASE_URL)",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Entry point for the harvest command."""
    args = build_parser().parse_args(argv)

    settings = Settings()
    if args.database_url:
        settings.database_url = args.database_url
    configure_logging(settings.log_level)

    try:
        settings, sources = load_config(args.sources, settings)
    except ConfigValidationError as e:
        logger.error("Configuration error", error=str(e), errors=e.errors)
        return 1

    if not sources.enabled:
        logger.warning(
            "No enabled sources configured",
            sources_path=str(args.sources or settings.sources_path),
        )

    store = SqlJobStore(settings.database_url)
    try:
        result = run_harvest(store, settings, sources)
    finally:
        store.close()

    print(json.dumps(result.model_dump(mode="json"), indent=2))
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
