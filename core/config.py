"""Configuration loading and validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

FIELD_NAMES = (
    "title",
    "company",
    "location",
    "description",
    "salary",
    "posted_date",
    "link",
)


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    def __init__(self, message: str, errors: list[dict[str, Any]] | None = None):
        super().__init__(message)
        self.errors = errors or []


class SelectorStrategy(BaseModel):
    """One way of reading a field out of a listing item.

    ``css`` picks the first matching element inside the item. When ``attr``
    is set the attribute value is used instead of the element text.
    """

    css: str
    attr: str | None = None


class SourceConfig(BaseModel):
    """Configuration for a single listing source."""

    source_id: str
    source_type: Literal["html_listing", "static"] = "html_listing"
    url: str
    enabled: bool = True
    timeout_seconds: float | None = None
    job_type: str = "CDI"

    # html_listing only
    item_selector: str | None = None
    fields: dict[str, list[SelectorStrategy]] = Field(default_factory=dict)

    # static only
    seed: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("fields", mode="before")
    @classmethod
    def _coerce_strategies(cls, v: Any) -> Any:
        # YAML shorthand: a bare CSS string or a list of them
        if not isinstance(v, dict):
            return v
        coerced: dict[str, list[Any]] = {}
        for name, strategies in v.items():
            if isinstance(strategies, (str, dict)):
                strategies = [strategies]
            coerced[name] = [
                {"css": s} if isinstance(s, str) else s for s in strategies or []
            ]
        return coerced

    @field_validator("fields")
    @classmethod
    def _known_fields(
        cls, v: dict[str, list[SelectorStrategy]]
    ) -> dict[str, list[SelectorStrategy]]:
        unknown = sorted(set(v) - set(FIELD_NAMES))
        if unknown:
            raise ValueError(f"unknown fields: {', '.join(unknown)}")
        return v

    @model_validator(mode="after")
    def _listing_rules(self) -> SourceConfig:
        if self.source_type != "html_listing":
            return self
        if not self.item_selector:
            raise ValueError(f"{self.source_id}: html_listing sources need an item_selector")
        missing = [f for f in ("title", "company") if not self.fields.get(f)]
        if missing:
            raise ValueError(
                f"{self.source_id}: no selectors for required fields: {', '.join(missing)}"
            )
        return self


class SourcesConfig(BaseModel):
    """Collection of source configurations."""

    sources: list[SourceConfig] = Field(default_factory=list)

    @property
    def enabled(self) -> list[SourceConfig]:
        return [s for s in self.sources if s.enabled]


class Settings(BaseSettings):
    """Application settings from environment."""

    model_config = SettingsConfigDict(
        env_prefix="JOBLINK_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Storage
    database_url: str = "sqlite:///./data/joblink.db"

    # Sources
    sources_path: Path = Path("config/sources.yaml")

    # HTTP client defaults
    default_timeout: float = 10.0
    max_retries: int = 1
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
    )

    # Normalization
    description_max_length: int = 500

    # Scheduling
    harvest_interval_minutes: int = 60
    schedule_enabled: bool = True
    harvest_on_startup: bool = True

    # Server
    host: str = "0.0.0.0"
    port: int = 3000

    # Runtime
    log_level: str = "INFO"


def load_sources_config(path: Path) -> SourcesConfig:
    """Load sources configuration from YAML file."""
    if not path.exists():
        return SourcesConfig()

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML in {path}: {e}") from e

    try:
        return SourcesConfig(**data)
    except ValidationError as e:
        raise ConfigValidationError(
            f"Invalid sources configuration in {path}",
            errors=list(e.errors()),
        ) from e


def load_config(
    sources_path: Path | None = None,
    settings: Settings | None = None,
) -> tuple[Settings, SourcesConfig]:
    """Load all configuration.

    Returns:
        Tuple of (Settings, SourcesConfig)
    """
    settings = settings or Settings()
    sources_path = sources_path or settings.sources_path
    sources = load_sources_config(sources_path)

    return settings, sources
