"""Job posting schemas: the canonical harvest shape and the stored record."""

from datetime import datetime
from typing import Any

from pydantic import Field, field_validator

from core.ids import generate_posting_id

from .base import BaseSchema, Timestamped

UNSPECIFIED_LOCATION = "Non spécifié"

# Fields a re-harvest overwrites on an existing record
MUTABLE_FIELDS = (
    "title",
    "company",
    "location",
    "description",
    "salary",
    "job_type",
    "posted_date",
    "category",
)


class CanonicalPosting(BaseSchema):
    """A normalized, source-tagged job posting produced by an adapter."""

    id: str = Field(default_factory=generate_posting_id)
    title: str = Field(..., min_length=1, description="Job title")
    company: str = Field(..., min_length=1, description="Hiring company")
    location: str = Field(default=UNSPECIFIED_LOCATION)
    description: str = ""
    salary: str = ""
    job_type: str = ""
    category: str | None = None
    source: str = Field(..., description="Source tag of the producing adapter")
    source_url: str = Field(..., min_length=1, description="Reconciliation key")
    posted_date: str | None = Field(None, description="ISO timestamp if known")

    @field_validator("description", mode="plain")
    @classmethod
    def _description_verbatim(cls, v: Any) -> str:
        # Already cleaned and cut to a fixed length; stripping here would shorten it
        if v is None:
            return ""
        if not isinstance(v, str):
            raise ValueError("description must be a string")
        return v


class StoredJobRecord(CanonicalPosting, Timestamped):
    """A persisted job posting."""

    scraped_date: datetime = Field(..., description="Last harvest time")
    is_active: bool = True

    @classmethod
    def from_posting(cls, posting: CanonicalPosting, now: datetime) -> "StoredJobRecord":
        """Build a brand-new record for a first-seen posting."""
        return cls(
            **posting.model_dump(),
            scraped_date=now,
            is_active=True,
            created_at=now,
            updated_at=now,
        )

    def refreshed(self, posting: CanonicalPosting, now: datetime) -> "StoredJobRecord":
        """Return a copy overwritten with a re-harvested posting.

        Identity (``id``, ``source_url``, ``source``), ``created_at`` and
        ``is_active`` are kept from this record.
        """
        changes = {name: getattr(posting, name) for name in MUTABLE_FIELDS}
        changes.update(scraped_date=now, updated_at=now)
        return self.model_copy(update=changes)
