"""Shared model configuration for JobLink schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """Strips string fields and reads ORM rows directly."""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class Timestamped(BaseModel):
    """First-insert and last-write times of a stored record."""

    created_at: datetime
    updated_at: datetime | None = None
