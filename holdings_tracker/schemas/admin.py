# holdings_tracker/schemas/admin.py
"""
Pydantic schemas for administrative endpoints.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator


class CacheResetRequest(BaseModel):
    """
    Purge cache rows written (and sync entries checked) since an instant.

    Omitting `since` purges the last 24 hours.
    """

    since: datetime | None = Field(
        default=None,
        description="Cut-off instant (ISO 8601); naive values are read as UTC",
        examples=["2024-06-01T00:00:00Z"]
    )

    @field_validator('since')
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v


class CacheResetResponse(BaseModel):
    since: datetime
    deleted_prices: int
    deleted_rates: int
    deleted_sync_entries: int
