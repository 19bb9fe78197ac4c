"""Free listing period model."""

from typing import Any, Literal, Optional
from datetime import date
from pydantic import BaseModel, Field, field_validator

from src.utils.dates import to_calendar_date


class FreePeriodPolicy(BaseModel):
    """Administrator-controlled window in which new listings publish for free."""
    is_active: bool = Field(default=False, description="Whether the free period is switched on")
    free_listing_start: Optional[date] = Field(None, description="First event date that qualifies")
    free_listing_end: Optional[date] = Field(None, description="Last event date that qualifies")
    updated_at: Optional[str] = None
    source: Literal["primary", "provisional"] = Field(
        default="primary",
        description="provisional when read from the local cache"
    )

    @field_validator("free_listing_start", "free_listing_end", mode="before")
    @classmethod
    def _normalize_date(cls, value: Any) -> Optional[date]:
        return to_calendar_date(value)

    @property
    def is_provisional(self) -> bool:
        return self.source == "provisional"
