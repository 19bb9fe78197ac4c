"""Listing models."""

from enum import Enum
from typing import Any, Optional
from datetime import date
from pydantic import BaseModel, Field, field_validator

from src.utils.dates import to_calendar_date


class ListingStatus(str, Enum):
    """Listing lifecycle states."""
    DRAFT = "draft"
    PENDING_APPROVAL = "pending_approval"
    ACTIVE = "active"
    REJECTED = "rejected"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    """Listing payment states."""
    PENDING = "pending"
    PAID = "paid"
    FREE = "free"
    COMPLETED = "completed"


TERMINAL_STATUSES = frozenset({ListingStatus.REJECTED, ListingStatus.COMPLETED})

# Fields that describe when the sale happens; only editable while draft
SCHEDULE_FIELDS = frozenset({"start_date", "end_date", "start_time", "end_time"})

# Fields owned by the lifecycle, never set through an edit
LIFECYCLE_FIELDS = frozenset({
    "id",
    "status",
    "payment_status",
    "is_free_listing",
    "rejection_reason",
    "created_by",
    "created_at",
    "payment_completed_at",
})


class Listing(BaseModel):
    """Garage sale listing."""
    id: Optional[str] = Field(None, description="Listing ID (ULID, assigned on insert)")
    title: str = Field(default="", description="Sale title")
    description: Optional[str] = Field(None, description="Sale description")
    address: str = Field(default="", description="Street address")
    suburb: Optional[str] = Field(None, description="Suburb")
    postcode: Optional[str] = Field(None, description="Postcode")
    state: Optional[str] = Field(None, description="State or territory")
    latitude: Optional[float] = Field(None, ge=-90, le=90, description="Latitude (null until geocoded)")
    longitude: Optional[float] = Field(None, ge=-180, le=180, description="Longitude (null until geocoded)")
    start_date: Optional[date] = Field(None, description="First day of the sale")
    end_date: Optional[date] = Field(None, description="Last day of the sale")
    start_time: Optional[str] = Field(None, description="Opening time (display only)")
    end_time: Optional[str] = Field(None, description="Closing time (display only)")
    status: ListingStatus = Field(default=ListingStatus.DRAFT, description="Lifecycle status")
    payment_status: PaymentStatus = Field(default=PaymentStatus.PENDING, description="Payment status")
    is_free_listing: bool = Field(default=False, description="Published under a free period")
    rejection_reason: Optional[str] = Field(None, description="Reason given on rejection")
    created_by: Optional[str] = Field(None, description="Owner identity")
    photos: list[str] = Field(default_factory=list, description="Photo URLs")
    payment_completed_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _normalize_date(cls, value: Any) -> Optional[date]:
        return to_calendar_date(value)

    def to_record(self) -> dict:
        """Serialize for the catalog store (dates as ISO strings)."""
        return self.model_dump(mode="json", exclude_none=True)


def listing_field(listing: Any, name: str) -> Any:
    """Read a field from a Listing model or a raw catalog row."""
    if isinstance(listing, dict):
        return listing.get(name)
    return getattr(listing, name, None)
