"""Location models."""

from pydantic import BaseModel, Field


class Coordinates(BaseModel):
    """Resolved point for a suburb, postcode or address."""
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    name: str = Field(..., description="Display name of the resolved locality")

    model_config = {"frozen": True}
