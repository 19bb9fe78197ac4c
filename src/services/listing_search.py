"""Listing search - resolve a location, then filter the catalog by date, eligibility and distance."""

from datetime import date
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field

from src.models.location import Coordinates
from src.services import supabase_client as store
from src.services.coordinate_resolver import CoordinateResolver, get_coordinate_resolver
from src.services.distance_filter import filter_by_distance
from src.services.listing_lifecycle import is_discoverable
from src.services.temporal_filter import filter_current
from src.utils.config import EngineConfig
from src.utils.logging import get_structured_logger, log_timing

logger = get_structured_logger(__name__)


class SearchResult(BaseModel):
    """Filtered catalog rows plus how the search was interpreted."""
    listings: list[dict] = Field(default_factory=list)
    origin: Optional[Coordinates] = None
    radius_km: Optional[float] = None
    location_resolved: bool = False


def filter_listings(
    listings: Iterable[Any],
    reference_date: date,
    origin: Optional[Coordinates] = None,
    radius_km: Optional[float] = None,
    include_past: bool = False,
) -> list:
    """
    Apply the search filters in order: temporal validity, public
    eligibility, then distance.

    include_past is the administrative view: every status and every date
    is kept and only the distance filter applies.
    """
    candidates = filter_current(listings, reference_date, include_past=include_past)

    if not include_past:
        candidates = [listing for listing in candidates if is_discoverable(listing, reference_date)]

    if origin is not None and radius_km is not None:
        candidates = filter_by_distance(candidates, origin, radius_km)

    return candidates


async def search_listings(
    location: Optional[str] = None,
    radius_km: Optional[float] = None,
    include_past: bool = False,
    reference_date: Optional[date] = None,
    postcode: Optional[str] = None,
    created_by: Optional[str] = None,
    status: Optional[str] = None,
    resolver: Optional[CoordinateResolver] = None,
) -> SearchResult:
    """
    Search the catalog around a suburb or postcode.

    A location that cannot be resolved does not fail the search; the
    results are returned without distance filtering.
    """
    resolver = resolver or get_coordinate_resolver()
    reference_date = reference_date or date.today()

    origin = None
    if location:
        origin = await resolver.resolve(location)
        if origin is None:
            logger.info("Search location unresolved, skipping distance filter", location=location)

    if origin is not None and radius_km is None:
        radius_km = EngineConfig.DEFAULT_SEARCH_RADIUS_KM

    with log_timing("listing_search", logger=logger, include_past=include_past):
        rows = await store.list_listings(status=status, created_by=created_by, postcode=postcode)
        listings = filter_listings(
            rows,
            reference_date,
            origin=origin,
            radius_km=radius_km,
            include_past=include_past,
        )

    logger.info(
        "Search completed",
        candidates=len(rows),
        results=len(listings),
        location_resolved=origin is not None,
        radius_km=radius_km
    )
    return SearchResult(
        listings=listings,
        origin=origin,
        radius_km=radius_km if origin is not None else None,
        location_resolved=origin is not None,
    )
