"""Temporal validity filtering - hide sales whose last day has passed."""

from datetime import date
from typing import Any, Iterable

from src.models.listing import listing_field
from src.utils.dates import end_of_day, start_of_day, to_calendar_date
from src.utils.errors import InvalidDateError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


def is_current(listing: Any, reference_date: date) -> bool:
    """
    Decide whether a listing is still current on reference_date.

    The end date counts through 23:59:59.999 of its own day and is compared
    against the start of the reference day. Missing or unparseable end
    dates fail open (the listing stays visible) and are logged.
    """
    raw_end = listing_field(listing, "end_date")
    if raw_end is None:
        logger.warning(
            "Listing missing end_date, treating as current",
            listing_id=listing_field(listing, "id")
        )
        return True

    try:
        end_date = to_calendar_date(raw_end)
    except InvalidDateError as e:
        logger.warning(
            "Listing end_date could not be parsed, treating as current",
            listing_id=listing_field(listing, "id"),
            raw_end_date=repr(raw_end),
            error=str(e)
        )
        return True

    return end_of_day(end_date) >= start_of_day(reference_date)


def filter_current(listings: Iterable[Any], reference_date: date, include_past: bool = False) -> list:
    """Keep current listings; include_past returns everything (admin views)."""
    if include_past:
        return list(listings)

    kept = []
    for listing in listings:
        if is_current(listing, reference_date):
            kept.append(listing)
        else:
            logger.debug(
                "Excluding past listing",
                listing_id=listing_field(listing, "id"),
                reference_date=reference_date.isoformat()
            )
    return kept
