"""Expiry sweep - complete active listings whose sale has ended."""

from datetime import date
from typing import Optional

from pydantic import ValidationError

from src.models.listing import Listing, ListingStatus
from src.services import listing_lifecycle as lifecycle
from src.services import supabase_client as store
from src.utils.errors import ConflictingTransitionError, ListingNotFoundError, validation_messages
from src.utils.logging import get_structured_logger, timed

logger = get_structured_logger(__name__)


def _parse_rows(rows: list[dict]) -> list[Listing]:
    listings = []
    for row in rows:
        try:
            listings.append(Listing.model_validate(row))
        except ValidationError as e:
            logger.warning("Skipping unreadable listing", listing_id=row.get("id"),
                           errors=validation_messages(e))
    return listings


@timed("expiry_sweep")
async def run_expiry_sweep(today: Optional[date] = None) -> int:
    """
    Move expired active listings to completed.

    Each write is conditional on the listing still being active, so a
    listing changed concurrently is skipped rather than overwritten.
    Returns the number of listings completed.
    """
    today = today or date.today()
    rows = await store.list_listings(status=ListingStatus.ACTIVE.value)
    expired = lifecycle.find_expired(_parse_rows(rows), today)

    completed = 0
    for listing in expired:
        log = logger.bind(listing_id=listing.id, end_date=listing.end_date.isoformat())
        updated = lifecycle.expire(listing, today)
        try:
            await store.update_listing(
                listing.id,
                {"status": updated.status.value},
                expected_status=ListingStatus.ACTIVE.value,
            )
        except ConflictingTransitionError as e:
            log.info("Listing changed during sweep, skipping", actual_status=e.actual)
            continue
        except ListingNotFoundError:
            log.info("Listing deleted during sweep, skipping")
            continue
        log.info("Listing completed by sweep")
        completed += 1

    logger.info("Expiry sweep finished", scanned=len(rows), expired=len(expired), completed=completed)
    return completed
