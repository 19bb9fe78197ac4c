"""Listing service - apply lifecycle decisions to the catalog.

The lifecycle module decides; this module loads the listing, writes the
result with a status-conditional update, and sends owner notifications.
"""

from datetime import date
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from src.models.listing import Listing
from src.services import listing_lifecycle as lifecycle
from src.services import supabase_client as store
from src.services.coordinate_resolver import CoordinateResolver, get_coordinate_resolver
from src.services.free_period_policy import FreePeriodPolicySource, get_policy_source
from src.services.notifications import notify_owner
from src.utils.errors import ListingNotFoundError, ListingValidationError, validation_messages
from src.utils.logging import get_structured_logger, mask_owner

logger = get_structured_logger(__name__)

# Edits to these fields move the sale, so coordinates are resolved again
LOCATION_FIELDS = frozenset({"address", "suburb", "postcode", "state"})


def _today() -> date:
    return date.today()


def _changed_fields(before: Listing, after: Listing) -> dict:
    old = before.model_dump(mode="json")
    new = after.model_dump(mode="json")
    return {k: v for k, v in new.items() if old.get(k) != v}


async def load_listing(listing_id: str) -> Listing:
    row = await store.get_listing_by_id(listing_id)
    if row is None:
        raise ListingNotFoundError(f"Listing not found: {listing_id}")
    try:
        return Listing.model_validate(row)
    except ValidationError as e:
        logger.error("Stored listing is unreadable", listing_id=listing_id, errors=validation_messages(e))
        raise ListingValidationError(
            [f"Stored listing {listing_id} could not be read", *validation_messages(e)]
        ) from e


async def _locate(data: Mapping[str, Any], resolver: CoordinateResolver) -> dict:
    """Fill missing coordinates from the address; unresolved stays null."""
    fields = dict(data)
    if fields.get("latitude") is not None and fields.get("longitude") is not None:
        return fields

    coordinates = await resolver.resolve(fields.get("address"))
    if coordinates is None:
        logger.warning("Listing address could not be geocoded, saving without coordinates",
                       address_present=bool(fields.get("address")))
        fields["latitude"] = None
        fields["longitude"] = None
    else:
        fields["latitude"] = coordinates.latitude
        fields["longitude"] = coordinates.longitude
    return fields


async def _store_result(before: Listing, result: lifecycle.TransitionResult) -> Listing:
    if not result.changed:
        return result.listing

    updates = _changed_fields(before, result.listing)
    row = await store.update_listing(
        result.listing.id,
        updates,
        expected_status=result.previous_status.value,
    )
    return Listing.model_validate(row)


async def submit_listing(
    data: Mapping[str, Any],
    owner: str,
    publish: bool,
    payment_confirmed: bool = False,
    resolver: Optional[CoordinateResolver] = None,
    policy_source: Optional[FreePeriodPolicySource] = None,
) -> Listing:
    """Create a listing: validate, geocode, price, and store it."""
    resolver = resolver or get_coordinate_resolver()
    policy_source = policy_source or get_policy_source()

    # Validate before any I/O so bad input never reaches the geocoder
    lifecycle.validate_listing_fields(data)

    policy = await policy_source.load() if publish else None
    fields = await _locate(data, resolver)
    fields["created_by"] = owner

    listing = lifecycle.new_listing(fields, publish=publish, policy=policy,
                                    payment_confirmed=payment_confirmed)
    row = await store.create_listing(listing.to_record())

    logger.info(
        "Listing created",
        listing_id=row.get("id"),
        status=listing.status.value,
        payment_status=listing.payment_status.value,
        is_free_listing=listing.is_free_listing,
        owner=mask_owner(owner)
    )
    return Listing.model_validate(row)


async def publish_draft(listing_id: str, policy_source: Optional[FreePeriodPolicySource] = None) -> Listing:
    """Publish a saved draft; it goes active only inside a free period."""
    policy_source = policy_source or get_policy_source()
    listing = await load_listing(listing_id)
    policy = await policy_source.load()
    return await _store_result(listing, lifecycle.publish_draft(listing, policy))


async def confirm_payment(listing_id: str) -> Listing:
    """Payment gateway reported a completed checkout for this listing."""
    listing = await load_listing(listing_id)
    return await _store_result(listing, lifecycle.confirm_payment(listing))


async def _moderate(
    before: Listing,
    result: lifecycle.TransitionResult,
    reason: Optional[str] = None,
) -> Listing:
    stored = await _store_result(before, result)
    if result.notification:
        await notify_owner(stored.created_by, stored.id, stored.title, result.notification, reason=reason)
    return stored


async def approve_listing(listing_id: str) -> Listing:
    listing = await load_listing(listing_id)
    return await _moderate(listing, lifecycle.approve(listing))


async def reject_listing(listing_id: str, reason: str) -> Listing:
    listing = await load_listing(listing_id)
    result = lifecycle.reject(listing, reason)
    return await _moderate(listing, result, reason=result.listing.rejection_reason)


async def grant_free_listing(listing_id: str) -> Listing:
    listing = await load_listing(listing_id)
    return await _store_result(listing, lifecycle.grant_free(listing))


async def edit_listing(
    listing_id: str,
    changes: Mapping[str, Any],
    today: Optional[date] = None,
    resolver: Optional[CoordinateResolver] = None,
) -> Listing:
    """Apply owner edits; the write only lands if the status is unchanged."""
    listing = await load_listing(listing_id)
    edited = lifecycle.apply_edit(listing, changes, today or _today())

    moved = "latitude" not in changes and any(
        changes[name] != getattr(listing, name) for name in set(changes) & LOCATION_FIELDS
    )
    if moved:
        located = await _locate(
            {**edited.model_dump(), "latitude": None, "longitude": None},
            resolver or get_coordinate_resolver(),
        )
        edited = edited.model_copy(update={
            "latitude": located["latitude"],
            "longitude": located["longitude"],
        })

    updates = _changed_fields(listing, edited)
    if not updates:
        return listing

    row = await store.update_listing(listing_id, updates, expected_status=listing.status.value)
    return Listing.model_validate(row)


async def delete_listing(listing_id: str) -> None:
    """Delete a non-terminal listing."""
    listing = await load_listing(listing_id)
    lifecycle.ensure_deletable(listing)
    await store.delete_listing(listing_id, expected_status=listing.status.value)
    logger.info("Listing deleted", listing_id=listing_id, status=listing.status.value)
