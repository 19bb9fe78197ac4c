"""Listing lifecycle state machine.

Every status change goes through :func:`transition`, which looks the
requested event up in ``TRANSITIONS`` and refuses anything not listed.
Functions here are pure: they return new ``Listing`` values and leave
persistence (and notifications) to ``listing_service``.

    (new) --save_draft----------> draft
    (new) --publish_paid--------> pending_approval
    (new) --publish_free--------> active
    draft --payment_confirmed---> pending_approval
    draft --publish_free--------> active
    draft --grant_free----------> active
    pending_approval --approve--> active
    pending_approval --reject---> rejected
    pending_approval --grant_free> active
    active --expire-------------> completed
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from pydantic import BaseModel, ValidationError

from src.models.free_period import FreePeriodPolicy
from src.models.listing import (
    LIFECYCLE_FIELDS,
    SCHEDULE_FIELDS,
    TERMINAL_STATUSES,
    Listing,
    ListingStatus,
    PaymentStatus,
    listing_field,
)
from src.services.free_period_policy import is_listing_free
from src.services.temporal_filter import is_current
from src.utils.config import EngineConfig
from src.utils.dates import to_calendar_date
from src.utils.errors import (
    InvalidDateError,
    InvalidTransitionError,
    ListingValidationError,
    validation_messages,
)
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


class LifecycleEvent(str, Enum):
    """Triggers that move a listing between statuses."""
    SAVE_DRAFT = "save_draft"
    PUBLISH_PAID = "publish_paid"
    PUBLISH_FREE = "publish_free"
    PAYMENT_CONFIRMED = "payment_confirmed"
    APPROVE = "approve"
    REJECT = "reject"
    GRANT_FREE = "grant_free"
    EXPIRE = "expire"


# None stands for a listing that has not been stored yet
TRANSITIONS: dict[tuple[Optional[ListingStatus], LifecycleEvent], ListingStatus] = {
    (None, LifecycleEvent.SAVE_DRAFT): ListingStatus.DRAFT,
    (None, LifecycleEvent.PUBLISH_PAID): ListingStatus.PENDING_APPROVAL,
    (None, LifecycleEvent.PUBLISH_FREE): ListingStatus.ACTIVE,
    (ListingStatus.DRAFT, LifecycleEvent.PAYMENT_CONFIRMED): ListingStatus.PENDING_APPROVAL,
    (ListingStatus.DRAFT, LifecycleEvent.PUBLISH_FREE): ListingStatus.ACTIVE,
    (ListingStatus.DRAFT, LifecycleEvent.GRANT_FREE): ListingStatus.ACTIVE,
    (ListingStatus.PENDING_APPROVAL, LifecycleEvent.APPROVE): ListingStatus.ACTIVE,
    (ListingStatus.PENDING_APPROVAL, LifecycleEvent.REJECT): ListingStatus.REJECTED,
    (ListingStatus.PENDING_APPROVAL, LifecycleEvent.GRANT_FREE): ListingStatus.ACTIVE,
    (ListingStatus.ACTIVE, LifecycleEvent.EXPIRE): ListingStatus.COMPLETED,
}

SIDE_EFFECTS: dict[LifecycleEvent, dict[str, Any]] = {
    LifecycleEvent.SAVE_DRAFT: {"payment_status": PaymentStatus.PENDING},
    LifecycleEvent.PUBLISH_PAID: {"payment_status": PaymentStatus.PAID},
    LifecycleEvent.PUBLISH_FREE: {"payment_status": PaymentStatus.FREE, "is_free_listing": True},
    LifecycleEvent.PAYMENT_CONFIRMED: {"payment_status": PaymentStatus.PAID},
    LifecycleEvent.GRANT_FREE: {"payment_status": PaymentStatus.FREE, "is_free_listing": True},
}

# Events whose outcome the owner is told about
NOTIFY_ON: dict[LifecycleEvent, str] = {
    LifecycleEvent.APPROVE: "listing_approved",
    LifecycleEvent.REJECT: "listing_rejected",
}

SETTLED_PAYMENT_STATUSES = frozenset({PaymentStatus.PAID, PaymentStatus.FREE, PaymentStatus.COMPLETED})


class TransitionResult(BaseModel):
    """Outcome of a lifecycle operation on a stored listing."""
    listing: Listing
    previous_status: ListingStatus
    changed: bool
    notification: Optional[str] = None


def _coerce_status(value: Any) -> Optional[ListingStatus]:
    if value is None:
        return None
    try:
        return ListingStatus(value)
    except ValueError:
        return None


def _coerce_payment_status(value: Any) -> Optional[PaymentStatus]:
    if value is None:
        return None
    try:
        return PaymentStatus(value)
    except ValueError:
        return None


def _next_status(
    current: Optional[ListingStatus],
    event: LifecycleEvent,
    listing_id: Optional[str],
) -> ListingStatus:
    target = TRANSITIONS.get((current, event))
    if target is None:
        raise InvalidTransitionError(listing_id, current.value if current else "new", event.value)
    return target


def _updates_for(event: LifecycleEvent, target: ListingStatus, rejection_reason: Optional[str]) -> dict:
    updates: dict[str, Any] = {"status": target, **SIDE_EFFECTS.get(event, {})}

    if event == LifecycleEvent.REJECT:
        reason = (rejection_reason or "").strip()
        if not reason:
            raise ListingValidationError(["A rejection reason is required"])
        updates["rejection_reason"] = reason

    if event in (LifecycleEvent.PUBLISH_PAID, LifecycleEvent.PAYMENT_CONFIRMED):
        updates["payment_completed_at"] = datetime.now(timezone.utc).isoformat()

    return updates


def transition(
    listing: Listing,
    event: LifecycleEvent,
    rejection_reason: Optional[str] = None,
) -> Listing:
    """
    Apply a lifecycle event to a stored listing.

    Raises InvalidTransitionError when the event is not allowed from the
    listing's current status.
    """
    target = _next_status(listing.status, event, listing.id)
    updates = _updates_for(event, target, rejection_reason)

    logger.info(
        "Listing transition",
        listing_id=listing.id,
        event=event.value,
        from_status=listing.status.value,
        to_status=target.value
    )
    return listing.model_copy(update=updates)


# Validation
def _parse_date(data: Mapping[str, Any], name: str, label: str, errors: list[str]) -> Optional[date]:
    raw = data.get(name)
    if raw is None or (isinstance(raw, str) and not raw.strip()):
        errors.append(f"Please select {label}")
        return None
    try:
        return to_calendar_date(raw)
    except InvalidDateError:
        errors.append(f"{label.capitalize()} is not a valid date")
        return None


def validate_listing_fields(data: Mapping[str, Any]) -> tuple[date, date]:
    """
    Check listing input before any status is assigned.

    Returns the normalized (start_date, end_date). Raises
    ListingValidationError listing every problem found.
    """
    errors: list[str] = []

    if not str(data.get("title") or "").strip():
        errors.append("Please enter a title")
    if not str(data.get("address") or "").strip():
        errors.append("Please enter an address")

    start_date = _parse_date(data, "start_date", "a start date", errors)
    end_date = _parse_date(data, "end_date", "an end date", errors)

    if start_date and end_date:
        if end_date < start_date:
            errors.append("End date must be after start date")
        elif (end_date - start_date).days + 1 > EngineConfig.MAX_SALE_DAYS:
            errors.append(
                f"Sales can only run for a maximum of {EngineConfig.MAX_SALE_DAYS} consecutive days"
            )

    if errors:
        raise ListingValidationError(errors)
    return start_date, end_date


def _build_listing(fields: Mapping[str, Any]) -> Listing:
    try:
        return Listing(**fields)
    except ValidationError as e:
        raise ListingValidationError(validation_messages(e)) from e


# Creation
def new_listing(
    data: Mapping[str, Any],
    publish: bool,
    policy: Optional[FreePeriodPolicy] = None,
    payment_confirmed: bool = False,
) -> Listing:
    """
    Build a not-yet-stored listing with its initial status and price.

    Unpublished listings are drafts. Published listings whose event starts
    inside the free period go straight to active without payment. Other
    published listings need a confirmed payment to reach pending_approval;
    until then they stay a draft awaiting payment.
    """
    start_date, end_date = validate_listing_fields(data)

    fields = {k: v for k, v in data.items() if k not in LIFECYCLE_FIELDS}
    fields.update(start_date=start_date, end_date=end_date)
    if data.get("created_by"):
        fields["created_by"] = data["created_by"]

    if not publish:
        event = LifecycleEvent.SAVE_DRAFT
    elif is_listing_free(start_date, policy):
        event = LifecycleEvent.PUBLISH_FREE
    elif payment_confirmed:
        event = LifecycleEvent.PUBLISH_PAID
    else:
        event = LifecycleEvent.SAVE_DRAFT

    target = _next_status(None, event, None)
    fields.update(_updates_for(event, target, None))

    logger.info(
        "New listing status decided",
        event=event.value,
        status=target.value,
        publish=publish,
        free_period_active=bool(policy and policy.is_active),
        provisional_policy=bool(policy and policy.is_provisional)
    )
    return _build_listing(fields)


def publish_draft(listing: Listing, policy: Optional[FreePeriodPolicy]) -> TransitionResult:
    """Owner publishes a saved draft: free period goes active, otherwise payment is needed."""
    if listing.status != ListingStatus.DRAFT:
        raise InvalidTransitionError(listing.id, listing.status.value, "publish")

    validate_listing_fields(listing.model_dump())
    if not is_listing_free(listing.start_date, policy):
        return TransitionResult(listing=listing, previous_status=listing.status, changed=False)

    updated = transition(listing, LifecycleEvent.PUBLISH_FREE)
    return TransitionResult(listing=updated, previous_status=listing.status, changed=True)


def _idempotent(
    listing: Listing,
    event: LifecycleEvent,
    already: ListingStatus,
    rejection_reason: Optional[str] = None,
) -> TransitionResult:
    if listing.status == already:
        logger.info(
            "Listing already in target status, nothing to do",
            listing_id=listing.id,
            event=event.value,
            status=listing.status.value
        )
        return TransitionResult(listing=listing, previous_status=listing.status, changed=False)

    updated = transition(listing, event, rejection_reason=rejection_reason)
    return TransitionResult(
        listing=updated,
        previous_status=listing.status,
        changed=True,
        notification=NOTIFY_ON.get(event),
    )


def confirm_payment(listing: Listing) -> TransitionResult:
    """Payment completed out-of-band for a draft awaiting payment."""
    if listing.status == ListingStatus.PENDING_APPROVAL and listing.payment_status == PaymentStatus.PAID:
        return TransitionResult(listing=listing, previous_status=listing.status, changed=False)
    return _idempotent(listing, LifecycleEvent.PAYMENT_CONFIRMED, ListingStatus.PENDING_APPROVAL)


def approve(listing: Listing) -> TransitionResult:
    """Administrator approves a pending listing. Approving an active listing is a no-op."""
    return _idempotent(listing, LifecycleEvent.APPROVE, ListingStatus.ACTIVE)


def reject(listing: Listing, reason: str) -> TransitionResult:
    """Administrator rejects a pending listing with a reason."""
    if not (reason or "").strip():
        raise ListingValidationError(["A rejection reason is required"])
    return _idempotent(listing, LifecycleEvent.REJECT, ListingStatus.REJECTED, rejection_reason=reason)


def grant_free(listing: Listing) -> TransitionResult:
    """Administrator publishes a listing without payment."""
    if listing.status == ListingStatus.ACTIVE and listing.is_free_listing:
        return TransitionResult(listing=listing, previous_status=listing.status, changed=False)
    updated = transition(listing, LifecycleEvent.GRANT_FREE)
    return TransitionResult(listing=updated, previous_status=listing.status, changed=True)


def expire(listing: Listing, today: date) -> Listing:
    """Sweep step: an active listing whose last day has passed becomes completed."""
    if not is_past(listing, today):
        raise InvalidTransitionError(listing.id, listing.status.value, "expire a running sale")
    return transition(listing, LifecycleEvent.EXPIRE)


# Edits and deletion
def _schedule_differs(current: Any, requested: Any) -> bool:
    if isinstance(current, date):
        try:
            return to_calendar_date(requested) != current
        except InvalidDateError:
            return True
    return requested != current


def apply_edit(listing: Listing, changes: Mapping[str, Any], today: date) -> Listing:
    """
    Apply owner edits in place (no status change).

    Drafts accept any content edit. Active listings accept edits except to
    dates and times. Nothing is editable once the sale has ended.
    """
    if listing.status not in (ListingStatus.DRAFT, ListingStatus.ACTIVE):
        raise InvalidTransitionError(listing.id, listing.status.value, "edit")
    if is_past(listing, today):
        raise ListingValidationError(["This sale has already ended and can no longer be edited"])

    errors = []
    locked = sorted(set(changes) & LIFECYCLE_FIELDS)
    if locked:
        errors.append(f"Fields cannot be edited directly: {', '.join(locked)}")

    schedule_changes = sorted(
        name for name in set(changes) & SCHEDULE_FIELDS
        if _schedule_differs(getattr(listing, name), changes[name])
    )
    if schedule_changes and listing.status != ListingStatus.DRAFT:
        errors.append("Dates and times can only be changed while the listing is a draft")
    if errors:
        raise ListingValidationError(errors)

    merged = {**listing.model_dump(), **changes}
    start_date, end_date = validate_listing_fields(merged)
    merged.update(start_date=start_date, end_date=end_date)
    return _build_listing(merged)


def ensure_deletable(listing: Listing) -> None:
    """Only non-terminal listings can be deleted."""
    if listing.status in TERMINAL_STATUSES:
        raise InvalidTransitionError(listing.id, listing.status.value, "delete")


# Derived views
def is_past(listing: Any, today: date) -> bool:
    """True once the listing's last day is over (missing/bad dates never count as past)."""
    return not is_current(listing, today)


def display_status(listing: Any, today: date) -> Optional[ListingStatus]:
    """
    Status to show, re-derived from the dates.

    An active listing whose end date has passed shows as completed even
    if the sweep has not stored that yet.
    """
    status = _coerce_status(listing_field(listing, "status"))
    if status == ListingStatus.ACTIVE and is_past(listing, today):
        return ListingStatus.COMPLETED
    return status


def is_payment_settled(listing: Any) -> bool:
    return _coerce_payment_status(listing_field(listing, "payment_status")) in SETTLED_PAYMENT_STATUSES


def is_discoverable(listing: Any, today: date) -> bool:
    """Public search eligibility: active, paid (or free), and still current."""
    if _coerce_status(listing_field(listing, "status")) != ListingStatus.ACTIVE:
        return False
    if not is_payment_settled(listing):
        return False
    return is_current(listing, today)


def find_expired(listings: Iterable[Any], today: date) -> list:
    """Listings the sweep should complete; agrees with display_status."""
    return [
        listing for listing in listings
        if _coerce_status(listing_field(listing, "status")) == ListingStatus.ACTIVE
        and display_status(listing, today) == ListingStatus.COMPLETED
    ]
