"""Owner notifications - fire-and-forget rows in the notification outbox."""

from typing import Optional

from src.services.supabase_client import insert_notification
from src.utils.logging import get_structured_logger, mask_owner

logger = get_structured_logger(__name__)


async def notify_owner(
    owner: Optional[str],
    listing_id: Optional[str],
    listing_title: str,
    kind: str,
    reason: Optional[str] = None,
) -> bool:
    """
    Queue a notification for the listing owner.

    Returns True if queued. Failures are logged and never raised, so a
    notification problem cannot undo the status change that caused it.
    """
    if not owner:
        logger.warning("Listing has no owner to notify", listing_id=listing_id, kind=kind)
        return False

    notification = {
        "recipient": owner,
        "listing_id": listing_id,
        "listing_title": listing_title,
        "kind": kind,
    }
    if reason:
        notification["reason"] = reason

    try:
        await insert_notification(notification)
    except Exception as e:
        logger.warning(
            "Failed to queue owner notification (non-fatal)",
            listing_id=listing_id,
            kind=kind,
            owner=mask_owner(owner),
            error=str(e)
        )
        return False

    logger.info("Owner notification queued", listing_id=listing_id, kind=kind, owner=mask_owner(owner))
    return True
