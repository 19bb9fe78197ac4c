"""Administrator moderation endpoint."""

import asyncio

from src.services.listing_service import approve_listing, grant_free_listing, reject_listing
from src.utils.http import error_response, json_response, parse_body
from src.utils.logging import correlation_context
from src.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()

ACTIONS = {"approve", "reject", "grant_free"}


def handler(request):
    """Body: {"listing_id": "...", "action": "approve" | "reject" | "grant_free", "reason": "..."}."""
    body = parse_body(request)
    listing_id = body.get("listing_id")
    action = body.get("action")

    if not listing_id or action not in ACTIONS:
        return json_response(400, {"error": "listing_id and a valid action are required"})

    with correlation_context():
        try:
            if action == "approve":
                listing = asyncio.run(approve_listing(listing_id))
            elif action == "reject":
                listing = asyncio.run(reject_listing(listing_id, body.get("reason") or ""))
            else:
                listing = asyncio.run(grant_free_listing(listing_id))
            return json_response(200, {"ok": True, "listing": listing.to_record()})
        except Exception as e:
            return error_response(e)
