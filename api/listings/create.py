"""Listing creation endpoint."""

import asyncio

from src.services.listing_service import submit_listing
from src.utils.http import error_response, json_response, parse_body
from src.utils.logging import correlation_context
from src.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()


def handler(request):
    """
    Create a listing.

    Body: {"listing": {...}, "owner": "...", "publish": bool}. Published
    listings outside a free period are stored as drafts awaiting payment.
    """
    body = parse_body(request)

    with correlation_context():
        try:
            owner = (body.get("owner") or "").strip()
            if not owner:
                return json_response(400, {"error": "owner is required"})

            listing = asyncio.run(submit_listing(
                body.get("listing") or {},
                owner=owner,
                publish=bool(body.get("publish")),
            ))
            return json_response(201, {
                "ok": True,
                "listing": listing.to_record(),
                "requires_payment": listing.payment_status.value == "pending" and bool(body.get("publish")),
            })
        except Exception as e:
            return error_response(e)
