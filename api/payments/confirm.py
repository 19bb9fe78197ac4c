"""Payment completion endpoint, called once checkout has been verified."""

import asyncio

from src.services.listing_service import confirm_payment
from src.utils.http import error_response, json_response, parse_body
from src.utils.logging import correlation_context
from src.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()


def handler(request):
    """Body: {"listing_id": "..."}. Moves a draft awaiting payment to pending_approval."""
    body = parse_body(request)
    listing_id = body.get("listing_id")
    if not listing_id:
        return json_response(400, {"error": "listing_id is required"})

    with correlation_context():
        try:
            listing = asyncio.run(confirm_payment(listing_id))
            return json_response(200, {"ok": True, "listing": listing.to_record()})
        except Exception as e:
            return error_response(e)
