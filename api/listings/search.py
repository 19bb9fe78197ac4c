"""Listing search endpoint."""

import asyncio

from src.services.listing_search import search_listings
from src.utils.config import EngineConfig
from src.utils.http import error_response, json_response
from src.utils.logging import correlation_context, get_structured_logger
from src.utils.logging_config import LoggingConfig

LoggingConfig.setup_logging()

logger = get_structured_logger(__name__)


def parse_radius(value) -> int:
    """Radius in whole km; anything unusable falls back to the default."""
    try:
        radius = int(str(value).strip())
    except (TypeError, ValueError):
        return EngineConfig.DEFAULT_SEARCH_RADIUS_KM
    return radius if radius > 0 else EngineConfig.DEFAULT_SEARCH_RADIUS_KM


def handler(request):
    """
    Search listings near a suburb or postcode.

    Query params: location, distance (km), postcode, include_past.
    """
    query_params = request.get("query", {}) or {}

    with correlation_context():
        try:
            location = (query_params.get("location") or "").strip() or None
            include_past = str(query_params.get("include_past", "")).lower() == "true"
            logger.info("Search request", location=location, include_past=include_past,
                        distance=query_params.get("distance"))

            result = asyncio.run(search_listings(
                location=location,
                radius_km=parse_radius(query_params.get("distance")) if location else None,
                include_past=include_past,
                postcode=query_params.get("postcode") or None,
            ))

            return json_response(200, {
                "ok": True,
                "count": len(result.listings),
                "location_resolved": result.location_resolved,
                "origin": result.origin.model_dump() if result.origin else None,
                "radius_km": result.radius_km,
                "listings": result.listings,
            })
        except Exception as e:
            return error_response(e)
