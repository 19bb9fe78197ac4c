"""Coordinate resolution - suburb/postcode text to coordinates.

Known Melbourne localities resolve from a static gazetteer without I/O;
anything else falls through to one geocoding request scoped to a single
country. Failures come back as None, never as exceptions.
"""

from typing import Optional

import httpx

from src.models.location import Coordinates
from src.utils.config import EngineConfig
from src.utils.errors import ResolutionError
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


def _entry(latitude: float, longitude: float, name: str) -> Coordinates:
    return Coordinates(latitude=latitude, longitude=longitude, name=name)


# Keys are lower-case locality names and postcodes
GAZETTEER: dict[str, Coordinates] = {
    # Melbourne CBD
    "melbourne": _entry(-37.8136, 144.9631, "Melbourne"),
    "3000": _entry(-37.8136, 144.9631, "Melbourne"),
    # Inner suburbs
    "fitzroy": _entry(-37.8019, 144.9766, "Fitzroy"),
    "3065": _entry(-37.8019, 144.9766, "Fitzroy"),
    "prahran": _entry(-37.8606, 145.0039, "Prahran"),
    "3181": _entry(-37.8606, 145.0039, "Prahran"),
    "south yarra": _entry(-37.8468, 145.0164, "South Yarra"),
    "3141": _entry(-37.8468, 145.0164, "South Yarra"),
    "southbank": _entry(-37.8267, 144.9769, "Southbank"),
    "3006": _entry(-37.8267, 144.9769, "Southbank"),
    # Outer suburbs
    "brunswick": _entry(-37.7667, 144.9833, "Brunswick"),
    "3056": _entry(-37.7667, 144.9833, "Brunswick"),
    "box hill": _entry(-37.8236, 145.1061, "Box Hill"),
    "3128": _entry(-37.8236, 145.1061, "Box Hill"),
    "footscray": _entry(-37.8078, 144.9014, "Footscray"),
    "3011": _entry(-37.8078, 144.9014, "Footscray"),
    "ringwood": _entry(-37.8286, 145.2292, "Ringwood"),
    "3134": _entry(-37.8286, 145.2292, "Ringwood"),
}


def normalize_location_key(location_text: Optional[str]) -> str:
    """Trim and lower-case location text for gazetteer lookup."""
    return (location_text or "").strip().lower()


def lookup_gazetteer(location_text: Optional[str]) -> Optional[Coordinates]:
    """Look up location text in the static gazetteer (no I/O)."""
    return GAZETTEER.get(normalize_location_key(location_text))


def _display_name(result: dict, fallback: str) -> str:
    address = result.get("address") or {}
    for key in ("suburb", "town", "village", "city"):
        if address.get(key):
            return address[key]

    display_name = result.get("display_name")
    if display_name:
        return display_name.split(",")[0].strip()
    return fallback


def parse_geocoder_response(payload: object, query: str) -> Coordinates:
    """
    Extract coordinates from a geocoder search response.

    Raises ResolutionError when the body has no usable result.
    """
    if not isinstance(payload, list) or not payload:
        raise ResolutionError(f"No geocoding results for '{query}'")

    result = payload[0]
    if not isinstance(result, dict):
        raise ResolutionError(f"Malformed geocoding result for '{query}'")

    try:
        latitude = float(result["lat"])
        longitude = float(result["lon"])
        return Coordinates(
            latitude=latitude,
            longitude=longitude,
            name=_display_name(result, query),
        )
    except (KeyError, TypeError, ValueError) as e:
        raise ResolutionError(f"Unusable coordinates for '{query}': {e}") from e


class CoordinateResolver:
    """Resolve location text through the gazetteer, then the geocoder."""

    def __init__(
        self,
        geocoder_url: str = EngineConfig.GEOCODER_URL,
        country: str = EngineConfig.GEOCODER_COUNTRY,
        timeout: float = EngineConfig.GEOCODER_TIMEOUT_SECONDS,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.geocoder_url = geocoder_url
        self.country = country
        self.timeout = timeout
        self.http_client = http_client

    async def resolve(self, location_text: Optional[str]) -> Optional[Coordinates]:
        """Resolve location text to coordinates, or None if it cannot be found."""
        key = normalize_location_key(location_text)
        if not key:
            return None

        hit = GAZETTEER.get(key)
        if hit is not None:
            logger.debug("Location resolved from gazetteer", location=key, resolved_name=hit.name)
            return hit

        try:
            coordinates = await self._geocode(location_text.strip())
        except ResolutionError as e:
            logger.info("Location could not be resolved", location=key, reason=str(e))
            return None
        except Exception as e:
            logger.warning(
                "Geocoding request failed",
                location=key,
                error=str(e),
                error_type=type(e).__name__
            )
            return None

        logger.info(
            "Location resolved via geocoder",
            location=key,
            resolved_name=coordinates.name,
            latitude=coordinates.latitude,
            longitude=coordinates.longitude
        )
        return coordinates

    async def _geocode(self, query: str) -> Coordinates:
        params = {
            "q": f"{query}, {self.country}",
            "format": "json",
            "addressdetails": 1,
            "limit": 1,
        }
        headers = {"User-Agent": EngineConfig.GEOCODER_USER_AGENT}

        if self.http_client is not None:
            response = await self.http_client.get(
                self.geocoder_url, params=params, headers=headers, timeout=self.timeout
            )
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(self.geocoder_url, params=params, headers=headers)

        if not response.is_success:
            raise ResolutionError(f"Geocoder returned HTTP {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise ResolutionError(f"Geocoder returned a non-JSON body: {e}") from e

        return parse_geocoder_response(payload, query)


_resolver: Optional[CoordinateResolver] = None


def get_coordinate_resolver() -> CoordinateResolver:
    """Get or create the process-wide resolver."""
    global _resolver
    if _resolver is None:
        _resolver = CoordinateResolver()
    return _resolver
