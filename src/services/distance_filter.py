"""Great-circle distance filtering."""

import math
from typing import Any, Iterable, Optional, Sequence, Union

from src.models.listing import listing_field
from src.models.location import Coordinates

EARTH_RADIUS_KM = 6371.0

Point = Union[Coordinates, Sequence[float]]


def _lat_lng(point: Point) -> tuple[float, float]:
    if isinstance(point, Coordinates):
        return point.latitude, point.longitude
    return float(point[0]), float(point[1])


def haversine_km(a: Point, b: Point) -> float:
    """Haversine distance in kilometres between two (lat, lng) points."""
    lat1, lon1 = _lat_lng(a)
    lat2, lon2 = _lat_lng(b)

    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(d_lon / 2) ** 2
    )
    h = min(1.0, h)
    return 2 * EARTH_RADIUS_KM * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def within_radius(origin: Point, point: Point, radius_km: float) -> bool:
    """True when point lies within radius_km of origin (inclusive)."""
    return haversine_km(origin, point) <= radius_km


def listing_point(listing: Any) -> Optional[tuple[float, float]]:
    """Coordinates of a listing model or catalog row, or None if either is missing."""
    latitude = listing_field(listing, "latitude")
    longitude = listing_field(listing, "longitude")

    if latitude is None or longitude is None:
        return None
    return float(latitude), float(longitude)


def filter_by_distance(listings: Iterable[Any], origin: Point, radius_km: float) -> list:
    """Keep listings within radius_km of origin; listings without coordinates are dropped."""
    kept = []
    for listing in listings:
        point = listing_point(listing)
        if point is not None and within_radius(origin, point, radius_km):
            kept.append(listing)
    return kept
