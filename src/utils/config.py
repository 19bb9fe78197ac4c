"""Engine configuration with environment variable support."""

import os


class EngineConfig:
    """Centralized engine configuration."""

    # Geocoding fallback for locations outside the gazetteer
    GEOCODER_URL = os.environ.get("GEOCODER_URL", "https://nominatim.openstreetmap.org/search")
    GEOCODER_COUNTRY = os.environ.get("GEOCODER_COUNTRY", "Australia")
    GEOCODER_TIMEOUT_SECONDS = float(os.environ.get("GEOCODER_TIMEOUT_SECONDS", "10"))
    GEOCODER_USER_AGENT = os.environ.get("GEOCODER_USER_AGENT", "GarageSaleBackend/1.0")

    # Search
    DEFAULT_SEARCH_RADIUS_KM = int(os.environ.get("DEFAULT_SEARCH_RADIUS_KM", "25"))

    # Listing rules
    MAX_SALE_DAYS = int(os.environ.get("MAX_SALE_DAYS", "3"))

    # Tables
    LISTINGS_TABLE = os.environ.get("LISTINGS_TABLE", "listings")
    SETTINGS_TABLE = os.environ.get("SETTINGS_TABLE", "app_settings")
    NOTIFICATIONS_TABLE = os.environ.get("NOTIFICATIONS_TABLE", "notifications")
    FREE_PERIOD_SETTINGS_ID = "free_listing_period"
