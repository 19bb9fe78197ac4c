"""Supabase client wrapper with async context manager support."""

import os
from datetime import datetime, timezone
from typing import Optional
from supabase import Client, ClientOptions, create_client
from ulid import ULID
from src.utils.config import EngineConfig
from src.utils.errors import ConflictingTransitionError, ListingNotFoundError, SupabaseError
import logging

logger = logging.getLogger(__name__)

# Global client instance (singleton pattern)
_client: Optional[Client] = None


def get_supabase_client() -> Client:
    """Get or create Supabase client singleton."""
    global _client

    if _client is None:
        url = os.environ.get("SUPABASE_URL")
        key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY")

        if not url or not key:
            raise SupabaseError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")

        options = ClientOptions(
            auto_refresh_token=False,
            persist_session=False,
        )

        _client = create_client(url, key, options)
        logger.info("Supabase client initialized", extra={"url": url})

    return _client


class SupabaseClient:
    """Async context manager for Supabase client."""

    def __init__(self):
        self.client: Optional[Client] = None

    async def __aenter__(self) -> Client:
        self.client = get_supabase_client()
        return self.client

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            logger.error(
                "Supabase operation error",
                extra={"error": str(exc_val), "type": exc_type.__name__}
            )
        return False


def generate_listing_id() -> str:
    """Generate a text-based listing ID (ULID format)."""
    return str(ULID())


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# Listings table operations
async def list_listings(
    status: Optional[str] = None,
    created_by: Optional[str] = None,
    postcode: Optional[str] = None,
) -> list[dict]:
    """Read catalog rows, optionally narrowed by exact-match filters."""
    async with SupabaseClient() as client:
        try:
            query = client.table(EngineConfig.LISTINGS_TABLE).select("*")
            if status:
                query = query.eq("status", status)
            if created_by:
                query = query.eq("created_by", created_by)
            if postcode:
                query = query.eq("postcode", postcode)
            result = query.execute()
            return result.data if result.data else []
        except Exception as e:
            raise SupabaseError(f"Failed to list listings: {e}")


async def get_listing_by_id(listing_id: str) -> Optional[dict]:
    """Get listing by ID."""
    async with SupabaseClient() as client:
        try:
            result = client.table(EngineConfig.LISTINGS_TABLE).select("*").eq("id", listing_id).execute()
            return result.data[0] if result.data and len(result.data) > 0 else None
        except Exception as e:
            raise SupabaseError(f"Failed to get listing: {e}")


async def create_listing(listing_data: dict) -> dict:
    """Create a new listing; the store assigns id and timestamps."""
    record = dict(listing_data)
    record.setdefault("id", generate_listing_id())
    record.setdefault("created_at", _now_iso())
    record["updated_at"] = record["created_at"]

    async with SupabaseClient() as client:
        try:
            result = client.table(EngineConfig.LISTINGS_TABLE).insert(record).execute()
            if result.data and len(result.data) > 0:
                return result.data[0]
            raise SupabaseError("Failed to create listing: no data returned")
        except SupabaseError:
            raise
        except Exception as e:
            raise SupabaseError(f"Failed to create listing: {e}")


async def update_listing(
    listing_id: str,
    updates: dict,
    expected_status: Optional[str] = None,
) -> dict:
    """
    Update a listing.

    With expected_status the write only applies while the stored status
    still matches; otherwise ConflictingTransitionError is raised with the
    status actually found.
    """
    payload = dict(updates)
    payload["updated_at"] = _now_iso()

    async with SupabaseClient() as client:
        try:
            query = client.table(EngineConfig.LISTINGS_TABLE).update(payload).eq("id", listing_id)
            if expected_status is not None:
                query = query.eq("status", expected_status)
            result = query.execute()
        except Exception as e:
            raise SupabaseError(f"Failed to update listing: {e}")

    if result.data and len(result.data) > 0:
        return result.data[0]

    current = await get_listing_by_id(listing_id)
    if current is None:
        raise ListingNotFoundError(f"Listing not found: {listing_id}")
    if expected_status is not None:
        raise ConflictingTransitionError(listing_id, expected_status, current.get("status"))
    raise SupabaseError(f"Failed to update listing: {listing_id}")


async def delete_listing(listing_id: str, expected_status: Optional[str] = None) -> None:
    """Delete a listing, optionally only while it still has expected_status."""
    async with SupabaseClient() as client:
        try:
            query = client.table(EngineConfig.LISTINGS_TABLE).delete().eq("id", listing_id)
            if expected_status is not None:
                query = query.eq("status", expected_status)
            result = query.execute()
        except Exception as e:
            raise SupabaseError(f"Failed to delete listing: {e}")

    if not result.data:
        current = await get_listing_by_id(listing_id)
        if current is None:
            raise ListingNotFoundError(f"Listing not found: {listing_id}")
        if expected_status is not None:
            raise ConflictingTransitionError(listing_id, expected_status, current.get("status"))


# App settings (free listing period)
async def get_app_settings(settings_id: str = EngineConfig.FREE_PERIOD_SETTINGS_ID) -> Optional[dict]:
    """Read a singleton settings row."""
    async with SupabaseClient() as client:
        try:
            result = client.table(EngineConfig.SETTINGS_TABLE).select("*").eq("id", settings_id).execute()
            return result.data[0] if result.data and len(result.data) > 0 else None
        except Exception as e:
            raise SupabaseError(f"Failed to read app settings: {e}")


async def upsert_app_settings(
    updates: dict,
    settings_id: str = EngineConfig.FREE_PERIOD_SETTINGS_ID,
) -> dict:
    """Merge fields into a singleton settings row."""
    record = {**updates, "id": settings_id, "updated_at": _now_iso()}
    async with SupabaseClient() as client:
        try:
            result = client.table(EngineConfig.SETTINGS_TABLE).upsert(record, on_conflict="id").execute()
            if result.data and len(result.data) > 0:
                return result.data[0]
            raise SupabaseError("Failed to save app settings: no data returned")
        except SupabaseError:
            raise
        except Exception as e:
            raise SupabaseError(f"Failed to save app settings: {e}")


# Notification outbox
async def insert_notification(notification: dict) -> None:
    """Append a row to the notification outbox."""
    async with SupabaseClient() as client:
        try:
            client.table(EngineConfig.NOTIFICATIONS_TABLE).insert(notification).execute()
        except Exception as e:
            raise SupabaseError(f"Failed to enqueue notification: {e}")
