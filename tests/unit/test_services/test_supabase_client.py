"""Tests for the Supabase store helpers."""

import pytest
from unittest.mock import MagicMock, call

from src.services import supabase_client
from src.services.supabase_client import (
    create_listing,
    delete_listing,
    generate_listing_id,
    get_listing_by_id,
    list_listings,
    update_listing,
    upsert_app_settings,
)
from src.utils.errors import ConflictingTransitionError, ListingNotFoundError, SupabaseError


@pytest.mark.unit
def test_generate_listing_id_is_ulid():
    listing_id = generate_listing_id()
    assert len(listing_id) == 26
    assert listing_id != generate_listing_id()


@pytest.mark.unit
def test_client_requires_credentials(monkeypatch):
    monkeypatch.setattr(supabase_client, "_client", None)
    monkeypatch.delenv("SUPABASE_URL", raising=False)

    with pytest.raises(SupabaseError):
        supabase_client.get_supabase_client()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_list_listings_applies_filters(mock_supabase_client):
    client, query = mock_supabase_client
    query.execute.return_value = MagicMock(data=[{"id": "L1"}])

    rows = await list_listings(status="active", postcode="3065")

    assert rows == [{"id": "L1"}]
    client.table.assert_called_with("listings")
    query.eq.assert_has_calls([call("status", "active"), call("postcode", "3065")])


@pytest.mark.unit
@pytest.mark.asyncio
async def test_get_listing_by_id_missing(mock_supabase_client):
    assert await get_listing_by_id("missing") is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_create_listing_assigns_id_and_timestamps(mock_supabase_client):
    client, query = mock_supabase_client
    query.execute.return_value = MagicMock(data=[{"id": "stored"}])

    await create_listing({"title": "Sale"})

    record = query.insert.call_args[0][0]
    assert len(record["id"]) == 26
    assert record["created_at"] == record["updated_at"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_with_expected_status_is_conditional(mock_supabase_client):
    client, query = mock_supabase_client
    query.execute.return_value = MagicMock(data=[{"id": "L1", "status": "active"}])

    row = await update_listing("L1", {"status": "active"}, expected_status="pending_approval")

    assert row["status"] == "active"
    query.eq.assert_has_calls([call("id", "L1"), call("status", "pending_approval")])
    payload = query.update.call_args[0][0]
    assert payload["status"] == "active"
    assert "updated_at" in payload


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_conflict_reports_actual_status(mock_supabase_client):
    client, query = mock_supabase_client
    query.execute.side_effect = [
        MagicMock(data=[]),
        MagicMock(data=[{"id": "L1", "status": "rejected"}]),
    ]

    with pytest.raises(ConflictingTransitionError) as exc_info:
        await update_listing("L1", {"status": "active"}, expected_status="pending_approval")

    assert exc_info.value.expected == "pending_approval"
    assert exc_info.value.actual == "rejected"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_missing_listing(mock_supabase_client):
    client, query = mock_supabase_client
    query.execute.side_effect = [MagicMock(data=[]), MagicMock(data=[])]

    with pytest.raises(ListingNotFoundError):
        await update_listing("gone", {"title": "x"}, expected_status="draft")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_conflict(mock_supabase_client):
    client, query = mock_supabase_client
    query.execute.side_effect = [
        MagicMock(data=[]),
        MagicMock(data=[{"id": "L1", "status": "completed"}]),
    ]

    with pytest.raises(ConflictingTransitionError):
        await delete_listing("L1", expected_status="active")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_store_errors_are_wrapped(mock_supabase_client):
    client, query = mock_supabase_client
    query.execute.side_effect = RuntimeError("socket closed")

    with pytest.raises(SupabaseError, match="socket closed"):
        await list_listings()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_upsert_app_settings_targets_singleton_row(mock_supabase_client):
    client, query = mock_supabase_client
    query.execute.return_value = MagicMock(data=[{"id": "free_listing_period"}])

    await upsert_app_settings({"is_active": False})

    client.table.assert_called_with("app_settings")
    record = query.upsert.call_args[0][0]
    assert record["id"] == "free_listing_period"
    assert query.upsert.call_args.kwargs["on_conflict"] == "id"
