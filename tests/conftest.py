"""Shared pytest fixtures and configuration."""

import os
import pytest
from datetime import date
from unittest.mock import patch
from freezegun import freeze_time

# Set test environment variables
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("SUPABASE_URL", "https://test.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-key")
os.environ.setdefault("LOG_FORMAT", "text")

from src.models.free_period import FreePeriodPolicy  # noqa: E402
from src.models.location import Coordinates  # noqa: E402
from tests.utils.factories import create_listing_row  # noqa: E402
from tests.utils.helpers import make_supabase_mock  # noqa: E402

REFERENCE_DATE = date(2024, 12, 9)


@pytest.fixture
def reference_date():
    """The 'today' used by date-sensitive tests."""
    return REFERENCE_DATE


@pytest.fixture
def mock_supabase_client():
    """Supabase client mock with a chainable query builder; patched into the store module."""
    client, query = make_supabase_mock()
    with patch("src.services.supabase_client.get_supabase_client", return_value=client):
        yield client, query


@pytest.fixture
def melbourne_cbd():
    """Melbourne CBD reference point."""
    return Coordinates(latitude=-37.8136, longitude=144.9631, name="Melbourne")


@pytest.fixture
def active_policy():
    """Free period covering the week of the reference date."""
    return FreePeriodPolicy(
        is_active=True,
        free_listing_start="2024-12-09",
        free_listing_end="2024-12-15",
    )


@pytest.fixture
def inactive_policy():
    return FreePeriodPolicy(
        is_active=False,
        free_listing_start="2024-12-09",
        free_listing_end="2024-12-15",
    )


@pytest.fixture
def pending_listing_row():
    """Paid listing waiting for an administrator."""
    return create_listing_row(
        listing_id="01JEPENDING0000000000000000",
        status="pending_approval",
        payment_status="paid",
        start_date="2024-12-14",
        end_date="2024-12-15",
    )


@pytest.fixture
def draft_listing_row():
    """Saved draft awaiting payment."""
    return create_listing_row(
        listing_id="01JEDRAFT000000000000000000",
        status="draft",
        payment_status="pending",
        start_date="2024-12-14",
        end_date="2024-12-15",
    )


@pytest.fixture
def freeze_time_fixture():
    """Fixture for freezing time in tests."""
    with freeze_time("2024-12-09 12:00:00") as frozen_time:
        yield frozen_time
