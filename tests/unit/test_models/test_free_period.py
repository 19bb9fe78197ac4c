"""Tests for FreePeriodPolicy model."""

import pytest
from datetime import date, datetime

from src.models.free_period import FreePeriodPolicy
from src.models.location import Coordinates
from tests.utils.helpers import WrappedTimestamp


@pytest.mark.unit
def test_policy_defaults_to_inactive_primary():
    policy = FreePeriodPolicy()

    assert policy.is_active is False
    assert policy.free_listing_start is None
    assert policy.is_provisional is False


@pytest.mark.unit
def test_policy_window_dates_normalized():
    policy = FreePeriodPolicy(
        is_active=True,
        free_listing_start=WrappedTimestamp(datetime(2024, 12, 9, 0, 0)),
        free_listing_end="2024-12-15",
    )

    assert policy.free_listing_start == date(2024, 12, 9)
    assert policy.free_listing_end == date(2024, 12, 15)


@pytest.mark.unit
def test_provisional_source():
    policy = FreePeriodPolicy(source="provisional")
    assert policy.is_provisional is True


@pytest.mark.unit
def test_coordinates_are_frozen():
    point = Coordinates(latitude=-37.8136, longitude=144.9631, name="Melbourne")

    with pytest.raises(Exception):
        point.latitude = 0.0
