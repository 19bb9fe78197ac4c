"""Tests for temporal validity filtering."""

import pytest
from datetime import date, datetime

from src.models.listing import Listing
from src.services.temporal_filter import filter_current, is_current
from tests.utils.factories import create_listing_row
from tests.utils.helpers import WrappedTimestamp


@pytest.mark.unit
def test_sale_ending_yesterday_is_excluded(reference_date):
    assert not is_current({"end_date": "2024-12-08"}, reference_date)


@pytest.mark.unit
def test_sale_ending_today_is_current_all_day(reference_date):
    assert is_current({"end_date": "2024-12-09"}, reference_date)


@pytest.mark.unit
def test_sale_ending_later_is_current(reference_date):
    assert is_current({"end_date": "2024-12-11"}, reference_date)


@pytest.mark.unit
@pytest.mark.parametrize("end_date", [
    "2024-12-09",
    "2024-12-09T07:00:00",
    date(2024, 12, 9),
    datetime(2024, 12, 9, 0, 0),
    WrappedTimestamp(datetime(2024, 12, 9, 0, 0)),
])
def test_representations_agree(reference_date, end_date):
    """The same calendar day counts the same however it is stored."""
    assert is_current({"end_date": end_date}, reference_date)
    assert not is_current({"end_date": end_date}, date(2024, 12, 10))


@pytest.mark.unit
def test_missing_end_date_fails_open(reference_date):
    assert is_current({"id": "no-end"}, reference_date)


@pytest.mark.unit
def test_unparseable_end_date_fails_open(reference_date):
    assert is_current({"id": "bad-end", "end_date": "whenever"}, reference_date)


@pytest.mark.unit
def test_models_and_rows_agree(reference_date):
    row = create_listing_row(start_date="2024-12-07", end_date="2024-12-08")
    model = Listing.model_validate(row)

    assert is_current(row, reference_date) is is_current(model, reference_date) is False


@pytest.mark.unit
def test_filter_current_drops_past(reference_date):
    past = create_listing_row(start_date="2024-12-07", end_date="2024-12-08")
    today = create_listing_row(start_date="2024-12-08", end_date="2024-12-09")
    upcoming = create_listing_row(start_date="2024-12-14", end_date="2024-12-15")

    assert filter_current([past, today, upcoming], reference_date) == [today, upcoming]


@pytest.mark.unit
def test_include_past_keeps_everything(reference_date):
    past = create_listing_row(start_date="2024-12-07", end_date="2024-12-08")
    upcoming = create_listing_row(start_date="2024-12-14", end_date="2024-12-15")

    assert filter_current([past, upcoming], reference_date, include_past=True) == [past, upcoming]
