"""Tests for calendar date normalization."""

import calendar
import pytest
from datetime import date, datetime

from src.utils.dates import end_of_day, start_of_day, to_calendar_date
from src.utils.errors import InvalidDateError
from tests.utils.helpers import WrappedTimestamp


@pytest.mark.unit
def test_none_stays_none():
    assert to_calendar_date(None) is None


@pytest.mark.unit
def test_iso_date_string():
    assert to_calendar_date("2024-12-15") == date(2024, 12, 15)


@pytest.mark.unit
def test_iso_datetime_string_is_truncated_to_its_day():
    assert to_calendar_date("2024-12-15T10:30:00") == date(2024, 12, 15)


@pytest.mark.unit
def test_native_date_and_datetime():
    assert to_calendar_date(date(2024, 12, 15)) == date(2024, 12, 15)
    assert to_calendar_date(datetime(2024, 12, 15, 23, 59)) == date(2024, 12, 15)


@pytest.mark.unit
def test_wrapped_timestamp_object():
    """Objects exposing a to_datetime() conversion are unwrapped."""
    wrapped = WrappedTimestamp(datetime(2024, 12, 15, 9, 0))
    assert to_calendar_date(wrapped) == date(2024, 12, 15)


@pytest.mark.unit
def test_wrapped_timestamp_with_camel_case_converter():
    class JsTimestamp:
        def toDate(self):
            return datetime(2024, 12, 16, 8, 0)

    assert to_calendar_date(JsTimestamp()) == date(2024, 12, 16)


@pytest.mark.unit
def test_serialized_timestamp_mapping():
    """{'seconds': ...} and {'_seconds': ...} both read as instants."""
    # Midday UTC keeps the local calendar day stable across common timezones
    seconds = calendar.timegm(datetime(2024, 12, 15, 12, 0).timetuple())

    assert to_calendar_date({"seconds": seconds}) == date(2024, 12, 15)
    assert to_calendar_date({"_seconds": seconds, "_nanoseconds": 0}) == date(2024, 12, 15)


@pytest.mark.unit
@pytest.mark.parametrize("value", ["", "   ", "next tuesday", "2024-13-40", 20241215, {"nanos": 1}])
def test_unrecognized_values_raise(value):
    with pytest.raises(InvalidDateError) as exc_info:
        to_calendar_date(value)

    assert exc_info.value.value == value


@pytest.mark.unit
def test_converter_returning_garbage_raises():
    class Broken:
        def to_datetime(self):
            return 42

    with pytest.raises(InvalidDateError):
        to_calendar_date(Broken())


@pytest.mark.unit
def test_converter_failure_is_reported_as_invalid_date():
    class Unconvertible:
        def to_datetime(self):
            raise OverflowError("timestamp out of range")

    value = Unconvertible()
    with pytest.raises(InvalidDateError, match="to_datetime\(\) failed") as exc_info:
        to_calendar_date(value)

    assert exc_info.value.value is value
    assert isinstance(exc_info.value.__cause__, OverflowError)


@pytest.mark.unit
def test_day_bounds():
    day = date(2024, 12, 15)

    assert start_of_day(day) == datetime(2024, 12, 15, 0, 0, 0)
    assert end_of_day(day) == datetime(2024, 12, 15, 23, 59, 59, 999000)
    assert end_of_day(day) > start_of_day(day)
