"""Calendar date normalization.

Listing and policy dates reach the engine as native ``date``/``datetime``
values, ISO strings, wrapped timestamp objects, or serialized timestamp
mappings. Every date comparison in the engine goes through
:func:`to_calendar_date` so they all compare as plain calendar dates.
"""

from datetime import date, datetime, time, timezone
from typing import Any, Optional

from src.utils.errors import InvalidDateError

# Conversion methods exposed by wrapped timestamp types, in lookup order
TIMESTAMP_CONVERTERS = ("to_datetime", "ToDatetime", "to_date", "toDate")

END_OF_DAY = time(23, 59, 59, 999000)


def _from_datetime(value: datetime) -> date:
    if value.tzinfo is not None:
        value = value.astimezone()
    return value.date()


def _from_string(value: str) -> date:
    text = value.strip()
    if not text:
        raise InvalidDateError(value, "Empty date string")

    try:
        return date.fromisoformat(text)
    except ValueError:
        pass

    try:
        return _from_datetime(datetime.fromisoformat(text.replace("Z", "+00:00")))
    except ValueError as e:
        raise InvalidDateError(value) from e


def _from_mapping(value: dict) -> date:
    seconds = value.get("seconds", value.get("_seconds"))
    if seconds is None:
        raise InvalidDateError(value)
    try:
        instant = datetime.fromtimestamp(float(seconds), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError) as e:
        raise InvalidDateError(value) from e
    return _from_datetime(instant)


def to_calendar_date(value: Any) -> Optional[date]:
    """
    Normalize any supported date representation to a calendar date.

    Returns None for None. Raises InvalidDateError for anything that
    cannot be interpreted.
    """
    if value is None:
        return None

    # datetime is a date subclass, so it has to be checked first
    if isinstance(value, datetime):
        return _from_datetime(value)
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return _from_string(value)
    if isinstance(value, dict):
        return _from_mapping(value)

    for method_name in TIMESTAMP_CONVERTERS:
        converter = getattr(value, method_name, None)
        if callable(converter):
            try:
                converted = converter()
            except Exception as e:
                raise InvalidDateError(value, f"{method_name}() failed: {e}") from e
            if isinstance(converted, (date, str)):
                return to_calendar_date(converted)
            raise InvalidDateError(value, f"{method_name}() returned {converted!r}")

    raise InvalidDateError(value)


def start_of_day(day: date) -> datetime:
    """00:00:00.000 local on the given day."""
    return datetime.combine(day, time.min)


def end_of_day(day: date) -> datetime:
    """23:59:59.999 local on the given day."""
    return datetime.combine(day, END_OF_DAY)
