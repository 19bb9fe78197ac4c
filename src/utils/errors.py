"""Error handling utilities."""

from typing import Optional

from pydantic import ValidationError


class GarageSaleError(Exception):
    """Base exception for the garage sale backend."""
    pass


class ResolutionError(GarageSaleError):
    """Location text could not be resolved to coordinates."""
    pass


class InvalidDateError(GarageSaleError, ValueError):
    """
    A date field could not be normalized to a calendar date.

    Also a ValueError, so pydantic validators report it as a field error.
    """

    def __init__(self, value: object, message: Optional[str] = None):
        self.value = value
        super().__init__(message or f"Unrecognized date value: {value!r}")


class ListingValidationError(GarageSaleError):
    """Listing input rejected before any state transition was attempted."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class InvalidTransitionError(ListingValidationError):
    """Requested status transition is not in the transition table."""

    def __init__(self, listing_id: Optional[str], current: str, event: str):
        self.listing_id = listing_id
        self.current = current
        self.event = event
        super().__init__([f"Cannot {event} a listing in status '{current}'"])


class ConflictingTransitionError(GarageSaleError):
    """Listing status changed underneath a conditional write."""

    retryable = True

    def __init__(self, listing_id: str, expected: str, actual: Optional[str]):
        self.listing_id = listing_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Listing {listing_id} expected status '{expected}' but found '{actual}'"
        )


class ListingNotFoundError(GarageSaleError):
    """Listing id does not exist in the catalog."""
    pass


class SupabaseError(GarageSaleError):
    """Supabase operation error."""
    pass


def validation_messages(error: ValidationError) -> list[str]:
    """Flatten a pydantic ValidationError into "field: message" strings."""
    messages = []
    for detail in error.errors():
        field = ".".join(str(part) for part in detail.get("loc", ()))
        messages.append(f"{field}: {detail['msg']}" if field else detail["msg"])
    return messages
