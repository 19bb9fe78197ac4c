"""Free listing period evaluation and the two-tier policy source."""

from datetime import date, datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from src.models.free_period import FreePeriodPolicy
from src.services.supabase_client import get_app_settings, upsert_app_settings
from src.utils.dates import to_calendar_date
from src.utils.errors import (
    InvalidDateError,
    ListingValidationError,
    SupabaseError,
    validation_messages,
)
from src.utils.logging import get_structured_logger

logger = get_structured_logger(__name__)


def _window(policy: Optional[FreePeriodPolicy]) -> Optional[tuple[date, date]]:
    if policy is None or not policy.is_active:
        return None
    if policy.free_listing_start is None or policy.free_listing_end is None:
        return None
    return policy.free_listing_start, policy.free_listing_end


def is_listing_free(start_date: Any, policy: Optional[FreePeriodPolicy]) -> bool:
    """
    True when the listing's event start date falls inside the free period.

    This is a containment check on the event date, not on today's date.
    Both window ends are inclusive.
    """
    window = _window(policy)
    if window is None:
        return False

    try:
        event_start = to_calendar_date(start_date)
    except InvalidDateError:
        logger.warning("Listing start_date could not be parsed for free period check",
                       raw_start_date=repr(start_date))
        return False
    if event_start is None:
        return False

    window_start, window_end = window
    return window_start <= event_start <= window_end


def is_free_period_running(policy: Optional[FreePeriodPolicy], today: date) -> bool:
    """True when today itself is inside an active free period."""
    window = _window(policy)
    if window is None:
        return False
    return window[0] <= today <= window[1]


class ProvisionalPolicyCache:
    """Process-local fallback copy of the policy, used while the primary store is down."""

    def __init__(self):
        self._policy: Optional[FreePeriodPolicy] = None

    def get(self) -> Optional[FreePeriodPolicy]:
        return self._policy

    def put(self, policy: FreePeriodPolicy) -> FreePeriodPolicy:
        self._policy = policy.model_copy(update={"source": "provisional"})
        return self._policy

    def clear(self) -> None:
        self._policy = None


class FreePeriodPolicySource:
    """Read-through policy value: primary settings store, then provisional cache."""

    def __init__(self, cache: Optional[ProvisionalPolicyCache] = None):
        self.cache = cache if cache is not None else ProvisionalPolicyCache()

    async def load(self) -> FreePeriodPolicy:
        """Current policy; an inactive policy when neither tier has one."""
        try:
            row = await get_app_settings()
        except SupabaseError as e:
            logger.warning(
                "Policy store unavailable, using provisional cache",
                error=str(e),
                has_cached_policy=self.cache.get() is not None
            )
            return self._fallback()

        if not row:
            return self._fallback()

        try:
            return FreePeriodPolicy(
                is_active=bool(row.get("is_active")),
                free_listing_start=row.get("free_listing_start"),
                free_listing_end=row.get("free_listing_end"),
                updated_at=row.get("updated_at"),
                source="primary",
            )
        except ValidationError as e:
            logger.error(
                "Stored free period settings are unreadable, using provisional cache",
                errors=validation_messages(e),
                has_cached_policy=self.cache.get() is not None
            )
            return self._fallback()

    def _fallback(self) -> FreePeriodPolicy:
        cached = self.cache.get()
        return cached if cached is not None else FreePeriodPolicy()

    async def save(self, is_active: bool, start: Any, end: Any) -> FreePeriodPolicy:
        """
        Write the policy to the primary store.

        On success the provisional cache is cleared. If the primary write
        fails the policy is kept in the provisional cache and returned
        marked provisional.
        """
        policy = self._build(is_active, start, end)
        updates = policy.model_dump(
            mode="json", include={"is_active", "free_listing_start", "free_listing_end"}
        )

        try:
            row = await upsert_app_settings(updates)
        except SupabaseError as e:
            logger.warning("Policy store write failed, caching provisionally", error=str(e))
            return self.cache.put(policy)

        self.cache.clear()
        logger.info(
            "Free listing period saved",
            is_active=policy.is_active,
            free_listing_start=updates.get("free_listing_start"),
            free_listing_end=updates.get("free_listing_end")
        )
        return policy.model_copy(update={"updated_at": row.get("updated_at"), "source": "primary"})

    @staticmethod
    def _build(is_active: bool, start: Any, end: Any) -> FreePeriodPolicy:
        errors = []
        try:
            start_date = to_calendar_date(start)
        except InvalidDateError:
            start_date = None
            errors.append("Free period start date is not a valid date")
        try:
            end_date = to_calendar_date(end)
        except InvalidDateError:
            end_date = None
            errors.append("Free period end date is not a valid date")

        if is_active and not errors and (start_date is None or end_date is None):
            errors.append("An active free period needs both a start and an end date")
        if start_date and end_date and end_date < start_date:
            errors.append("Free period end date must not be before its start date")
        if errors:
            raise ListingValidationError(errors)

        return FreePeriodPolicy(
            is_active=is_active,
            free_listing_start=start_date,
            free_listing_end=end_date,
            updated_at=datetime.now(timezone.utc).isoformat(),
        )


_policy_source: Optional[FreePeriodPolicySource] = None


def get_policy_source() -> FreePeriodPolicySource:
    """Get or create the process-wide policy source."""
    global _policy_source
    if _policy_source is None:
        _policy_source = FreePeriodPolicySource()
    return _policy_source
