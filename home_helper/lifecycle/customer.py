"""Customer dashboard: booking history, profile and spend ranking."""

from __future__ import annotations

from typing import Any, Optional, Union

from home_helper.api import endpoints
from home_helper.lifecycle.state_machine import BookingStatus, LifecycleTrigger
from home_helper.lifecycle.tracker import ActionOutcome, ActionSpec, BookingTracker
from home_helper.logging_context import get_session_logger
from home_helper.schemas.api_schema import ApiResult
from home_helper.schemas.booking_schema import BookingRecord, normalize_many
from home_helper.schemas.insights_schema import LeaderboardEntry, SpendInsights
from home_helper.schemas.session_schema import SessionStore, UserProfile
from home_helper.views.aggregation import (
    BookingCounts,
    SearchField,
    derive_counts,
    display_status,
    filter_records,
    lifetime_spend,
    next_booking,
    recent_records,
)
from home_helper.views.leaderboard import derive_spend_insights, insights_from_payload, parse_leaders

logger = get_session_logger(__name__)

CANCEL = ActionSpec(
    trigger=LifecycleTrigger.CANCEL,
    success_title="Booking cancelled",
    success_message="Booking cancelled successfully",
    failure_title="Failed to cancel booking",
    confirm_prompt="Are you sure you want to cancel this booking?",
)


class CustomerBookingTracker(BookingTracker):
    """Tracks a customer's bookings and where their spending ranks."""

    BOOKINGS = "bookings"
    COLLECTIONS = (BOOKINGS,)
    EXPIRY_NOTICES = {
        BOOKINGS: ("Booking Expired", "No provider responded in time. The request has expired."),
    }
    REMOVE_ON_EXPIRY = False
    REFRESH_ON_EXPIRY = True

    def __init__(self, *args: Any, session_store: Optional[SessionStore] = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self._session_store = session_store
        self._profile: Optional[UserProfile] = self._client.session.user
        self._leaderboard: list[LeaderboardEntry] = []
        self._remote_insights: Optional[SpendInsights] = None

    @property
    def bookings(self) -> list[BookingRecord]:
        return self.records(self.BOOKINGS)

    @property
    def profile(self) -> Optional[UserProfile]:
        return self._profile

    async def _fetch(self) -> dict[str, ApiResult]:
        return {self.BOOKINGS: await self._client.get(endpoints.CUSTOMER_BOOKINGS)}

    def _normalize(self, collection: str, data: Any) -> list[BookingRecord]:
        return normalize_many(data, "bookings")

    # ------------------------------------------------------------------ #
    # Profile and ranking
    # ------------------------------------------------------------------ #

    async def refresh_profile(self) -> Optional[UserProfile]:
        """Reload the profile; its ``total_spent`` is the persisted lifetime spend."""
        result = await self._client.get(endpoints.CUSTOMER_PROFILE)
        if not result.ok or not isinstance(result.data, dict):
            self.notifier.error("Unable to load profile", result.message or "Please try again.")
            return None

        profile = UserProfile.from_payload(result.data)
        self._profile = profile
        session = self._client.session
        session.user = profile
        if self._session_store is not None:
            self._session_store.save(session)
        return profile

    async def refresh_leaderboard(self) -> Optional[SpendInsights]:
        """Fetch the spend leaderboard. Failures fall back to local ranking silently."""
        result = await self._client.get(endpoints.CUSTOMER_SPEND_LEADERBOARD)
        data = result.data if result.ok and isinstance(result.data, dict) else {}
        leaders = parse_leaders(data.get("leaders"))
        if not leaders:
            if not result.ok:
                logger.info("Spend leaderboard unavailable: %s", result.message)
            self._remote_insights = None
            return None

        self._leaderboard = leaders
        self._remote_insights = insights_from_payload(data)
        return self._remote_insights

    def lifetime_spend(self) -> float:
        if self._profile is not None and self._profile.total_spent is not None:
            return self._profile.total_spent
        return lifetime_spend(self._lists[self.BOOKINGS])

    def spend_insights(self) -> SpendInsights:
        if self._remote_insights is not None:
            return self._remote_insights
        profile = self._profile
        return derive_spend_insights(
            self.lifetime_spend(),
            user_id=profile.user_id if profile else None,
            name=profile.name if profile else None,
            leaderboard=self._leaderboard,
        )

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def counts(self) -> BookingCounts:
        return derive_counts(self._lists[self.BOOKINGS], self._clock())

    def next_booking(self) -> Optional[BookingRecord]:
        return next_booking(self._lists[self.BOOKINGS])

    def recent(self, limit: int = 4) -> list[BookingRecord]:
        return recent_records(self._lists[self.BOOKINGS], limit)

    def display_status(self, record: BookingRecord) -> BookingStatus:
        if self.is_expired(self.BOOKINGS, record.id):
            return BookingStatus.EXPIRED
        return display_status(record, self._clock())

    def filtered(
        self,
        term: str = "",
        status: Union[BookingStatus, str] = "all",
        field: SearchField = SearchField.ANY,
    ) -> list[BookingRecord]:
        return filter_records(self._lists[self.BOOKINGS], term=term, field=field, status=status)

    # ------------------------------------------------------------------ #
    # Actions
    # ------------------------------------------------------------------ #

    async def cancel(self, booking_id: str) -> ActionOutcome:
        return await self._run_action(
            self.BOOKINGS, booking_id, CANCEL,
            lambda: self._client.post(endpoints.customer_cancel(booking_id)),
        )
