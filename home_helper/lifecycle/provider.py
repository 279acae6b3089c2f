"""Provider dashboard: incoming bookings, instant requests and history."""

from __future__ import annotations

import asyncio
from datetime import date
from typing import Any, Optional

from home_helper.api import endpoints
from home_helper.lifecycle.state_machine import LifecycleTrigger
from home_helper.lifecycle.tracker import (
    ActionOutcome,
    ActionSpec,
    BookingTracker,
    BookingValidationError,
    validate_reason,
)
from home_helper.logging_context import get_session_logger
from home_helper.notifications import NotificationStatus
from home_helper.schemas.api_schema import ApiResult
from home_helper.schemas.booking_schema import BookingRecord, RequestType, normalize_many
from home_helper.views.aggregation import (
    BookingCounts,
    FeaturedRecord,
    SearchField,
    derive_counts,
    featured_record,
    filter_records,
    pending_records,
)

logger = get_session_logger(__name__)

ACCEPT = ActionSpec(
    trigger=LifecycleTrigger.ACCEPT,
    success_title="Booking accepted",
    success_message="The customer has been notified.",
    failure_title="Unable to accept booking",
    confirm_prompt="Are you sure you want to accept this booking?",
)
REJECT = ActionSpec(
    trigger=LifecycleTrigger.REJECT,
    success_title="Booking rejected",
    success_message="The customer will be informed about the rejection.",
    failure_title="Unable to reject booking",
    success_status=NotificationStatus.INFO,
)
COMPLETE = ActionSpec(
    trigger=LifecycleTrigger.COMPLETE,
    success_title="Booking completed",
    success_message="Great job! This booking is now marked as done.",
    failure_title="Unable to complete booking",
    confirm_prompt="Are you sure you want to mark this work as completed?",
)
ACCEPT_INSTANT = ActionSpec(
    trigger=LifecycleTrigger.ACCEPT,
    success_title="Request accepted!",
    success_message="Customer has been notified.",
    failure_title="Unable to accept",
    confirm_prompt="Accept this instant booking request?",
)
REJECT_INSTANT = ActionSpec(
    trigger=LifecycleTrigger.REJECT,
    success_title="Request rejected",
    success_message="The request has been removed.",
    failure_title="Unable to reject",
    confirm_prompt="Reject this instant booking request?",
    success_status=NotificationStatus.INFO,
)


class ProviderBookingTracker(BookingTracker):
    """Tracks a provider's active bookings, completed history and instant requests."""

    ACTIVE = "active"
    COMPLETED = "completed"
    INSTANT = "instant_requests"
    COLLECTIONS = (ACTIVE, COMPLETED, INSTANT)
    EXPIRY_NOTICES = {
        ACTIVE: ("Booking Expired", "A booking request has expired and was removed."),
        INSTANT: ("Request Expired", "An instant booking request has expired and was removed."),
    }

    @property
    def active(self) -> list[BookingRecord]:
        return self.records(self.ACTIVE)

    @property
    def completed(self) -> list[BookingRecord]:
        return self.records(self.COMPLETED)

    @property
    def instant_requests(self) -> list[BookingRecord]:
        return self.records(self.INSTANT)

    async def _fetch(self) -> dict[str, ApiResult]:
        active, completed, instant = await asyncio.gather(
            self._client.get(endpoints.PROVIDER_BOOKINGS),
            self._client.get(endpoints.PROVIDER_BOOKINGS, params=endpoints.COMPLETED_FILTER),
            self._client.get(endpoints.PROVIDER_INSTANT_REQUESTS),
        )
        return {self.ACTIVE: active, self.COMPLETED: completed, self.INSTANT: instant}

    def _normalize(self, collection: str, data: Any) -> list[BookingRecord]:
        if collection == self.INSTANT:
            now = self._clock()
            requests = normalize_many(data, "requests", RequestType.INSTANT)
            # Requests already past their deadline never reach the page
            return [r for r in requests if r.expires_at is None or r.expires_at > now]
        return normalize_many(data, "bookings")

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def pending_view(self) -> list[BookingRecord]:
        return pending_records(self._lists[self.ACTIVE], self._clock())

    def instant_view(self) -> list[BookingRecord]:
        return pending_records(self._lists[self.INSTANT], self._clock())

    def pending_badge_count(self) -> int:
        return len(self.pending_view()) + len(self.instant_view())

    def featured(self) -> Optional[FeaturedRecord]:
        return featured_record(self._lists[self.COMPLETED])

    def filtered(
        self,
        term: str = "",
        field: SearchField = SearchField.CUSTOMER,
        day: Optional[date] = None,
        completed: bool = False,
    ) -> list[BookingRecord]:
        source = self._lists[self.COMPLETED if completed else self.ACTIVE]
        return filter_records(source, term=term, field=field, day=day)

    def counts(self) -> BookingCounts:
        return derive_counts(self._lists[self.ACTIVE] + self._lists[self.COMPLETED], self._clock())

    # ------------------------------------------------------------------ #
    # Actions
    # ------------------------------------------------------------------ #

    async def accept(self, booking_id: str) -> ActionOutcome:
        return await self._run_action(
            self.ACTIVE, booking_id, ACCEPT,
            lambda: self._client.post(endpoints.provider_booking_action(booking_id, "accept")),
        )

    async def reject(self, booking_id: str, reason: Optional[str]) -> ActionOutcome:
        try:
            cleaned = validate_reason(reason)
        except BookingValidationError as e:
            self.notifier.error("Reason required", str(e))
            return ActionOutcome.INVALID

        return await self._run_action(
            self.ACTIVE, booking_id, REJECT,
            lambda: self._client.post(
                endpoints.provider_booking_action(booking_id, "reject"),
                json={"rejectionReason": cleaned},
            ),
        )

    async def complete(self, booking_id: str) -> ActionOutcome:
        return await self._run_action(
            self.ACTIVE, booking_id, COMPLETE,
            lambda: self._client.post(endpoints.provider_booking_action(booking_id, "complete")),
        )

    async def accept_instant(self, request_id: str) -> ActionOutcome:
        return await self._run_action(
            self.INSTANT, request_id, ACCEPT_INSTANT,
            lambda: self._client.post(endpoints.provider_instant_action(request_id, "accept")),
        )

    async def reject_instant(self, request_id: str) -> ActionOutcome:
        return await self._run_action(
            self.INSTANT, request_id, REJECT_INSTANT,
            lambda: self._client.post(endpoints.provider_instant_action(request_id, "reject")),
        )
