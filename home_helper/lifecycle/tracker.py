"""
Booking lifecycle tracker shared by the provider and customer dashboards.

The tracker is the single owner of the raw booking lists for one page
session. It:

* replaces the lists wholesale on every successful fetch; whichever
  response arrives last is what the page shows;
* keeps one CountdownTimer per pending record with a deadline and removes
  (or marks) the record locally when that deadline passes;
* runs provider/customer actions through one path that validates locally,
  asks for confirmation, calls the backend, and turns every outcome into a
  notification instead of an exception;
* owns the polling subscription and tears everything down on ``close()``.

Subclasses declare their collections and implement ``_fetch`` and
``_normalize``.
"""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from functools import partial
from typing import Any, AsyncIterator, Awaitable, Callable, Optional

from home_helper.api.client import BackendClient
from home_helper.lifecycle.countdown import CountdownTimer
from home_helper.lifecycle.polling import PollingSubscription
from home_helper.lifecycle.state_machine import (
    BookingStateMachine,
    BookingStatus,
    LifecycleTrigger,
    status_label,
)
from home_helper.logging_context import get_session_logger
from home_helper.notifications import NotificationStatus, Notifier
from home_helper.schemas.api_schema import ApiResult
from home_helper.schemas.booking_schema import BookingRecord
from home_helper.utils import utc_now
from home_helper.views.aggregation import is_locally_expired

logger = get_session_logger(__name__)

ConfirmFn = Callable[[str], bool]
RecordKey = tuple[str, str]

GENERIC_FAILURE = "Something went wrong. Please try again."
MISSING_RECORD = "This booking is no longer available."


class ActionOutcome(str, Enum):
    """What happened to a requested action."""
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    DECLINED = "declined"
    INVALID = "invalid"
    DISCARDED = "discarded"


class BookingValidationError(ValueError):
    """An action failed local validation; no request was sent."""


def validate_reason(reason: Optional[str]) -> str:
    cleaned = (reason or "").strip()
    if not cleaned:
        raise BookingValidationError("Please enter a reason for rejection.")
    return cleaned


@dataclass(frozen=True)
class ActionSpec:
    """Lifecycle trigger and user-facing copy for one action."""
    trigger: LifecycleTrigger
    success_title: str
    success_message: str
    failure_title: str
    confirm_prompt: Optional[str] = None
    success_status: NotificationStatus = NotificationStatus.SUCCESS


class BookingTracker:
    """Base class for page-level booking trackers."""

    COLLECTIONS: tuple[str, ...] = ()
    EXPIRY_NOTICES: dict[str, tuple[str, str]] = {}
    REFRESH_ERROR_TITLE = "Unable to load bookings"
    # Providers drop expired requests; customers keep them, shown as expired,
    # and re-fetch instead
    REMOVE_ON_EXPIRY = True
    REFRESH_ON_EXPIRY = False

    def __init__(
        self,
        client: BackendClient,
        notifier: Optional[Notifier] = None,
        confirm: Optional[ConfirmFn] = None,
        *,
        clock: Callable[[], datetime] = utc_now,
        poll_interval: Optional[float] = None,
        tick_interval: Optional[float] = None,
    ) -> None:
        self._client = client
        self.notifier = notifier or Notifier()
        self._confirm = confirm
        self._clock = clock
        self._poll_interval = poll_interval
        self._tick_interval = tick_interval
        self._lists: dict[str, list[BookingRecord]] = {name: [] for name in self.COLLECTIONS}
        self._timers: dict[RecordKey, CountdownTimer] = {}
        self._lifecycles: dict[RecordKey, BookingStateMachine] = {}
        self._expired: set[RecordKey] = set()
        self._poller: Optional[PollingSubscription] = None
        self._background: set[asyncio.Task] = set()
        self._refresh_seq = 0
        self.last_refreshed_at: Optional[datetime] = None

    # ------------------------------------------------------------------ #
    # State access
    # ------------------------------------------------------------------ #

    @property
    def client(self) -> BackendClient:
        return self._client

    @property
    def now(self) -> datetime:
        return self._clock()

    def records(self, collection: str) -> list[BookingRecord]:
        return list(self._lists[collection])

    def find(self, collection: str, record_id: str) -> Optional[BookingRecord]:
        for record in self._lists[collection]:
            if record.id == record_id:
                return record
        return None

    def countdown(self, collection: str, record_id: str) -> Optional[CountdownTimer]:
        return self._timers.get((collection, record_id))

    def lifecycle(self, collection: str, record_id: str) -> Optional[BookingStateMachine]:
        return self._lifecycles.get((collection, record_id))

    def is_expired(self, collection: str, record_id: str) -> bool:
        return (collection, record_id) in self._expired

    # ------------------------------------------------------------------ #
    # Fetching
    # ------------------------------------------------------------------ #

    async def _fetch(self) -> dict[str, ApiResult]:
        raise NotImplementedError

    def _normalize(self, collection: str, data: Any) -> list[BookingRecord]:
        raise NotImplementedError

    async def refresh(self, background: bool = False) -> bool:
        """Fetch every collection and replace the raw lists on success.

        Any failed collection leaves all lists untouched and raises an
        error notification.
        """
        self._refresh_seq += 1
        seq = self._refresh_seq
        results = await self._fetch()

        failed = [result for result in results.values() if not result.ok]
        if failed:
            self.notifier.error(self.REFRESH_ERROR_TITLE, failed[0].message or GENERIC_FAILURE)
            return False

        lists = {name: self._normalize(name, result.data) for name, result in results.items()}
        self._apply(lists)
        logger.debug(
            "Refresh #%d applied (%s, background=%s)",
            seq,
            ", ".join(f"{name}={len(records)}" for name, records in lists.items()),
            background,
        )
        return True

    def _apply(self, lists: dict[str, list[BookingRecord]]) -> None:
        present: set[RecordKey] = set()
        for name, records in lists.items():
            present.update((name, r.id) for r in records)
            if self.REMOVE_ON_EXPIRY:
                records = [
                    r for r in records
                    if not ((name, r.id) in self._expired and r.status == BookingStatus.PENDING)
                ]
            self._lists[name] = records

        self._expired &= present
        self._observe_statuses()
        self._sync_timers()
        self.last_refreshed_at = self._clock()

    def _observe_statuses(self) -> None:
        current: dict[RecordKey, BookingStatus] = {
            (name, r.id): r.status for name, records in self._lists.items() for r in records
        }
        for key in list(self._lifecycles):
            if key not in current:
                del self._lifecycles[key]
        for key, status in current.items():
            machine = self._lifecycles.get(key)
            if machine is None:
                self._lifecycles[key] = BookingStateMachine(status)
            elif key not in self._expired:
                machine.observe(status)

    # ------------------------------------------------------------------ #
    # Local expiry
    # ------------------------------------------------------------------ #

    def _sync_timers(self) -> None:
        wanted: dict[RecordKey, datetime] = {
            (name, r.id): r.expires_at
            for name, records in self._lists.items()
            for r in records
            if r.status == BookingStatus.PENDING
            and r.expires_at is not None
            and (name, r.id) not in self._expired
        }
        for key in list(self._timers):
            if key not in wanted:
                self._timers.pop(key).stop()

        for key, expires_at in wanted.items():
            timer = self._timers.get(key)
            if timer is None:
                timer = CountdownTimer(
                    expires_at,
                    on_expire=partial(self._on_deadline_passed, *key),
                    tick_interval=self._tick_interval,
                    clock=self._clock,
                )
                self._timers[key] = timer
                timer.start()
            else:
                timer.reset(expires_at)

    def _on_deadline_passed(self, collection: str, record_id: str) -> None:
        key = (collection, record_id)
        self._timers.pop(key, None)
        if key in self._expired:
            return
        self._expired.add(key)

        machine = self._lifecycles.get(key)
        if machine is not None and machine.can(LifecycleTrigger.DEADLINE_PASSED):
            machine.transition(LifecycleTrigger.DEADLINE_PASSED)

        if self.REMOVE_ON_EXPIRY:
            self._lists[collection] = [r for r in self._lists[collection] if r.id != record_id]

        logger.info("%s record %s expired locally", collection, record_id)
        title, message = self.EXPIRY_NOTICES.get(collection, ("Request Expired", ""))
        self.notifier.info(title, message)

        if self.REFRESH_ON_EXPIRY:
            task = asyncio.get_running_loop().create_task(self.refresh(background=True))
            self._background.add(task)
            task.add_done_callback(self._background.discard)

    # ------------------------------------------------------------------ #
    # Actions
    # ------------------------------------------------------------------ #

    def _confirmed(self, prompt: str) -> bool:
        if self._confirm is None:
            return True
        return bool(self._confirm(prompt))

    async def _run_action(
        self,
        collection: str,
        record_id: str,
        action: ActionSpec,
        call: Callable[[], Awaitable[ApiResult]],
    ) -> ActionOutcome:
        """Validate, confirm, call, then notify and refresh."""
        key = (collection, record_id)
        if key in self._expired:
            logger.debug("Ignoring %s for expired record %s", action.trigger.value, record_id)
            return ActionOutcome.DISCARDED

        record = self.find(collection, record_id)
        if record is None:
            self.notifier.error(action.failure_title, MISSING_RECORD)
            return ActionOutcome.INVALID

        if is_locally_expired(record, self.now):
            # deadline passed before the next tick; expire it now instead of calling out
            timer = self._timers.get(key)
            if timer is not None:
                timer.tick()
            if key not in self._expired:
                self._on_deadline_passed(collection, record_id)
            return ActionOutcome.DISCARDED

        machine = self._lifecycles.get(key) or BookingStateMachine(record.status)
        if not machine.can(action.trigger):
            logger.warning(
                "Refusing %s on %s: status is %s", action.trigger.value, record_id, record.status.value
            )
            self.notifier.error(
                action.failure_title,
                f"Not allowed while the booking is {status_label(record.status).lower()}.",
            )
            return ActionOutcome.INVALID

        if action.confirm_prompt and not self._confirmed(action.confirm_prompt):
            logger.debug("%s on %s declined by user", action.trigger.value, record_id)
            return ActionOutcome.DECLINED

        result = await call()

        if key in self._expired:
            logger.debug(
                "Discarding %s result for %s: deadline passed while in flight",
                action.trigger.value, record_id,
            )
            await self.refresh(background=True)
            return ActionOutcome.DISCARDED

        if not result.ok:
            self.notifier.error(action.failure_title, result.message or GENERIC_FAILURE)
            return ActionOutcome.FAILED

        logger.info("%s succeeded for %s", action.trigger.value, record_id)
        self.notifier.notify(action.success_status, action.success_title, action.success_message)
        await self.refresh()
        return ActionOutcome.SUCCEEDED

    # ------------------------------------------------------------------ #
    # Lifetime
    # ------------------------------------------------------------------ #

    def start_polling(self) -> PollingSubscription:
        if self._poller is None:
            self._poller = PollingSubscription(
                partial(self.refresh, background=True),
                interval=self._poll_interval,
                name=f"{type(self).__name__}-poll",
            )
        self._poller.start()
        return self._poller

    @contextlib.asynccontextmanager
    async def watch(self) -> AsyncIterator[BookingTracker]:
        """Fetch once, poll in the background, and clean up on exit."""
        await self.refresh()
        self.start_polling()
        try:
            yield self
        finally:
            await self.close()

    async def close(self) -> None:
        """Stop polling and every countdown. Safe to call more than once."""
        poller, self._poller = self._poller, None
        if poller is not None:
            await poller.stop()
        timers = list(self._timers.values())
        self._timers.clear()
        for timer in timers:
            await timer.aclose()
        tasks = list(self._background)
        self._background.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
