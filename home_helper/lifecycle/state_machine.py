"""
Finite state machine for the booking lifecycle.

Defines the ten booking statuses and the explicit transitions between them.
The backend is authoritative: the client only requests transitions
(accept, reject, complete, cancel) and reflects what the backend reports.
The one client-local transition is ``pending -> expired`` when a response
deadline passes.

Usage:
    sm = BookingStateMachine(BookingStatus.PENDING)
    sm.transition(LifecycleTrigger.ACCEPT)
    assert sm.current_status == BookingStatus.BOOKING_ACCEPTED
"""

import logging
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

logger = logging.getLogger(__name__)


class BookingStatus(str, Enum):
    """All possible statuses in a booking lifecycle."""
    PENDING = "pending"
    BOOKING_ACCEPTED = "booking_accepted"
    PAYMENT_PENDING = "payment_pending"
    PAYMENT_CONFIRMED = "payment_confirmed"
    BOOKED = "booked"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    REJECTED = "rejected"


class LifecycleTrigger(str, Enum):
    """Events that move a booking between statuses."""
    # Requested by the client, applied by the backend
    ACCEPT = "accept"
    REJECT = "reject"
    COMPLETE = "complete"
    CANCEL = "cancel"
    # Client-local, never sent to the backend
    DEADLINE_PASSED = "deadline_passed"
    # Observed from the payment flow
    PAYMENT_REQUESTED = "payment_requested"
    PAYMENT_CONFIRMED = "payment_confirmed"
    BOOKED = "booked"
    WORK_STARTED = "work_started"


ACTIVE_STATUSES = frozenset({
    BookingStatus.PENDING,
    BookingStatus.BOOKING_ACCEPTED,
    BookingStatus.PAYMENT_PENDING,
    BookingStatus.PAYMENT_CONFIRMED,
    BookingStatus.BOOKED,
    BookingStatus.IN_PROGRESS,
})

TERMINAL_STATUSES = frozenset({
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
    BookingStatus.EXPIRED,
    BookingStatus.REJECTED,
})

CANCELLABLE_STATUSES = frozenset({
    BookingStatus.PENDING,
    BookingStatus.BOOKING_ACCEPTED,
})

STATUS_LABELS: dict[BookingStatus, str] = {
    BookingStatus.PENDING: "Pending",
    BookingStatus.BOOKING_ACCEPTED: "Awaiting Payment",
    BookingStatus.PAYMENT_PENDING: "Payment Pending",
    BookingStatus.PAYMENT_CONFIRMED: "Payment Confirmed",
    BookingStatus.BOOKED: "Booked",
    BookingStatus.IN_PROGRESS: "In Progress",
    BookingStatus.COMPLETED: "Completed",
    BookingStatus.CANCELLED: "Cancelled",
    BookingStatus.EXPIRED: "Expired",
    BookingStatus.REJECTED: "Rejected",
}


def status_label(status: BookingStatus) -> str:
    return STATUS_LABELS.get(status, status.value)


@dataclass(frozen=True)
class Transition:
    """A single valid status transition."""
    from_status: BookingStatus
    to_status: BookingStatus
    trigger: LifecycleTrigger


@dataclass
class StatusEntry:
    """Recorded history entry for a status visit."""
    status: BookingStatus
    entered_at: datetime
    trigger: Optional[LifecycleTrigger] = None
    observed: bool = False


class InvalidTransitionError(Exception):
    """Raised when a transition is not valid from the current status."""


class BookingStateMachine:
    """
    Lifecycle of a single booking record.

    ``transition`` checks whether a requested action is legal before the
    tracker spends a network call on it. ``observe`` reflects whatever the
    backend reports; statuses the graph cannot reach are still adopted but
    logged, since the backend owns the record.
    """

    TRANSITIONS: list[Transition] = [
        # --- Provider response ---
        Transition(BookingStatus.PENDING, BookingStatus.BOOKING_ACCEPTED,
                   LifecycleTrigger.ACCEPT),
        Transition(BookingStatus.PENDING, BookingStatus.REJECTED,
                   LifecycleTrigger.REJECT),

        # --- Local expiry ---
        Transition(BookingStatus.PENDING, BookingStatus.EXPIRED,
                   LifecycleTrigger.DEADLINE_PASSED),

        # --- Customer cancellation ---
        Transition(BookingStatus.PENDING, BookingStatus.CANCELLED,
                   LifecycleTrigger.CANCEL),
        Transition(BookingStatus.BOOKING_ACCEPTED, BookingStatus.CANCELLED,
                   LifecycleTrigger.CANCEL),

        # --- Payment flow ---
        Transition(BookingStatus.BOOKING_ACCEPTED, BookingStatus.PAYMENT_PENDING,
                   LifecycleTrigger.PAYMENT_REQUESTED),
        Transition(BookingStatus.BOOKING_ACCEPTED, BookingStatus.IN_PROGRESS,
                   LifecycleTrigger.WORK_STARTED),
        Transition(BookingStatus.PAYMENT_PENDING, BookingStatus.PAYMENT_CONFIRMED,
                   LifecycleTrigger.PAYMENT_CONFIRMED),
        Transition(BookingStatus.PAYMENT_CONFIRMED, BookingStatus.BOOKED,
                   LifecycleTrigger.BOOKED),
        Transition(BookingStatus.BOOKED, BookingStatus.IN_PROGRESS,
                   LifecycleTrigger.WORK_STARTED),

        # --- Work done ---
        Transition(BookingStatus.IN_PROGRESS, BookingStatus.COMPLETED,
                   LifecycleTrigger.COMPLETE),
        # the provider dashboard offers completion once a booking is accepted
        Transition(BookingStatus.BOOKING_ACCEPTED, BookingStatus.COMPLETED,
                   LifecycleTrigger.COMPLETE),
        Transition(BookingStatus.PAYMENT_CONFIRMED, BookingStatus.COMPLETED,
                   LifecycleTrigger.COMPLETE),
        Transition(BookingStatus.BOOKED, BookingStatus.COMPLETED,
                   LifecycleTrigger.COMPLETE),
    ]

    def __init__(self, status: BookingStatus = BookingStatus.PENDING) -> None:
        self._current_status = status
        self._history: list[StatusEntry] = [
            StatusEntry(status=status, entered_at=datetime.now(timezone.utc))
        ]

    @property
    def current_status(self) -> BookingStatus:
        return self._current_status

    def can(self, trigger: LifecycleTrigger) -> bool:
        return trigger in self.get_valid_triggers()

    def transition(self, trigger: LifecycleTrigger) -> BookingStatus:
        """
        Execute a status transition.

        Args:
            trigger: The event triggering the transition.

        Returns:
            The new booking status.

        Raises:
            InvalidTransitionError: If no valid transition exists.
        """
        for t in self.TRANSITIONS:
            if t.from_status == self._current_status and t.trigger == trigger:
                old_status = self._current_status
                self._current_status = t.to_status
                self._history.append(StatusEntry(
                    status=self._current_status,
                    entered_at=datetime.now(timezone.utc),
                    trigger=trigger,
                ))
                logger.debug(
                    "Status transition: %s -> %s (trigger: %s)",
                    old_status.value, self._current_status.value, trigger.value,
                )
                return self._current_status

        valid = [t.value for t in self.get_valid_triggers()]
        raise InvalidTransitionError(
            f"No valid transition from '{self._current_status.value}' "
            f"with trigger '{trigger.value}'. Valid triggers: {valid}"
        )

    def observe(self, status: BookingStatus) -> BookingStatus:
        """Adopt a backend-reported status, warning when it is not reachable."""
        if status == self._current_status:
            return status
        if status not in self.reachable_from(self._current_status):
            logger.warning(
                "Backend reported non-monotonic status change: %s -> %s",
                self._current_status.value, status.value,
            )
        self._current_status = status
        self._history.append(StatusEntry(
            status=status,
            entered_at=datetime.now(timezone.utc),
            observed=True,
        ))
        return status

    @classmethod
    def reachable_from(cls, status: BookingStatus) -> set[BookingStatus]:
        """All statuses reachable from ``status`` in one or more transitions."""
        seen: set[BookingStatus] = set()
        queue = deque([status])
        while queue:
            current = queue.popleft()
            for t in cls.TRANSITIONS:
                if t.from_status == current and t.to_status not in seen:
                    seen.add(t.to_status)
                    queue.append(t.to_status)
        return seen

    def get_valid_triggers(self) -> list[LifecycleTrigger]:
        """Return all triggers valid from the current status."""
        return [t.trigger for t in self.TRANSITIONS if t.from_status == self._current_status]

    def get_history(self) -> list[StatusEntry]:
        """Return the full status history."""
        return list(self._history)

    def get_status_trace(self) -> list[str]:
        """Return ordered list of status names visited."""
        return [entry.status.value for entry in self._history]

    def is_terminal(self) -> bool:
        """Check if the booking has reached a terminal status."""
        return self._current_status in TERMINAL_STATUSES
