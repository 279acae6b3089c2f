from home_helper.lifecycle.countdown import CountdownTimer, format_remaining
from home_helper.lifecycle.polling import PollingSubscription
from home_helper.lifecycle.state_machine import (
    BookingStateMachine,
    BookingStatus,
    InvalidTransitionError,
    LifecycleTrigger,
)

__all__ = [
    "BookingStateMachine",
    "BookingStatus",
    "LifecycleTrigger",
    "InvalidTransitionError",
    "CountdownTimer",
    "format_remaining",
    "PollingSubscription",
]
