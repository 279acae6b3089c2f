"""User-visible notifications ("toasts") raised by trackers.

Only one notification is current at a time, as on the dashboards: a new
one replaces the previous. All of them are kept in ``history`` and pushed
to an optional sink (a UI callback, the console printer in ``main.py``).
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from home_helper.config import settings
from home_helper.utils import utc_now

logger = logging.getLogger(__name__)


class NotificationStatus(str, Enum):
    SUCCESS = "success"
    ERROR = "error"
    INFO = "info"
    WARNING = "warning"


@dataclass(frozen=True)
class Notification:
    status: NotificationStatus
    title: str
    message: str = ""
    duration_ms: int = settings.timers.toast_duration_ms
    created_at: datetime = field(default_factory=utc_now)


NotificationSink = Callable[[Notification], None]

_LOG_LEVELS = {
    NotificationStatus.SUCCESS: logging.INFO,
    NotificationStatus.INFO: logging.INFO,
    NotificationStatus.WARNING: logging.WARNING,
    NotificationStatus.ERROR: logging.WARNING,
}


class Notifier:
    """Collects notifications and forwards them to a sink."""

    def __init__(self, sink: Optional[NotificationSink] = None) -> None:
        self._sink = sink
        self._current: Optional[Notification] = None
        self.history: list[Notification] = []

    @property
    def current(self) -> Optional[Notification]:
        return self._current

    def notify(
        self,
        status: NotificationStatus,
        title: str,
        message: str = "",
        duration_ms: Optional[int] = None,
    ) -> Notification:
        notification = Notification(
            status=status,
            title=title,
            message=message,
            duration_ms=duration_ms or settings.timers.toast_duration_ms,
        )
        self._current = notification
        self.history.append(notification)
        logger.log(_LOG_LEVELS[status], "%s: %s", title, message)
        if self._sink is not None:
            self._sink(notification)
        return notification

    def success(self, title: str, message: str = "") -> Notification:
        return self.notify(NotificationStatus.SUCCESS, title, message)

    def error(self, title: str, message: str = "") -> Notification:
        return self.notify(NotificationStatus.ERROR, title, message)

    def info(self, title: str, message: str = "") -> Notification:
        return self.notify(NotificationStatus.INFO, title, message)

    def dismiss(self) -> None:
        self._current = None

    def of_status(self, status: NotificationStatus) -> list[Notification]:
        return [n for n in self.history if n.status == status]
