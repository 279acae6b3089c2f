"""Session-scoped log correlation.

Every dashboard run gets one session id (``provider-1a2b3c4d``). It lives
in a ContextVar, so background refreshes, countdown callbacks and polling
tasks created inside the run inherit it. ``SessionIdFilter`` copies it onto
each log record and ``LOG_FORMAT`` prints it.

The filter is installed on the root handlers by ``load_config`` and on the
package's own loggers by ``get_session_logger``. Records from third-party
loggers such as httpx pass through the root handlers, so they carry the id
as well.
"""

import contextlib
import logging
import uuid
from contextvars import ContextVar
from typing import Iterator

NO_SESSION = "-"

LOG_FORMAT = "%(asctime)s [%(session_id)s] [%(name)s] %(levelname)s: %(message)s"

_session_id: ContextVar[str] = ContextVar("session_id", default=NO_SESSION)


def new_session_id(role: str) -> str:
    return f"{role}-{uuid.uuid4().hex[:8]}"


def get_session_id() -> str:
    return _session_id.get()


@contextlib.contextmanager
def session_scope(session_id: str) -> Iterator[str]:
    """Bind ``session_id`` for the duration of the block, then restore the previous one."""
    token = _session_id.set(session_id)
    try:
        yield session_id
    finally:
        _session_id.reset(token)


class SessionIdFilter(logging.Filter):
    """Stamp the current session id on every record passing through."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "session_id"):
            record.session_id = get_session_id()  # type: ignore[attr-defined]
        return True


def _ensure_filter(target: logging.Filterer) -> None:
    if not any(isinstance(f, SessionIdFilter) for f in target.filters):
        target.addFilter(SessionIdFilter())


def install_session_filter(*handlers: logging.Handler) -> None:
    """Attach the filter to ``handlers``, or to every root handler when none are given."""
    for handler in handlers or tuple(logging.getLogger().handlers):
        _ensure_filter(handler)


def get_session_logger(name: str) -> logging.Logger:
    """Return a package logger whose records always carry ``session_id``."""
    logger = logging.getLogger(name)
    _ensure_filter(logger)
    return logger
