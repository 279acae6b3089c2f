"""Shared utilities used across the booking lifecycle client."""

import math
from datetime import datetime, timezone
from typing import Any, Optional


def utc_now() -> datetime:
    """Current time as an aware UTC datetime. Injected as the default clock."""
    return datetime.now(timezone.utc)


def to_number(value: Any) -> Optional[float]:
    """Coerce a backend numeric field to a finite float, or None.

    Examples:
        >>> to_number("1500")
        1500.0
        >>> to_number("abc") is None
        True
        >>> to_number(float("nan")) is None
        True
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def non_negative(value: Any, default: float = 0.0) -> float:
    """Like to_number, but falls back to ``default`` and clamps at zero."""
    number = to_number(value)
    if number is None:
        return default
    return max(number, 0.0)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string, epoch milliseconds or datetime into aware UTC.

    Naive values are assumed to be UTC. Unparseable input yields None.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def first_present(*values: Any) -> Any:
    """Return the first value that is neither None nor an empty string."""
    for value in values:
        if value is not None and value != "":
            return value
    return None
