"""Uniform result returned by every backend call."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel


class ErrorKind(str, Enum):
    NETWORK = "network"
    TIMEOUT = "timeout"
    BACKEND = "backend"
    VALIDATION = "validation"


TIMEOUT_MESSAGE = "Request timeout. Please try again."
NETWORK_MESSAGE = "Network error. Please check your connection."
DEFAULT_BACKEND_MESSAGE = "An error occurred"


class ApiResult(BaseModel):
    """Outcome of a backend call. Failures are values, never exceptions.

    ``data`` is the envelope's ``data`` member on success; ``body`` keeps
    the whole decoded response for callers that need more.
    """
    ok: bool
    data: Any = None
    body: Any = None
    message: Optional[str] = None
    status_code: Optional[int] = None
    error_kind: Optional[ErrorKind] = None

    @classmethod
    def failure(
        cls,
        kind: ErrorKind,
        message: str,
        status_code: Optional[int] = None,
        body: Any = None,
    ) -> "ApiResult":
        return cls(ok=False, error_kind=kind, message=message, status_code=status_code, body=body)
