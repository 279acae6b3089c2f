"""Authenticated session state and its explicit load/save boundary."""

import logging
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, ValidationError

from home_helper.utils import first_present, to_number

logger = logging.getLogger(__name__)


class UserProfile(BaseModel):
    """The signed-in user as far as the booking client cares."""
    user_id: Optional[str] = None
    name: str = ""
    email: Optional[str] = None
    role: Optional[str] = None
    provider_id: Optional[str] = None
    total_spent: Optional[float] = None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "UserProfile":
        """Build from a ``/customer/profile`` or ``/provider/profile`` payload."""
        user = data.get("user") if isinstance(data.get("user"), dict) else data
        provider = data.get("provider") if isinstance(data.get("provider"), dict) else {}
        user_id = first_present(user.get("userId"), user.get("id"))
        provider_id = first_present(provider.get("providerId"), user.get("providerId"))
        return cls(
            user_id=str(user_id) if user_id is not None else None,
            name=str(first_present(user.get("name"), user.get("fullName")) or ""),
            email=user.get("email"),
            role=user.get("role"),
            provider_id=str(provider_id) if provider_id is not None else None,
            total_spent=to_number(user.get("totalSpent")),
        )


class SessionContext(BaseModel):
    """Bearer token plus cached user, passed explicitly to the API client."""
    auth_token: Optional[str] = None
    user: Optional[UserProfile] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.auth_token)


class SessionStore:
    """Reads and writes a SessionContext as JSON at a fixed path."""

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()

    def load(self) -> SessionContext:
        """Load the saved session; a missing or corrupt file yields an empty one."""
        if not self.path.exists():
            return SessionContext()
        try:
            return SessionContext.model_validate_json(self.path.read_text(encoding="utf-8"))
        except (ValidationError, ValueError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self.path, e)
            return SessionContext()

    def save(self, session: SessionContext) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(session.model_dump_json(indent=2), encoding="utf-8")
        logger.debug("Session saved to %s", self.path)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
