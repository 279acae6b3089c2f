"""Shared test fixtures and helpers."""

import json
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional, Union

import httpx
import pytest

from home_helper.api.client import BackendClient
from home_helper.lifecycle.state_machine import BookingStateMachine, BookingStatus
from home_helper.notifications import Notifier
from home_helper.schemas.booking_schema import BookingRecord, Counterpart, PaymentRecord
from home_helper.schemas.session_schema import SessionContext

BASE_URL = "http://backend.test/api/v1"
T0 = datetime(2025, 3, 15, 10, 0, tzinfo=timezone.utc)


class FakeClock:
    """Injectable clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def envelope(data: Any = None, status_code: int = 200, success: bool = True, message: Optional[str] = None):
    body: dict[str, Any] = {"success": success, "data": data}
    if message is not None:
        body["message"] = message
    return httpx.Response(status_code, json=body)


Route = Union[httpx.Response, Callable[[httpx.Request], Any]]


class FakeBackend:
    """Routes requests by ``"METHOD /path"`` (optionally ``?query``) and records them."""

    def __init__(self) -> None:
        self.routes: dict[str, Route] = {}
        self.requests: list[httpx.Request] = []

    def on(self, method: str, path: str, response: Route) -> None:
        self.routes[f"{method} {path}"] = response

    def calls(self, method: str, path: str) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and r.url.path.endswith(path)
        ]

    def json_body(self, request: httpx.Request) -> Any:
        return json.loads(request.content or b"null")

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path[len("/api/v1"):]
        query = request.url.query.decode() if isinstance(request.url.query, bytes) else request.url.query
        keys = [f"{request.method} {path}?{query}"] if query else []
        keys.append(f"{request.method} {path}")
        for key in keys:
            route = self.routes.get(key)
            if route is None:
                continue
            if isinstance(route, httpx.Response):
                return route
            result = route(request)
            if hasattr(result, "__await__"):
                result = await result
            return result
        return httpx.Response(404, json={"success": False, "message": f"No route for {keys[-1]}"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def session():
    return SessionContext(auth_token="test-token")


@pytest.fixture
def client(backend, session):
    return BackendClient(session=session, base_url=BASE_URL, timeout=2.0, transport=backend.transport)


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def state_machine():
    return BookingStateMachine()


def iso(moment: datetime) -> str:
    return moment.isoformat().replace("+00:00", "Z")


def make_raw_booking(
    booking_id: str = "B-1",
    status: str = "pending",
    expires_at: Optional[datetime] = None,
    requested_at: Optional[datetime] = None,
    total_amount: Optional[float] = 1500,
    customer_name: str = "Sara Ahmed",
    service_name: str = "Deep Cleaning",
    **extra: Any,
) -> dict[str, Any]:
    """Raw backend booking dict with sensible defaults."""
    raw: dict[str, Any] = {
        "bookingId": booking_id,
        "status": status,
        "customer": {"userId": "C-1", "name": customer_name, "phone": "03001234567"},
        "provider": {"providerId": "P-1", "name": "Imran Ali"},
        "service": {"subcategory": {"name": service_name}, "hourlyRate": 500},
        "serviceAddress": "House 12, Street 4, Lahore",
        "durationHours": 3,
        "requestedDateTime": iso(requested_at or T0 + timedelta(days=1)),
    }
    if total_amount is not None:
        raw["totalAmount"] = total_amount
    if expires_at is not None:
        raw["bookingExpiresAt"] = iso(expires_at)
    raw.update(extra)
    return raw


def make_record(
    booking_id: str = "B-1",
    status: BookingStatus = BookingStatus.PENDING,
    total_amount: Optional[float] = 1500.0,
    customer_name: str = "Sara Ahmed",
    payments: Optional[list[float]] = None,
    **fields: Any,
) -> BookingRecord:
    """Canonical BookingRecord with sensible defaults."""
    return BookingRecord(
        id=booking_id,
        status=status,
        total_amount=total_amount,
        customer=Counterpart(id="C-1", name=customer_name),
        provider=Counterpart(id="P-1", name="Imran Ali"),
        payments=[PaymentRecord(amount=a) for a in (payments or [])],
        **fields,
    )
