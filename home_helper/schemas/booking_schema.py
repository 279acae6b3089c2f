"""Canonical booking record and the one place raw backend shapes are normalized.

The backend attaches the same facts under several aliases (``bookingId``
or ``requestId``, ``imageUrl`` or ``profileImageUrl`` or ``photo``, ...).
``normalize_booking`` resolves them once at ingestion; everything else in
the package consumes ``BookingRecord`` only.
"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, ValidationError

from home_helper.lifecycle.state_machine import BookingStatus
from home_helper.utils import first_present, non_negative, parse_timestamp, to_number

logger = logging.getLogger(__name__)


class RequestType(str, Enum):
    INSTANT = "instant"
    BOOKING = "booking"


class Counterpart(BaseModel):
    """The other party on a booking, denormalized by the backend."""
    id: Optional[str] = None
    name: str = ""
    image_url: Optional[str] = None
    phone: Optional[str] = None


class PaymentRecord(BaseModel):
    amount: float = 0.0
    status: Optional[str] = None


class BookingRecord(BaseModel):
    """A booking or instant request in its canonical client-side shape."""
    id: str
    status: BookingStatus = BookingStatus.PENDING
    request_type: RequestType = RequestType.BOOKING
    requested_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    total_amount: Optional[float] = None
    hourly_rate: float = 0.0
    duration_hours: float = 0.0
    payments: list[PaymentRecord] = Field(default_factory=list)
    customer: Optional[Counterpart] = None
    provider: Optional[Counterpart] = None
    service_name: str = ""
    service_address: str = ""
    customer_notes: str = ""
    payment_status: Optional[str] = None
    rejection_reason: Optional[str] = None
    distance: Optional[str] = None
    created_at: Optional[datetime] = None
    status_updated_at: Optional[datetime] = None

    model_config = {"frozen": True}

    @property
    def customer_name(self) -> str:
        return self.customer.name if self.customer else ""

    @property
    def provider_name(self) -> str:
        return self.provider.name if self.provider else ""


def _optional_text(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def _parse_status(raw: Any) -> BookingStatus:
    if not raw:
        return BookingStatus.PENDING
    try:
        return BookingStatus(str(raw).strip().lower())
    except ValueError:
        logger.warning("Unknown booking status %r, treating as pending", raw)
        return BookingStatus.PENDING


def _parse_counterpart(raw: Any, flat_name: Any = None, flat_phone: Any = None) -> Optional[Counterpart]:
    if not isinstance(raw, dict):
        if flat_name:
            return Counterpart(name=str(flat_name), phone=_optional_text(flat_phone))
        return None
    ident = first_present(raw.get("userId"), raw.get("providerId"), raw.get("customerId"), raw.get("id"))
    return Counterpart(
        id=str(ident) if ident is not None else None,
        name=str(first_present(raw.get("name"), raw.get("fullName"), flat_name) or ""),
        image_url=_optional_text(first_present(raw.get("imageUrl"), raw.get("profileImageUrl"), raw.get("photo"))),
        phone=_optional_text(first_present(raw.get("phone"), raw.get("phoneNumber"), flat_phone)),
    )


def _parse_payments(raw: Any) -> list[PaymentRecord]:
    if not isinstance(raw, list):
        return []
    return [
        PaymentRecord(amount=non_negative(p.get("amount")), status=_optional_text(p.get("status")))
        for p in raw
        if isinstance(p, dict)
    ]


def _service_name(raw: dict) -> str:
    service = raw.get("service") if isinstance(raw.get("service"), dict) else {}
    subcategory = service.get("subcategory") if isinstance(service.get("subcategory"), dict) else {}
    return str(first_present(
        subcategory.get("name"),
        raw.get("subcategoryName"),
        raw.get("serviceName"),
        service.get("name"),
    ) or "")


def normalize_booking(
    raw: dict[str, Any], request_type: Optional[RequestType] = None
) -> Optional[BookingRecord]:
    """Build a BookingRecord from a raw backend dict.

    Returns None (and logs) when the record carries no usable id.
    ``request_type`` overrides the record's own ``requestType``; instant
    request collections pass ``RequestType.INSTANT``.
    """
    ident = first_present(raw.get("bookingId"), raw.get("requestId"), raw.get("id"))
    if ident is None:
        logger.warning("Dropping booking record without an id: keys=%s", sorted(raw))
        return None

    if request_type is None:
        try:
            request_type = RequestType(str(raw.get("requestType") or "booking").lower())
        except ValueError:
            request_type = RequestType.BOOKING

    service = raw.get("service") if isinstance(raw.get("service"), dict) else {}
    total = to_number(raw.get("totalAmount"))

    return BookingRecord(
        id=str(ident),
        status=_parse_status(raw.get("status")),
        request_type=request_type,
        requested_at=parse_timestamp(raw.get("requestedDateTime")),
        expires_at=parse_timestamp(raw.get("bookingExpiresAt")),
        total_amount=max(total, 0.0) if total is not None else None,
        hourly_rate=non_negative(first_present(
            raw.get("hourlyRate"), service.get("hourlyRate"), raw.get("rate"),
        )),
        duration_hours=non_negative(raw.get("durationHours")),
        payments=_parse_payments(raw.get("payments")),
        customer=_parse_counterpart(raw.get("customer"), raw.get("customerName")),
        provider=_parse_counterpart(raw.get("provider"), raw.get("providerName"), raw.get("providerPhone")),
        service_name=_service_name(raw),
        service_address=str(raw.get("serviceAddress") or ""),
        customer_notes=str(raw.get("customerNotes") or ""),
        payment_status=_optional_text(raw.get("paymentStatus")),
        rejection_reason=_optional_text(raw.get("rejectionReason")),
        distance=_optional_text(raw.get("distance")),
        created_at=parse_timestamp(raw.get("createdAt")),
        status_updated_at=parse_timestamp(raw.get("statusUpdatedAt")),
    )


def extract_records(data: Any, key: str) -> list[dict[str, Any]]:
    """Pull the raw record list out of ``data`` (a list, or a dict holding ``key``)."""
    if isinstance(data, dict):
        data = data.get(key)
    if not isinstance(data, list):
        return []
    return [item for item in data if isinstance(item, dict)]


def normalize_many(
    data: Any, key: str, request_type: Optional[RequestType] = None
) -> list[BookingRecord]:
    records = []
    for raw in extract_records(data, key):
        try:
            record = normalize_booking(raw, request_type)
        except ValidationError as exc:
            ident = first_present(raw.get("bookingId"), raw.get("requestId"), raw.get("id"))
            logger.warning("Dropping malformed booking record %r: %s", ident, exc)
            continue
        if record is not None:
            records.append(record)
    return records
