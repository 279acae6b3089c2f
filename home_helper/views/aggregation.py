"""
Derived views over the raw booking list.

Every function here is a pure function of the records passed in (and
``now`` where time matters). Trackers call them after each refresh and
never patch previous results, so a fresh fetch fully determines every
count, filter and featured record.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import Enum
from typing import Iterable, Optional, Union

from home_helper.lifecycle.state_machine import ACTIVE_STATUSES, BookingStatus
from home_helper.schemas.booking_schema import BookingRecord

RECENT_LIMIT = 4
_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class SearchField(str, Enum):
    CUSTOMER = "customer"
    PROVIDER = "provider"
    SERVICE = "service"
    LOCATION = "location"
    ID = "id"
    ANY = "any"


# --------------------------------------------------------------------- #
# Amounts
# --------------------------------------------------------------------- #

def display_amount(record: BookingRecord) -> float:
    """Total to show: ``total_amount``, else ``hourly_rate x duration_hours``."""
    if record.total_amount is not None:
        return record.total_amount
    return record.hourly_rate * record.duration_hours


def earned_amount(record: BookingRecord) -> float:
    """What the provider was paid: first payment, else the booking total."""
    if record.payments:
        return record.payments[0].amount
    return record.total_amount or 0.0


def display_hours(record: BookingRecord) -> float:
    if record.duration_hours > 0:
        return record.duration_hours
    if record.hourly_rate > 0:
        return (record.total_amount or 0.0) / record.hourly_rate
    return 0.0


def lifetime_spend(records: Iterable[BookingRecord]) -> float:
    return sum(r.total_amount or 0.0 for r in records if r.status == BookingStatus.COMPLETED)


# --------------------------------------------------------------------- #
# Status
# --------------------------------------------------------------------- #

def is_locally_expired(record: BookingRecord, now: datetime) -> bool:
    """A pending record whose response deadline has passed."""
    return (
        record.status == BookingStatus.PENDING
        and record.expires_at is not None
        and record.expires_at <= now
    )


def display_status(record: BookingRecord, now: datetime) -> BookingStatus:
    if is_locally_expired(record, now):
        return BookingStatus.EXPIRED
    return record.status


def pending_records(records: Iterable[BookingRecord], now: datetime) -> list[BookingRecord]:
    """Records awaiting a provider response whose deadline has not passed."""
    return [
        r for r in records
        if r.status == BookingStatus.PENDING and not is_locally_expired(r, now)
    ]


def active_records(records: Iterable[BookingRecord], now: datetime) -> list[BookingRecord]:
    return [
        r for r in records
        if r.status in ACTIVE_STATUSES and not is_locally_expired(r, now)
    ]


def completed_records(records: Iterable[BookingRecord]) -> list[BookingRecord]:
    return [r for r in records if r.status == BookingStatus.COMPLETED]


def awaiting_payment_records(records: Iterable[BookingRecord]) -> list[BookingRecord]:
    """Accepted by a provider, waiting for the customer to pay."""
    return [r for r in records if r.status == BookingStatus.BOOKING_ACCEPTED]


def upcoming_records(records: Iterable[BookingRecord], now: datetime) -> list[BookingRecord]:
    return [
        r for r in records
        if r.requested_at is not None
        and r.requested_at >= now
        and r.status not in (BookingStatus.COMPLETED, BookingStatus.CANCELLED)
    ]


def next_booking(records: Iterable[BookingRecord]) -> Optional[BookingRecord]:
    """Earliest scheduled booking that is neither completed nor cancelled."""
    candidates = [
        r for r in records
        if r.requested_at is not None
        and r.status not in (BookingStatus.COMPLETED, BookingStatus.CANCELLED)
    ]
    if not candidates:
        return None
    return min(candidates, key=lambda r: r.requested_at)


def _recency_key(record: BookingRecord) -> datetime:
    stamp = record.status_updated_at or record.created_at or record.requested_at
    return stamp or _EPOCH


def sort_by_recency(records: Iterable[BookingRecord]) -> list[BookingRecord]:
    return sorted(records, key=_recency_key, reverse=True)


def recent_records(records: Iterable[BookingRecord], limit: int = RECENT_LIMIT) -> list[BookingRecord]:
    return sort_by_recency(records)[:limit]


# --------------------------------------------------------------------- #
# Filtering
# --------------------------------------------------------------------- #

def _field_values(record: BookingRecord, field: SearchField) -> list[str]:
    if field == SearchField.CUSTOMER:
        return [record.customer_name]
    if field == SearchField.PROVIDER:
        return [record.provider_name]
    if field == SearchField.SERVICE:
        return [record.service_name]
    if field == SearchField.LOCATION:
        return [record.service_address]
    if field == SearchField.ID:
        return [record.id]
    return [record.customer_name, record.provider_name, record.service_name]


def matches_search(
    record: BookingRecord, term: str, field: SearchField = SearchField.CUSTOMER
) -> bool:
    normalized = term.strip().lower()
    if not normalized:
        return True
    return any(normalized in value.lower() for value in _field_values(record, field))


def filter_by_search(
    records: Iterable[BookingRecord], term: str, field: SearchField = SearchField.CUSTOMER
) -> list[BookingRecord]:
    return [r for r in records if matches_search(r, term, field)]


def filter_by_date(records: Iterable[BookingRecord], day: Optional[date]) -> list[BookingRecord]:
    """Keep records whose requested time falls on ``day`` in local time."""
    if day is None:
        return list(records)
    return [
        r for r in records
        if r.requested_at is not None and r.requested_at.astimezone().date() == day
    ]


def filter_by_status(
    records: Iterable[BookingRecord], status: Union[BookingStatus, str] = "all"
) -> list[BookingRecord]:
    if status == "all":
        return list(records)
    return [r for r in records if r.status == status]


def filter_records(
    records: Iterable[BookingRecord],
    term: str = "",
    field: SearchField = SearchField.CUSTOMER,
    day: Optional[date] = None,
    status: Union[BookingStatus, str] = "all",
) -> list[BookingRecord]:
    return filter_by_status(filter_by_date(filter_by_search(records, term, field), day), status)


# --------------------------------------------------------------------- #
# Aggregates
# --------------------------------------------------------------------- #

@dataclass(frozen=True)
class FeaturedRecord:
    record: BookingRecord
    amount: float


def featured_record(completed: Iterable[BookingRecord]) -> Optional[FeaturedRecord]:
    """Top-earning record. Ties keep the first one encountered."""
    best: Optional[FeaturedRecord] = None
    for record in completed:
        amount = earned_amount(record)
        if best is None or amount > best.amount:
            best = FeaturedRecord(record=record, amount=amount)
    return best


@dataclass(frozen=True)
class BookingCounts:
    """Badge and summary counts for one snapshot of the raw list."""
    pending: int = 0
    active: int = 0
    completed: int = 0
    pending_payment: int = 0
    awaiting_payment: int = 0
    upcoming: int = 0


def derive_counts(records: Iterable[BookingRecord], now: datetime) -> BookingCounts:
    snapshot = list(records)
    return BookingCounts(
        pending=len(pending_records(snapshot, now)),
        active=len(active_records(snapshot, now)),
        completed=len(completed_records(snapshot)),
        pending_payment=sum(1 for r in snapshot if r.status == BookingStatus.PAYMENT_PENDING),
        awaiting_payment=len(awaiting_payment_records(snapshot)),
        upcoming=len(upcoming_records(snapshot, now)),
    )
