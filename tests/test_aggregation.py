"""Tests for derived views over booking lists."""

import math
from datetime import timedelta

import pytest

from home_helper.lifecycle.state_machine import BookingStatus
from home_helper.views.aggregation import (
    SearchField,
    active_records,
    derive_counts,
    display_amount,
    display_hours,
    display_status,
    earned_amount,
    featured_record,
    filter_by_date,
    filter_by_status,
    filter_records,
    lifetime_spend,
    matches_search,
    next_booking,
    pending_records,
    recent_records,
)
from tests.conftest import T0, make_record


class TestAmounts:
    def test_total_preferred(self):
        assert display_amount(make_record(total_amount=900, hourly_rate=100, duration_hours=3)) == 900

    def test_rate_times_hours_fallback(self):
        assert display_amount(make_record(total_amount=None, hourly_rate=400, duration_hours=2.5)) == 1000

    def test_missing_everything_is_zero_not_nan(self):
        amount = display_amount(make_record(total_amount=None))
        assert amount == 0
        assert not math.isnan(amount)

    def test_earned_prefers_first_payment(self):
        assert earned_amount(make_record(total_amount=2000, payments=[1800, 200])) == 1800

    def test_earned_falls_back_to_total(self):
        assert earned_amount(make_record(total_amount=None)) == 0

    def test_display_hours_derived_from_rate(self):
        assert display_hours(make_record(total_amount=1500, hourly_rate=500)) == 3

    def test_display_hours_without_rate(self):
        assert display_hours(make_record(total_amount=1500)) == 0

    def test_lifetime_spend_counts_completed_only(self):
        records = [
            make_record("A", BookingStatus.COMPLETED, 1000),
            make_record("B", BookingStatus.COMPLETED, None),
            make_record("C", BookingStatus.BOOKED, 5000),
        ]
        assert lifetime_spend(records) == 1000


class TestExpiryViews:
    def test_expired_pending_excluded(self):
        records = [
            make_record("live", expires_at=T0 + timedelta(minutes=1)),
            make_record("dead", expires_at=T0 - timedelta(seconds=1)),
            make_record("open"),
        ]
        assert [r.id for r in pending_records(records, T0)] == ["live", "open"]

    def test_deadline_equal_to_now_is_expired(self):
        record = make_record(expires_at=T0)
        assert display_status(record, T0) == BookingStatus.EXPIRED

    def test_deadline_ignored_once_accepted(self):
        record = make_record(status=BookingStatus.BOOKING_ACCEPTED, expires_at=T0 - timedelta(hours=1))
        assert display_status(record, T0) == BookingStatus.BOOKING_ACCEPTED
        assert active_records([record], T0) == [record]


class TestFeatured:
    def test_highest_earning(self):
        records = [
            make_record("A", BookingStatus.COMPLETED, 1000),
            make_record("B", BookingStatus.COMPLETED, 3000),
        ]
        featured = featured_record(records)
        assert featured.record.id == "B"
        assert featured.amount == 3000

    def test_tie_keeps_first(self):
        records = [
            make_record("first", BookingStatus.COMPLETED, 2000),
            make_record("second", BookingStatus.COMPLETED, 2000),
        ]
        assert featured_record(records).record.id == "first"

    def test_payment_beats_total(self):
        records = [
            make_record("A", BookingStatus.COMPLETED, 5000, payments=[100]),
            make_record("B", BookingStatus.COMPLETED, 400),
        ]
        assert featured_record(records).record.id == "B"

    def test_empty(self):
        assert featured_record([]) is None


class TestCounts:
    def _records(self):
        return [
            make_record("p1", expires_at=T0 + timedelta(minutes=2)),
            make_record("p2", expires_at=T0 - timedelta(minutes=2)),
            make_record("a1", BookingStatus.BOOKING_ACCEPTED, requested_at=T0 + timedelta(days=1)),
            make_record("pp", BookingStatus.PAYMENT_PENDING),
            make_record("c1", BookingStatus.COMPLETED),
            make_record("x1", BookingStatus.CANCELLED, requested_at=T0 + timedelta(days=2)),
        ]

    def test_counts(self):
        counts = derive_counts(self._records(), T0)
        assert counts.pending == 1
        assert counts.active == 3
        assert counts.completed == 1
        assert counts.pending_payment == 1
        assert counts.awaiting_payment == 1
        assert counts.upcoming == 1

    def test_counts_are_pure(self):
        records = self._records()
        assert derive_counts(records, T0) == derive_counts(records, T0)
        assert len(records) == 6


class TestOrdering:
    def test_next_booking_is_earliest_open(self):
        records = [
            make_record("late", BookingStatus.BOOKED, requested_at=T0 + timedelta(days=3)),
            make_record("soon", BookingStatus.BOOKED, requested_at=T0 + timedelta(days=1)),
            make_record("done", BookingStatus.COMPLETED, requested_at=T0),
        ]
        assert next_booking(records).id == "soon"

    def test_next_booking_none(self):
        assert next_booking([make_record()]) is None

    def test_recent_uses_status_update_then_created(self):
        records = [
            make_record("old", created_at=T0 - timedelta(days=3)),
            make_record("updated", status_updated_at=T0),
            make_record("undated"),
            make_record("created", created_at=T0 - timedelta(days=1)),
        ]
        assert [r.id for r in recent_records(records, limit=3)] == ["updated", "created", "old"]


class TestFiltering:
    def test_search_defaults_to_customer_name(self):
        record = make_record(customer_name="Sara Ahmed", service_name="Sara Cleaning Co")
        assert matches_search(record, "  sara ")
        assert not matches_search(make_record(customer_name="Bilal", service_name="Sara"), "sara")

    def test_search_by_service(self):
        record = make_record(service_name="Deep Cleaning")
        assert matches_search(record, "deep", SearchField.SERVICE)

    def test_search_by_id(self):
        assert matches_search(make_record("BK-1001"), "1001", SearchField.ID)

    def test_any_matches_across_fields(self):
        record = make_record(customer_name="Hina", service_name="Plumbing")
        assert matches_search(record, "plumb", SearchField.ANY)
        assert matches_search(record, "imran", SearchField.ANY)

    def test_empty_term_matches_all(self):
        assert matches_search(make_record(), "")

    def test_filter_by_date(self):
        when = T0 + timedelta(days=1)
        records = [make_record("a", requested_at=when), make_record("b", requested_at=when + timedelta(days=2))]
        day = when.astimezone().date()
        assert [r.id for r in filter_by_date(records, day)] == ["a"]

    @pytest.mark.parametrize("status,expected", [
        ("all", ["a", "b"]),
        (BookingStatus.COMPLETED, ["b"]),
        ("pending", ["a"]),
    ])
    def test_filter_by_status(self, status, expected):
        records = [make_record("a"), make_record("b", BookingStatus.COMPLETED)]
        assert [r.id for r in filter_by_status(records, status)] == expected

    def test_filter_records_combines(self):
        records = [
            make_record("a", customer_name="Sara"),
            make_record("b", BookingStatus.COMPLETED, customer_name="Sara"),
            make_record("c", customer_name="Omar"),
        ]
        assert [r.id for r in filter_records(records, term="sara", status="pending")] == ["a"]
