"""Tests for the console watcher's summaries."""

import pytest

from home_helper.lifecycle.customer import CustomerBookingTracker
from main import print_customer
from tests.conftest import envelope, make_raw_booking


class TestPrintCustomer:
    @pytest.mark.asyncio
    async def test_payment_counts_use_matching_labels(self, backend, client, notifier, clock, capsys):
        backend.on("GET", "/customer/booking/requests", envelope({"bookings": [
            make_raw_booking("B-1", status="booking_accepted"),
            make_raw_booking("B-2", status="booking_accepted"),
            make_raw_booking("B-3", status="payment_pending"),
        ]}))
        tracker = CustomerBookingTracker(client, notifier, clock=clock, poll_interval=60, tick_interval=0.01)
        async with tracker.watch():
            print_customer(tracker)
        first_line = capsys.readouterr().out.splitlines()[0]
        assert "awaiting payment 2" in first_line
        assert "payment pending 1" in first_line
