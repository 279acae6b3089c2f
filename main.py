"""
Home Helper console watcher.

Loads the saved session, follows a provider's or customer's bookings and
prints a summary after every refresh, with a live countdown for each
pending request.

Usage:
    Provider:     python main.py provider
    Customer:     python main.py customer --once
"""

import argparse
import asyncio
import logging
import sys

from home_helper.api.client import BackendClient
from home_helper.config import settings
from home_helper.lifecycle.customer import CustomerBookingTracker
from home_helper.lifecycle.provider import ProviderBookingTracker
from home_helper.lifecycle.state_machine import status_label
from home_helper.lifecycle.tracker import BookingTracker
from home_helper.logging_context import new_session_id, session_scope
from home_helper.notifications import Notification, Notifier
from home_helper.schemas.session_schema import SessionStore
from home_helper.views.aggregation import display_amount

logger = logging.getLogger(__name__)


def _print_notification(notification: Notification) -> None:
    print(f"  [{notification.status.value}] {notification.title}  {notification.message}".rstrip())


def _print_pending(tracker: BookingTracker, collection: str, records) -> None:
    for record in records:
        timer = tracker.countdown(collection, record.id)
        remaining = timer.display() if timer else ""
        print(
            f"    {record.id:<12} {record.customer_name or record.provider_name:<20} "
            f"{record.service_name:<18} {display_amount(record):>9.2f}  {remaining}"
        )


def print_provider(tracker: ProviderBookingTracker) -> None:
    counts = tracker.counts()
    print(
        f"Pending {tracker.pending_badge_count()} | active {counts.active} | "
        f"completed {counts.completed}"
    )
    print("  Booking requests:")
    _print_pending(tracker, tracker.ACTIVE, tracker.pending_view())
    print("  Instant requests:")
    _print_pending(tracker, tracker.INSTANT, tracker.instant_view())
    featured = tracker.featured()
    if featured is not None:
        print(f"  Top earning: {featured.record.service_name or featured.record.id} ({featured.amount:.2f})")


def print_customer(tracker: CustomerBookingTracker) -> None:
    counts = tracker.counts()
    insights = tracker.spend_insights()
    print(
        f"Upcoming {counts.upcoming} | active {counts.active} | completed {counts.completed} | "
        f"awaiting payment {counts.awaiting_payment} | payment pending {counts.pending_payment}"
    )
    print(
        f"  Lifetime spend {insights.lifetime_spend:.2f}, rank {insights.rank} of "
        f"{insights.total_users} (top {insights.percentile}%)"
    )
    upcoming = tracker.next_booking()
    if upcoming is not None:
        print(f"  Next: {upcoming.service_name or upcoming.id} at {upcoming.requested_at:%Y-%m-%d %H:%M}")
    print("  Recent:")
    for record in tracker.recent():
        timer = tracker.countdown(tracker.BOOKINGS, record.id)
        remaining = timer.display() if timer else ""
        print(f"    {record.id:<12} {status_label(tracker.display_status(record)):<18} {remaining}")


async def run(role: str, once: bool) -> int:
    session = SessionStore(settings.session_file).load()
    if not session.is_authenticated:
        logger.warning("No saved session at %s; requests will be unauthenticated", settings.session_file)

    notifier = Notifier(sink=_print_notification)

    async with BackendClient(session=session) as client:
        if role == "provider":
            tracker = ProviderBookingTracker(client, notifier)
            render = print_provider
        else:
            tracker = CustomerBookingTracker(
                client, notifier, session_store=SessionStore(settings.session_file)
            )
            await tracker.refresh_profile()
            await tracker.refresh_leaderboard()
            render = print_customer

        if once:
            ok = await tracker.refresh()
            render(tracker)
            await tracker.close()
            return 0 if ok else 1

        async with tracker.watch():
            last_seen = None
            while True:
                if tracker.last_refreshed_at != last_seen:
                    last_seen = tracker.last_refreshed_at
                    render(tracker)
                await asyncio.sleep(settings.timers.tick_sec)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Watch Home Helper bookings from the console."
    )
    parser.add_argument(
        "role",
        choices=["provider", "customer"],
        help="Which dashboard to follow.",
    )
    parser.add_argument(
        "--once",
        action="store_true",
        help="Refresh once, print the summary and exit.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose logging output.",
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    with session_scope(new_session_id(args.role)):
        try:
            code = asyncio.run(run(args.role, args.once))
        except KeyboardInterrupt:
            code = 0
    sys.exit(code)


if __name__ == "__main__":
    main()
