"""Backend paths used by the booking lifecycle client.

Paths are relative to ``settings.backend.base_url``.
"""

PROVIDER_PROFILE = "/provider/profile"
PROVIDER_BOOKINGS = "/provider/bookings"
PROVIDER_INSTANT_REQUESTS = "/provider/instant-hiring/requests"

CUSTOMER_PROFILE = "/customer/profile"
CUSTOMER_BOOKINGS = "/customer/booking/requests"
CUSTOMER_SPEND_LEADERBOARD = "/customer/insights/spend-leaderboard"

HEALTH = "/health"

COMPLETED_FILTER = {"status": "completed"}


def provider_booking_action(booking_id: str, action: str) -> str:
    """``accept``, ``reject`` or ``complete`` a booking."""
    return f"{PROVIDER_BOOKINGS}/{booking_id}/{action}"


def provider_instant_action(request_id: str, action: str) -> str:
    """``accept`` or ``reject`` an instant request."""
    return f"{PROVIDER_INSTANT_REQUESTS}/{request_id}/{action}"


def customer_cancel(booking_id: str) -> str:
    return f"/customer/booking/{booking_id}/cancel"
