from home_helper.views.aggregation import (
    BookingCounts,
    FeaturedRecord,
    SearchField,
    derive_counts,
    display_amount,
    featured_record,
    filter_records,
)
from home_helper.views.leaderboard import derive_spend_insights, insights_from_payload

__all__ = [
    "BookingCounts",
    "FeaturedRecord",
    "SearchField",
    "derive_counts",
    "display_amount",
    "featured_record",
    "filter_records",
    "derive_spend_insights",
    "insights_from_payload",
]
