"""
Customer spend leaderboard and ranking.

The backend may answer ``/customer/insights/spend-leaderboard`` with the
viewer's standing already computed; that always wins. Otherwise the rank
is derived locally from whatever leaderboard we have, falling back to a
built-in peer board so a new customer still sees where they stand.
"""

import logging
import math
from typing import Any, Optional

from home_helper.schemas.insights_schema import LeaderboardEntry, SpendInsights
from home_helper.utils import first_present, non_negative

logger = logging.getLogger(__name__)

BOARD_SIZE = 5
PEER_STEP = 1200
CATCH_UP_RATIO = 0.92
ANONYMOUS_VIEWER = "current-user"

FALLBACK_LEADERBOARD: list[LeaderboardEntry] = [
    LeaderboardEntry(user_id="peer-1", name="Ayesha Khan", total_spend=235000),
    LeaderboardEntry(user_id="peer-2", name="Sameer Iqbal", total_spend=189500),
    LeaderboardEntry(user_id="peer-3", name="Nimra Shah", total_spend=158250),
    LeaderboardEntry(user_id="peer-4", name="Bilal Raza", total_spend=126400),
    LeaderboardEntry(user_id="peer-5", name="Kiran Malik", total_spend=98500),
    LeaderboardEntry(user_id="peer-6", name="Umair Siddiqui", total_spend=74200),
]


def parse_leaders(raw: Any) -> list[LeaderboardEntry]:
    if not isinstance(raw, list):
        return []
    leaders = []
    for item in raw:
        if not isinstance(item, dict):
            continue
        ident = first_present(item.get("userId"), item.get("customerId"), item.get("id"))
        if ident is None:
            continue
        leaders.append(LeaderboardEntry(
            user_id=str(ident),
            name=str(item.get("name") or ""),
            total_spend=non_negative(first_present(item.get("totalSpend"), item.get("lifetimeSpend"))),
        ))
    return leaders


def insights_from_payload(data: Any) -> Optional[SpendInsights]:
    """Backend-computed insights, or None when the payload has no viewer standing."""
    if not isinstance(data, dict):
        return None
    leaders = parse_leaders(data.get("leaders"))
    viewer = data.get("viewer")
    if not leaders or not isinstance(viewer, dict):
        return None
    return SpendInsights(
        lifetime_spend=non_negative(viewer.get("lifetimeSpend")),
        rank=viewer.get("rank"),
        total_users=viewer.get("totalCustomers"),
        percentile=viewer.get("percentile"),
        next_target=non_negative(viewer.get("nextTarget")),
        board=leaders[:BOARD_SIZE],
        remote=True,
    )


def build_fallback_leaderboard(lifetime_spend: float) -> list[LeaderboardEntry]:
    """Built-in peers, nudged so a big spender is never far ahead of last place."""
    peers = [
        peer.model_copy(update={"total_spend": peer.total_spend + index * PEER_STEP})
        for index, peer in enumerate(FALLBACK_LEADERBOARD)
    ]
    last = peers[-1]
    if lifetime_spend > 0 and lifetime_spend > last.total_spend:
        peers[-1] = last.model_copy(
            update={"total_spend": max(last.total_spend, lifetime_spend * CATCH_UP_RATIO)}
        )
    return peers


def derive_spend_insights(
    lifetime_spend: float,
    user_id: Optional[str] = None,
    name: Optional[str] = None,
    leaderboard: Optional[list[LeaderboardEntry]] = None,
) -> SpendInsights:
    """Rank the viewer among ``leaderboard`` (or the fallback board)."""
    lifetime_spend = lifetime_spend or 0.0
    viewer_id = user_id or ANONYMOUS_VIEWER
    source = list(leaderboard) if leaderboard else build_fallback_leaderboard(lifetime_spend)

    if not any(entry.user_id == viewer_id for entry in source):
        source.append(LeaderboardEntry(user_id=viewer_id, name=name or "You", total_spend=lifetime_spend))

    board = sorted(source, key=lambda entry: entry.total_spend, reverse=True)
    rank = next(i for i, entry in enumerate(board, start=1) if entry.user_id == viewer_id)
    total = len(board)
    percentile = max(1, math.floor(rank / total * 100 + 0.5))
    ahead = board[rank - 2] if rank > 1 else None
    next_target = max(ahead.total_spend - lifetime_spend, 0.0) if ahead else 0.0

    logger.debug("Viewer %s ranked %d of %d", viewer_id, rank, total)
    return SpendInsights(
        lifetime_spend=lifetime_spend,
        rank=rank,
        total_users=total,
        percentile=percentile,
        next_target=next_target,
        board=board[:BOARD_SIZE],
    )
