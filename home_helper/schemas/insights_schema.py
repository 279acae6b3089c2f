"""Customer spend leaderboard models."""

from typing import Optional

from pydantic import BaseModel, Field


class LeaderboardEntry(BaseModel):
    user_id: str
    name: str = ""
    total_spend: float = 0.0


class SpendInsights(BaseModel):
    """Where the viewer stands among top spenders."""
    lifetime_spend: float = 0.0
    rank: Optional[int] = None
    total_users: Optional[int] = None
    percentile: Optional[int] = None
    next_target: float = 0.0
    board: list[LeaderboardEntry] = Field(default_factory=list)
    remote: bool = False
