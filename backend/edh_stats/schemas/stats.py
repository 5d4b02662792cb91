"""
Pydantic schemas for derived statistics.
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import date


class UserOverview(BaseModel):
    """Totals across all of a user's games."""
    total_games: int = 0
    total_wins: int = 0
    win_rate: float = 0.0
    total_commanders: int = 0
    avg_rounds: float = 0.0
    last_game_date: Optional[date] = None


class CommanderStats(BaseModel):
    """Totals for one commander."""
    commander_id: int
    name: str
    colors: List[str]
    user_id: int
    total_games: int = 0
    total_wins: int = 0
    win_rate: float = 0.0
    avg_rounds: float = 0.0
    starting_player_wins: int = 0
    sol_ring_wins: int = 0
    last_played: Optional[date] = None


class WinRateBucket(BaseModel):
    """Win rate for one group; ``win_rate`` is a whole percentage."""
    label: str
    games: int
    wins: int
    win_rate: int


class DimensionBreakdown(BaseModel):
    by_player_count: List[WinRateBucket] = []
    by_color_identity: List[WinRateBucket] = []
