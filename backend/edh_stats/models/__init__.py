"""Models package - Import all models for SQLAlchemy registration."""
from edh_stats.models.user import User
from edh_stats.models.commander import Commander
from edh_stats.models.game import Game

__all__ = [
    "User",
    "Commander",
    "Game",
]
