"""Ownership-aware repositories for users, commanders and games."""
from edh_stats.repositories.user import UserRepository
from edh_stats.repositories.commander import CommanderRepository
from edh_stats.repositories.game import GameRepository

__all__ = [
    "UserRepository",
    "CommanderRepository",
    "GameRepository",
]
