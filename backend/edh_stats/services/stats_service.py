"""
Statistics service: win rates and totals derived from logged games.
"""
import logging
from typing import Dict, List

from sqlalchemy import Float, case, cast, func, select

from edh_stats.core.config import Settings, settings
from edh_stats.core.errors import NotFoundOrForbidden
from edh_stats.core.result import returns_result
from edh_stats.core.utils import round_average, whole_percent, win_rate
from edh_stats.core.validators import color_key
from edh_stats.db.session import Database
from edh_stats.db.views import commander_stats, user_stats
from edh_stats.models.commander import Commander
from edh_stats.models.game import Game
from edh_stats.repositories.base import check_page
from edh_stats.schemas.stats import CommanderStats, DimensionBreakdown, UserOverview, WinRateBucket

logger = logging.getLogger(__name__)


class StatsService:
    """Read-only aggregates over a user's games."""

    def __init__(self, db: Database, config: Settings = settings):
        self.db = db
        self.config = config

    def user_overview(self, user_id: int) -> UserOverview:
        """Totals across every game of ``user_id``; all zero for an unknown user."""
        row = self.db.get(select(user_stats).where(user_stats.c.user_id == user_id))
        if row is None:
            return UserOverview()
        return UserOverview(
            total_games=row.total_games or 0,
            total_wins=row.total_wins or 0,
            win_rate=win_rate(row.total_wins, row.total_games),
            total_commanders=row.total_commanders or 0,
            avg_rounds=round_average(row.avg_rounds),
            last_game_date=row.last_game_date,
        )

    @returns_result
    def commander_breakdown(self, user_id: int, limit: int = 20, offset: int = 0) -> List[CommanderStats]:
        """Commanders with at least ``BREAKDOWN_MIN_GAMES`` games, most played first."""
        check_page(limit, offset, self.config.COMMANDER_PAGE_LIMIT)
        ratio = cast(commander_stats.c.total_wins, Float) / commander_stats.c.total_games
        stmt = (
            select(commander_stats)
            .where(
                commander_stats.c.user_id == user_id,
                commander_stats.c.total_games >= self.config.BREAKDOWN_MIN_GAMES,
            )
            .order_by(
                commander_stats.c.total_games.desc(),
                ratio.desc(),
                func.lower(commander_stats.c.name).asc(),
                commander_stats.c.commander_id.asc(),
            )
            .limit(limit)
            .offset(offset)
        )
        return [self._commander_stats(row) for row in self.db.all(stmt)]

    @returns_result
    def commander_summary(self, commander_id: int, user_id: int) -> CommanderStats:
        """Totals for a single commander owned by ``user_id``."""
        row = self.db.get(
            select(commander_stats).where(
                commander_stats.c.commander_id == commander_id,
                commander_stats.c.user_id == user_id,
            )
        )
        if row is None:
            raise NotFoundOrForbidden("Commander not found or access denied")
        return self._commander_stats(row)

    def dimension_breakdown(self, user_id: int) -> DimensionBreakdown:
        """Win rates grouped by player count and by exact color identity."""
        by_players = self.db.all(
            select(
                Game.player_count,
                func.count(Game.id).label("games"),
                func.sum(case((Game.won, 1), else_=0)).label("wins"),
            )
            .where(Game.user_id == user_id)
            .group_by(Game.player_count)
            .order_by(Game.player_count.asc())
        )
        player_buckets = [
            self._bucket(f"{row.player_count} players", row.games, int(row.wins or 0))
            for row in by_players
        ]

        # Colors are stored as JSON, so identical identities are merged here
        per_commander = self.db.all(
            select(
                Commander.colors,
                func.count(Game.id).label("games"),
                func.sum(case((Game.won, 1), else_=0)).label("wins"),
            )
            .join(Game, Game.commander_id == Commander.id)
            .where(Game.user_id == user_id)
            .group_by(Commander.id, Commander.colors)
        )
        totals: Dict[str, List[int]] = {}
        for row in per_commander:
            key = color_key(row.colors or [])
            games, wins = totals.setdefault(key, [0, 0])
            totals[key] = [games + row.games, wins + int(row.wins or 0)]

        color_buckets = [
            self._bucket(key, games, wins)
            for key, (games, wins) in sorted(totals.items(), key=lambda item: (-item[1][0], item[0]))
        ]
        logger.debug(f"Dimension breakdown for user {user_id}: {len(player_buckets)} player buckets, "
                     f"{len(color_buckets)} color buckets")
        return DimensionBreakdown(by_player_count=player_buckets, by_color_identity=color_buckets)

    def _bucket(self, label: str, games: int, wins: int) -> WinRateBucket:
        return WinRateBucket(label=label, games=games, wins=wins, win_rate=whole_percent(wins, games))

    def _commander_stats(self, row) -> CommanderStats:
        return CommanderStats(
            commander_id=row.commander_id,
            name=row.name,
            colors=row.colors or [],
            user_id=row.user_id,
            total_games=row.total_games or 0,
            total_wins=row.total_wins or 0,
            win_rate=win_rate(row.total_wins, row.total_games),
            avg_rounds=round_average(row.avg_rounds),
            starting_player_wins=row.starting_player_wins or 0,
            sol_ring_wins=row.sol_ring_wins or 0,
            last_played=row.last_played,
        )
