"""
Game repository: logged games, always tied to a commander of the same owner.
"""
import logging
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from edh_stats.core.errors import NotFoundOrForbidden
from edh_stats.core.result import returns_result
from edh_stats.models.commander import Commander
from edh_stats.models.game import Game
from edh_stats.repositories.base import BaseRepository, check_page, contains_pattern, validate_input
from edh_stats.repositories.ownership import require_owned
from edh_stats.schemas.common import SortOrder
from edh_stats.schemas.game import GameCreate, GameFilters, GameResponse, GameSort, GameSortField, GameUpdate

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    GameSortField.DATE: Game.date,
    GameSortField.CREATED_AT: Game.created_at,
    GameSortField.PLAYER_COUNT: Game.player_count,
    GameSortField.ROUNDS: Game.rounds,
}

# One fixed clause per filter field; values only ever travel as bound parameters
FILTER_CLAUSES = {
    "commander": lambda value: Commander.name.ilike(contains_pattern(value), escape="\\"),
    "player_count": lambda value: Game.player_count == value,
    "commander_id": lambda value: Game.commander_id == value,
    "date_from": lambda value: Game.date >= value,
    "date_to": lambda value: Game.date <= value,
    "won": lambda value: Game.won == value,
}


class GameRepository(BaseRepository):
    model = Game
    response_schema = GameResponse

    @property
    def page_limit(self) -> int:
        return self.config.GAME_PAGE_LIMIT

    def find_by_id(self, game_id: int) -> Optional[GameResponse]:
        """Fetch a game with its commander details, without ownership filter."""
        rows = self._fetch(self._select().where(Game.id == game_id))
        return rows[0] if rows else None

    def get_for_owner(self, game_id: int, caller_id: int) -> Optional[GameResponse]:
        rows = self._fetch(self._select().where(Game.id == game_id, Game.user_id == caller_id))
        return rows[0] if rows else None

    @returns_result
    def create(self, caller_id: int, data) -> GameResponse:
        """Log a game; the commander must belong to the caller."""
        payload = validate_input(GameCreate, data)
        try:
            with self.db.session_scope() as session:
                require_owned(session, Commander, payload.commander_id, caller_id)
                game = Game(**payload.model_dump(), user_id=caller_id)
                session.add(game)
                session.flush()
                game_id = game.id
        except IntegrityError:
            # Commander removed between the check and the insert
            raise NotFoundOrForbidden("Commander not found or access denied") from None

        logger.info(f"Created game {game_id} for user {caller_id}")
        return self.get_for_owner(game_id, caller_id)

    @returns_result
    def update(self, game_id: int, caller_id: int, fields) -> GameResponse:
        """Change only the supplied fields of a game owned by the caller."""
        data = validate_input(GameUpdate, fields)
        values = self._changed_fields(data)
        try:
            with self.db.session_scope() as session:
                game = require_owned(session, Game, game_id, caller_id)
                if "commander_id" in values:
                    require_owned(session, Commander, values["commander_id"], caller_id)
                self._apply_update(session, game, caller_id, values)
        except IntegrityError:
            raise NotFoundOrForbidden("Commander not found or access denied") from None
        return self.get_for_owner(game_id, caller_id)

    @returns_result
    def list(self, caller_id: int, limit: int = 50, offset: int = 0, filters=None, sort=None) -> List[GameResponse]:
        """Caller's games, filtered, sorted and paginated."""
        check_page(limit, offset, self.page_limit)
        stmt = self._filtered(caller_id, filters)
        order = validate_input(GameSort, {"field": sort} if isinstance(sort, str) else sort)

        column = SORT_COLUMNS[order.field]
        direction = column.asc() if order.order == SortOrder.ASC else column.desc()
        stmt = stmt.order_by(direction, Game.id.desc()).limit(limit).offset(offset)
        return self._fetch(stmt)

    @returns_result
    def export(self, caller_id: int, filters=None) -> List[GameResponse]:
        """Every game matching ``filters``, newest first, without pagination."""
        stmt = self._filtered(caller_id, filters).order_by(Game.date.desc(), Game.id.desc())
        return self._fetch(stmt)

    def _filtered(self, caller_id: int, filters):
        # Validation (including the date range) happens before any query runs
        predicates = validate_input(GameFilters, filters)
        stmt = self._select().where(Game.user_id == caller_id)
        for name, value in predicates.model_dump(exclude_none=True).items():
            stmt = stmt.where(FILTER_CLAUSES[name](value))
        return stmt

    def _select(self):
        return select(Game, Commander.name, Commander.colors).outerjoin(
            Commander, Game.commander_id == Commander.id
        )

    def _fetch(self, stmt) -> List[GameResponse]:
        with self.db.session_scope() as session:
            return [
                self.to_response(game).model_copy(
                    update={"commander_name": name, "commander_colors": colors or []}
                )
                for game, name, colors in session.execute(stmt).all()
            ]
