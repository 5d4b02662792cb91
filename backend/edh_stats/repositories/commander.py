"""
Commander repository: per-user decks with color identity.
"""
import logging
from typing import List, Optional

from sqlalchemy import Float, cast, func, select
from sqlalchemy.exc import IntegrityError

from edh_stats.core.errors import Conflict, NotFoundOrForbidden, ValidationFailed
from edh_stats.core.result import returns_result
from edh_stats.core.utils import round_average, win_rate
from edh_stats.db.views import commander_stats
from edh_stats.models.commander import Commander
from edh_stats.models.user import User
from edh_stats.repositories.base import BaseRepository, check_page, contains_pattern, validate_input
from edh_stats.repositories.ownership import require_owned
from edh_stats.schemas.commander import (
    CommanderCreate,
    CommanderFilters,
    CommanderResponse,
    CommanderSort,
    CommanderSortField,
    CommanderUpdate,
    CommanderWithStats,
)
from edh_stats.schemas.common import SortOrder

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    CommanderSortField.CREATED_AT: Commander.created_at,
    CommanderSortField.UPDATED_AT: Commander.updated_at,
    CommanderSortField.NAME: func.lower(Commander.name),
    CommanderSortField.TOTAL_GAMES: commander_stats.c.total_games,
}

FILTER_CLAUSES = {
    "name": lambda value: Commander.name.ilike(contains_pattern(value), escape="\\"),
}

MAX_SEARCH_LENGTH = 100


class CommanderRepository(BaseRepository):
    model = Commander
    response_schema = CommanderResponse

    @property
    def page_limit(self) -> int:
        return self.config.COMMANDER_PAGE_LIMIT

    def find_by_name(self, caller_id: int, name: str) -> Optional[CommanderResponse]:
        """Case-insensitive exact name lookup among the caller's commanders."""
        with self.db.session_scope() as session:
            commander = session.execute(
                select(Commander).where(
                    Commander.user_id == caller_id,
                    func.lower(Commander.name) == (name or "").strip().lower(),
                )
            ).scalar_one_or_none()
            return self.to_response(commander) if commander is not None else None

    @returns_result
    def create(self, caller_id: int, data) -> CommanderResponse:
        """Create a commander after checking the name and the per-user cap."""
        payload = validate_input(CommanderCreate, data)
        try:
            with self.db.session_scope() as session:
                # Serializes concurrent creates for the same owner on PostgreSQL
                owner = session.execute(
                    select(User.id).where(User.id == caller_id).with_for_update()
                ).scalar_one_or_none()
                if owner is None:
                    raise NotFoundOrForbidden("User not found or access denied")

                count = session.execute(
                    select(func.count(Commander.id)).where(Commander.user_id == caller_id)
                ).scalar_one()
                if count >= self.config.MAX_COMMANDERS_PER_USER:
                    raise ValidationFailed(
                        f"Maximum of {self.config.MAX_COMMANDERS_PER_USER} commanders reached"
                    )

                if self._name_taken(session, caller_id, payload.name):
                    raise Conflict("Commander already exists")

                commander = Commander(name=payload.name, colors=payload.colors, user_id=caller_id)
                session.add(commander)
                session.flush()
                session.refresh(commander)
                response = self.to_response(commander)
        except IntegrityError:
            logger.warning(f"Concurrent commander create clash for user {caller_id}: '{payload.name}'")
            raise Conflict("Commander already exists") from None

        logger.info(f"Created commander {response.id} '{response.name}' for user {caller_id}")
        return response

    @returns_result
    def update(self, commander_id: int, caller_id: int, fields) -> CommanderResponse:
        """Rename and/or recolor a commander owned by the caller."""
        data = validate_input(CommanderUpdate, fields)
        values = self._changed_fields(data)
        try:
            with self.db.session_scope() as session:
                commander = require_owned(session, Commander, commander_id, caller_id)
                if "name" in values and self._name_taken(session, caller_id, values["name"], exclude_id=commander_id):
                    raise Conflict("Commander already exists")
                self._apply_update(session, commander, caller_id, values)
                return self.to_response(commander)
        except IntegrityError:
            raise Conflict("Commander already exists") from None

    @returns_result
    def list(self, caller_id: int, limit: int = 20, offset: int = 0, filters=None, sort=None) -> List[CommanderWithStats]:
        """Caller's commanders with their totals, filtered, sorted and paginated."""
        check_page(limit, offset, self.page_limit)
        predicates = validate_input(CommanderFilters, filters)
        order = validate_input(CommanderSort, {"field": sort} if isinstance(sort, str) else sort)

        stmt = self._select_with_stats().where(Commander.user_id == caller_id)
        for name, value in predicates.model_dump(exclude_none=True).items():
            stmt = stmt.where(FILTER_CLAUSES[name](value))

        column = SORT_COLUMNS[order.field]
        direction = column.asc() if order.order == SortOrder.ASC else column.desc()
        stmt = stmt.order_by(direction, Commander.id.asc()).limit(limit).offset(offset)
        return self._fetch_with_stats(stmt)

    @returns_result
    def search(self, caller_id: int, query: str, limit: int = 20, offset: int = 0) -> List[CommanderWithStats]:
        """Case-insensitive partial match on name, ordered by name."""
        if not isinstance(query, str) or not query.strip() or len(query) > MAX_SEARCH_LENGTH:
            raise ValidationFailed(f"Search query must be a non-empty string with max {MAX_SEARCH_LENGTH} characters")
        return self.list(
            caller_id,
            limit=limit,
            offset=offset,
            filters={"name": query.strip()},
            sort={"field": CommanderSortField.NAME, "order": SortOrder.ASC},
        ).unwrap()

    @returns_result
    def popular(self, caller_id: int, limit: int = 10) -> List[CommanderWithStats]:
        """Commanders with enough games, best win rate first, then by name."""
        check_page(limit, 0, self.page_limit)
        ratio = cast(commander_stats.c.total_wins, Float) / commander_stats.c.total_games
        stmt = (
            self._select_with_stats()
            .where(
                Commander.user_id == caller_id,
                commander_stats.c.total_games >= self.config.POPULAR_MIN_GAMES,
            )
            .order_by(ratio.desc(), func.lower(Commander.name).asc(), Commander.id.asc())
            .limit(limit)
        )
        return self._fetch_with_stats(stmt)

    def _name_taken(self, session, caller_id: int, name: str, exclude_id: Optional[int] = None) -> bool:
        stmt = select(Commander.id).where(
            Commander.user_id == caller_id,
            func.lower(Commander.name) == name.lower(),
        )
        if exclude_id is not None:
            stmt = stmt.where(Commander.id != exclude_id)
        return session.execute(stmt).first() is not None

    def _select_with_stats(self):
        return select(
            Commander,
            commander_stats.c.total_games,
            commander_stats.c.total_wins,
            commander_stats.c.avg_rounds,
            commander_stats.c.last_played,
        ).join(commander_stats, commander_stats.c.commander_id == Commander.id)

    def _fetch_with_stats(self, stmt) -> List[CommanderWithStats]:
        with self.db.session_scope() as session:
            rows = session.execute(stmt).all()
            return [
                CommanderWithStats(
                    **self.to_response(row.Commander).model_dump(),
                    total_games=row.total_games or 0,
                    total_wins=row.total_wins or 0,
                    win_rate=win_rate(row.total_wins, row.total_games),
                    avg_rounds=round_average(row.avg_rounds),
                    last_played=row.last_played,
                )
                for row in rows
            ]
