"""
Base repository with the operations every entity shares.
"""
import logging
from typing import Any, Dict, Type, TypeVar

from pydantic import BaseModel as Schema, ValidationError
from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from edh_stats.core.config import Settings, settings
from edh_stats.core.errors import NoFieldsToUpdate, NotFoundOrForbidden, ValidationFailed, from_pydantic
from edh_stats.db.session import Database
from edh_stats.repositories.ownership import find_owned, owner_column

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=Schema)

LIKE_ESCAPE = "\\"


def contains_pattern(value: str) -> str:
    """LIKE pattern matching ``value`` anywhere, with wildcards in it escaped."""
    escaped = (
        value.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def validate_input(schema: Type[S], data: Any) -> S:
    """Turn a mapping (or another schema) into ``schema``, raising ValidationFailed."""
    if isinstance(data, schema):
        return data
    if data is None:
        data = {}
    elif isinstance(data, Schema):
        data = data.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise from_pydantic(e) from None


def check_page(limit: Any, offset: Any, max_limit: int) -> None:
    """Reject pagination outside ``1..max_limit`` / ``offset >= 0``."""
    if isinstance(limit, bool) or not isinstance(limit, int) or not 1 <= limit <= max_limit:
        raise ValidationFailed(f"Limit must be an integer between 1 and {max_limit}")
    if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
        raise ValidationFailed("Offset must be a non-negative integer")


class BaseRepository:
    """Shared lookups, ownership-scoped updates and deletes."""

    model = None
    response_schema: Type[Schema] = None

    def __init__(self, db: Database, config: Settings = settings):
        self.db = db
        self.config = config

    @property
    def entity(self) -> str:
        return self.model.__name__

    def to_response(self, instance):
        return self.response_schema.model_validate(instance)

    def find_by_id(self, resource_id: int):
        """Fetch a row by id without any ownership filter."""
        with self.db.session_scope() as session:
            instance = session.get(self.model, resource_id)
            return self.to_response(instance) if instance is not None else None

    def delete(self, resource_id: int, caller_id: int) -> bool:
        """Delete a row owned by ``caller_id``; False when nothing was removed."""
        with self.db.session_scope() as session:
            if find_owned(session, self.model, resource_id, caller_id) is None:
                return False
            result = session.execute(
                delete(self.model)
                .where(self.model.id == resource_id, owner_column(self.model) == caller_id)
                .execution_options(synchronize_session=False)
            )
            removed = result.rowcount > 0
        if removed:
            logger.info(f"Deleted {self.entity} {resource_id} for user {caller_id}")
        return removed

    def _changed_fields(self, data: Schema) -> Dict[str, Any]:
        values = data.model_dump(exclude_unset=True)
        if not values:
            raise NoFieldsToUpdate()
        return values

    def _apply_update(self, session: Session, instance, caller_id: int, values: Dict[str, Any]) -> None:
        """UPDATE only ``values``, scoped to id and owner; refreshes ``instance``."""
        result = session.execute(
            update(self.model)
            .where(self.model.id == instance.id, owner_column(self.model) == caller_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundOrForbidden(f"{self.entity} not found or access denied")
        session.refresh(instance)
