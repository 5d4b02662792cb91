"""
Ownership guard used by every mutating repository call.

A row that does not exist and a row owned by someone else produce the same
outcome, so non-owners cannot learn whether a row exists.
"""
from sqlalchemy import select
from sqlalchemy.orm import Session

from edh_stats.core.errors import NotFoundOrForbidden


def owner_column(model):
    """Column holding the owning user's id (users own themselves)."""
    column = getattr(model, "user_id", None)
    return column if column is not None else model.id


def find_owned(session: Session, model, resource_id: int, caller_id: int, lock: bool = True):
    """Load ``resource_id`` only if ``caller_id`` owns it, else None.

    With ``lock`` the row is selected FOR UPDATE (ignored by SQLite).
    """
    stmt = select(model).where(model.id == resource_id, owner_column(model) == caller_id)
    if lock:
        stmt = stmt.with_for_update()
    return session.execute(stmt).scalar_one_or_none()


def require_owned(session: Session, model, resource_id: int, caller_id: int, lock: bool = True):
    instance = find_owned(session, model, resource_id, caller_id, lock=lock)
    if instance is None:
        raise NotFoundOrForbidden(f"{model.__name__} not found or access denied")
    return instance
