"""
User repository: accounts, credentials lookups and profile changes.
"""
import logging
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError

from edh_stats.core import validators
from edh_stats.core.errors import Conflict, ValidationFailed
from edh_stats.core.result import returns_result
from edh_stats.models.user import User
from edh_stats.repositories.base import BaseRepository, validate_input
from edh_stats.repositories.ownership import require_owned
from edh_stats.schemas.user import UserResponse, UserUpdate

logger = logging.getLogger(__name__)

MIN_HASH_LENGTH = 60


class UserRepository(BaseRepository):
    model = User
    response_schema = UserResponse

    def find_by_username(self, username: str) -> Optional[UserResponse]:
        user = self.find_for_login(username)
        return self.to_response(user) if user is not None else None

    def find_for_login(self, username: str) -> Optional[User]:
        """Return the detached User row, password hash included."""
        with self.db.session_scope() as session:
            return session.execute(
                select(User).where(User.username == (username or "").strip().lower())
            ).scalar_one_or_none()

    def find_by_email(self, email: str) -> Optional[UserResponse]:
        with self.db.session_scope() as session:
            user = session.execute(
                select(User).where(User.email == (email or "").strip().lower())
            ).scalar_one_or_none()
            return self.to_response(user) if user is not None else None

    def get_password_hash(self, user_id: int) -> Optional[str]:
        with self.db.session_scope() as session:
            return session.execute(select(User.password_hash).where(User.id == user_id)).scalar_one_or_none()

    def count(self) -> int:
        with self.db.session_scope() as session:
            return session.execute(select(func.count(User.id))).scalar_one()

    @returns_result
    def create(self, username: str, password_hash: str, email: Optional[str] = None) -> UserResponse:
        """Insert a user whose password has already been hashed."""
        try:
            username = validators.normalize_username(username)
            email = validators.normalize_email(email)
        except ValueError as e:
            raise ValidationFailed(str(e)) from None
        if not password_hash or len(password_hash) < MIN_HASH_LENGTH:
            raise ValidationFailed("Password must be stored hashed")

        try:
            with self.db.session_scope() as session:
                clash = [User.username == username]
                if email:
                    clash.append(User.email == email)
                existing = session.execute(select(User.id).where(or_(*clash))).first()
                if existing:
                    raise Conflict("Username or email already exists")

                user = User(username=username, password_hash=password_hash, email=email)
                session.add(user)
                session.flush()
                session.refresh(user)
                response = self.to_response(user)
        except IntegrityError:
            logger.warning(f"Concurrent registration clash for username '{username}'")
            raise Conflict("Username or email already exists") from None

        logger.info(f"Created user {response.id} ({response.username})")
        return response

    @returns_result
    def update(self, user_id: int, caller_id: int, fields) -> UserResponse:
        """Change username and/or email of the caller's own account."""
        data = validate_input(UserUpdate, fields)
        values = self._changed_fields(data)

        try:
            with self.db.session_scope() as session:
                user = require_owned(session, User, user_id, caller_id)
                if "username" in values:
                    taken = session.execute(
                        select(User.id).where(User.username == values["username"], User.id != user_id)
                    ).first()
                    if taken:
                        raise Conflict("Username already exists")
                if values.get("email"):
                    taken = session.execute(
                        select(User.id).where(User.email == values["email"], User.id != user_id)
                    ).first()
                    if taken:
                        raise Conflict("Email already exists")
                self._apply_update(session, user, caller_id, values)
                return self.to_response(user)
        except IntegrityError:
            raise Conflict("Username or email already exists") from None

    @returns_result
    def update_password(self, user_id: int, caller_id: int, password_hash: str) -> bool:
        if not password_hash or len(password_hash) < MIN_HASH_LENGTH:
            raise ValidationFailed("Password must be stored hashed")
        with self.db.session_scope() as session:
            user = require_owned(session, User, user_id, caller_id)
            self._apply_update(session, user, caller_id, {"password_hash": password_hash})
        logger.info(f"Password changed for user {user_id}")
        return True
