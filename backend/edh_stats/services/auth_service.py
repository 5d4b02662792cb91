"""
Account workflows: registration, login, token refresh and profile changes.
"""
from typing import Optional

from edh_stats.core.config import Settings, settings
from edh_stats.core.errors import RegistrationDisabled, Unauthenticated, ValidationFailed
from edh_stats.core.logging import security_logger
from edh_stats.core.result import returns_result
from edh_stats.core.security import CredentialService, TokenTTL
from edh_stats.db.session import Database
from edh_stats.repositories.base import validate_input
from edh_stats.repositories.user import UserRepository
from edh_stats.schemas.user import AuthSession, PasswordChange, TokenClaims, UserCreate, UserLogin, UserResponse

INVALID_CREDENTIALS = "Invalid username or password"


class AuthService:
    """Ties the credential service to the user repository."""

    def __init__(
        self,
        db: Database,
        credentials: CredentialService,
        users: Optional[UserRepository] = None,
        config: Settings = settings,
    ):
        self.db = db
        self.credentials = credentials
        self.config = config
        self.users = users or UserRepository(db, config)

    def registration_allowed(self) -> bool:
        return self.config.ALLOW_REGISTRATION

    @returns_result
    def register(self, username: str, password: str, email: Optional[str] = None) -> AuthSession:
        if not self.registration_allowed():
            security_logger.warning("Registration attempt while registration is disabled")
            raise RegistrationDisabled()
        data = validate_input(UserCreate, {"username": username, "password": password, "email": email})
        password_hash = self.credentials.hash(data.password)
        user = self.users.create(data.username, password_hash, data.email).unwrap()
        security_logger.info(f"Registered user {user.id} ({user.username})")
        return self._session_for(user, TokenTTL.SESSION)

    @returns_result
    def login(self, username: str, password: str, remember: bool = False) -> AuthSession:
        """Check credentials. Unknown user and wrong password fail the same way."""
        data = validate_input(UserLogin, {"username": username, "password": password, "remember": remember})
        user = self.users.find_for_login(data.username)
        if user is None:
            self.credentials.verify_dummy(data.password)
            security_logger.warning(f"Failed login for unknown user '{data.username}'")
            raise Unauthenticated(INVALID_CREDENTIALS)
        if not self.credentials.verify(data.password, user.password_hash):
            security_logger.warning(f"Failed login for user {user.id}")
            raise Unauthenticated(INVALID_CREDENTIALS)

        security_logger.info(f"User {user.id} logged in (remember={data.remember})")
        ttl = TokenTTL.REMEMBER if data.remember else TokenTTL.SESSION
        return self._session_for(self.users.to_response(user), ttl)

    def authenticate(self, token: str) -> TokenClaims:
        """Verify a bearer token and confirm its user still exists."""
        claims = self.credentials.verify_token(token)
        if self.users.find_by_id(claims.user_id) is None:
            security_logger.warning(f"Token for deleted user {claims.user_id}")
            raise Unauthenticated()
        return claims

    @returns_result
    def refresh(self, token: str) -> str:
        claims = self.authenticate(token)
        return self.credentials.refresh(claims)

    @returns_result
    def change_password(self, user_id: int, current_password: str, new_password: str) -> bool:
        data = validate_input(
            PasswordChange, {"current_password": current_password, "new_password": new_password}
        )
        current_hash = self.users.get_password_hash(user_id)
        if current_hash is None or not self.credentials.verify(data.current_password, current_hash):
            security_logger.warning(f"Password change with wrong current password for user {user_id}")
            raise Unauthenticated("Current password is incorrect")
        if data.current_password == data.new_password:
            raise ValidationFailed("New password must be different from the current password")
        return self.users.update_password(user_id, user_id, self.credentials.hash(data.new_password)).unwrap()

    @returns_result
    def change_username(self, user_id: int, new_username: str) -> UserResponse:
        return self.users.update(user_id, user_id, {"username": new_username}).unwrap()

    @returns_result
    def update_profile(self, user_id: int, email: Optional[str]) -> UserResponse:
        return self.users.update(user_id, user_id, {"email": email}).unwrap()

    @returns_result
    def delete_account(self, user_id: int, password: str) -> bool:
        """Remove the account and, by cascade, every commander and game."""
        current_hash = self.users.get_password_hash(user_id)
        if current_hash is None or not self.credentials.verify(password, current_hash):
            raise Unauthenticated("Password is incorrect")
        removed = self.users.delete(user_id, user_id)
        if removed:
            security_logger.info(f"Deleted account {user_id}")
        return removed

    def _session_for(self, user: UserResponse, ttl: TokenTTL) -> AuthSession:
        token = self.credentials.issue_token({"user_id": user.id, "username": user.username}, ttl=ttl)
        return AuthSession(user=user, access_token=token)
