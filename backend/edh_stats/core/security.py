"""
Security utilities for JWT authentication and password hashing.
"""
import base64
import enum
import hashlib
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

import bcrypt
from jose import JWTError, jwt
from pydantic import ValidationError

from edh_stats.core.config import Settings, settings
from edh_stats.core.errors import Unauthenticated
from edh_stats.core.logging import security_logger
from edh_stats.schemas.user import TokenClaims

BCRYPT_MAX_BYTES = 72


class TokenTTL(str, enum.Enum):
    """Lifetime classes for issued tokens."""
    SESSION = "session"
    REMEMBER = "remember"
    REFRESH = "refresh"


def _prepare_password(password: str) -> bytes:
    """
    bcrypt ignores (or rejects) anything past 72 bytes, so longer passwords
    are pre-hashed with SHA256. The digest is base64 encoded to keep NUL
    bytes out of the bcrypt input.
    """
    encoded = password.encode("utf-8")
    if len(encoded) > BCRYPT_MAX_BYTES:
        return base64.b64encode(hashlib.sha256(encoded).digest())
    return encoded


class CredentialService:
    """Password hashing and bearer-token lifecycle.

    The signing key is read once, when the service is built, and stays
    fixed for the life of the process.
    """

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        issuer: str = "edh-stats",
        audience: str = "edh-stats-api",
        session_ttl: timedelta = timedelta(minutes=120),
        remember_ttl: timedelta = timedelta(days=7),
        refresh_ttl: timedelta = timedelta(minutes=15),
        rounds: int = 12,
    ):
        if not secret_key:
            raise ValueError("A signing secret is required")
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.issuer = issuer
        self.audience = audience
        self.rounds = rounds
        self._ttls = {
            TokenTTL.SESSION: session_ttl,
            TokenTTL.REMEMBER: remember_ttl,
            TokenTTL.REFRESH: refresh_ttl,
        }
        self._dummy_hash: Optional[str] = None

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "CredentialService":
        return cls(
            secret_key=config.SECRET_KEY,
            algorithm=config.ALGORITHM,
            issuer=config.JWT_ISSUER,
            audience=config.JWT_AUDIENCE,
            session_ttl=timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES),
            remember_ttl=timedelta(days=config.REMEMBER_TOKEN_EXPIRE_DAYS),
            refresh_ttl=timedelta(minutes=config.REFRESH_TOKEN_EXPIRE_MINUTES),
            rounds=config.BCRYPT_ROUNDS,
        )

    # Passwords

    def hash(self, password: str) -> str:
        """Hash a password with a fresh salt."""
        hashed = bcrypt.hashpw(_prepare_password(password), bcrypt.gensalt(rounds=self.rounds))
        return hashed.decode("utf-8")

    def verify(self, password: str, hashed_password: str) -> bool:
        """Verify a password against its hash. Malformed hashes never match."""
        if not password or not hashed_password:
            return False
        try:
            return bcrypt.checkpw(_prepare_password(password), hashed_password.encode("utf-8"))
        except ValueError:
            return False

    def verify_dummy(self, password: str) -> bool:
        """Spend the same time as a real check when the user does not exist."""
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("dummy-password-for-timing")
        self.verify(password or "", self._dummy_hash)
        return False

    # Tokens

    def ttl_for(self, ttl: Union[TokenTTL, timedelta]) -> timedelta:
        if isinstance(ttl, timedelta):
            return ttl
        return self._ttls[TokenTTL(ttl)]

    def issue_token(
        self,
        claims: dict,
        ttl: Union[TokenTTL, timedelta] = TokenTTL.SESSION,
    ) -> str:
        """Create a signed token for ``{"user_id", "username"}``.

        The ``ceiling`` claim pins the latest moment any token of this
        session (refreshes included) may expire. It is carried over when
        present, otherwise it is set to now + the long-lived TTL.
        """
        if "user_id" not in claims or "username" not in claims:
            raise ValueError("Token claims require user_id and username")

        now = datetime.now(timezone.utc)
        issued_at = int(now.timestamp())
        ceiling = claims.get("ceiling")
        if ceiling is None:
            ceiling = int((now + self._ttls[TokenTTL.REMEMBER]).timestamp())
        expire = min(int((now + self.ttl_for(ttl)).timestamp()), int(ceiling))

        to_encode = {
            "sub": str(claims["user_id"]),
            "user_id": int(claims["user_id"]),
            "username": claims["username"],
            "iss": self.issuer,
            "aud": self.audience,
            "iat": issued_at,
            "exp": expire,
            "ceiling": int(ceiling),
        }
        return jwt.encode(to_encode, self._secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> TokenClaims:
        """Decode and verify a token. Every failure looks the same to the caller."""
        if not token or not isinstance(token, str):
            raise Unauthenticated()
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
            )
            return TokenClaims(
                user_id=payload["user_id"],
                username=payload["username"],
                issued_at=payload["iat"],
                expires_at=payload["exp"],
                ceiling=payload["ceiling"],
            )
        except (JWTError, KeyError, ValidationError) as e:
            security_logger.warning(f"Rejected bearer token: {type(e).__name__}")
            raise Unauthenticated() from None

    def refresh(self, claims: TokenClaims) -> str:
        """Issue a short-lived token for an authenticated caller, within the ceiling."""
        now = int(datetime.now(timezone.utc).timestamp())
        if claims.ceiling <= now:
            raise Unauthenticated()
        return self.issue_token(
            {"user_id": claims.user_id, "username": claims.username, "ceiling": claims.ceiling},
            ttl=TokenTTL.REFRESH,
        )
