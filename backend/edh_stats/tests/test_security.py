"""
Tests for password hashing and bearer tokens.
"""
from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from edh_stats.core.errors import Unauthenticated
from edh_stats.core.security import CredentialService, TokenTTL


def test_hash_and_verify(credentials):
    """A hash verifies its own password and nothing else."""
    hashed = credentials.hash("Correct1horse")
    assert hashed.startswith("$2")
    assert len(hashed) >= 60
    assert credentials.verify("Correct1horse", hashed)
    assert not credentials.verify("correct1horse", hashed)


def test_verify_malformed_hash_returns_false(credentials):
    assert credentials.verify("Correct1horse", "not-a-bcrypt-hash") is False
    assert credentials.verify("", credentials.hash("Correct1horse")) is False


def test_long_password_is_prehashed(credentials):
    """Passwords past 72 bytes still differ from each other."""
    base = "A1" + "x" * 80
    hashed = credentials.hash(base + "y")
    assert credentials.verify(base + "y", hashed)
    assert not credentials.verify(base + "z", hashed)


def test_issue_and_verify_token(credentials):
    token = credentials.issue_token({"user_id": 7, "username": "alice"})
    claims = credentials.verify_token(token)
    assert claims.user_id == 7
    assert claims.username == "alice"
    assert claims.expires_at <= claims.ceiling


def test_remember_token_lives_longer(credentials):
    session = credentials.verify_token(credentials.issue_token({"user_id": 1, "username": "bob"}))
    remember = credentials.verify_token(
        credentials.issue_token({"user_id": 1, "username": "bob"}, ttl=TokenTTL.REMEMBER)
    )
    assert remember.expires_at > session.expires_at


def test_issue_token_requires_identity(credentials):
    with pytest.raises(ValueError):
        credentials.issue_token({"username": "alice"})


def test_expired_token_rejected(credentials):
    token = credentials.issue_token({"user_id": 1, "username": "alice"}, ttl=timedelta(seconds=-10))
    with pytest.raises(Unauthenticated):
        credentials.verify_token(token)


@pytest.mark.parametrize("token", ["", None, "garbage", "a.b.c"])
def test_malformed_token_rejected(credentials, token):
    with pytest.raises(Unauthenticated) as exc_info:
        credentials.verify_token(token)
    assert exc_info.value.message == "Invalid or expired token"


def test_token_signed_with_other_key_rejected(credentials):
    other = CredentialService("another-secret")
    token = other.issue_token({"user_id": 1, "username": "alice"})
    with pytest.raises(Unauthenticated):
        credentials.verify_token(token)


def test_wrong_audience_rejected(credentials):
    now = int(datetime.now(timezone.utc).timestamp())
    token = jwt.encode(
        {
            "sub": "1", "user_id": 1, "username": "alice", "iss": credentials.issuer,
            "aud": "someone-else", "iat": now, "exp": now + 60, "ceiling": now + 60,
        },
        "test-secret",
        algorithm="HS256",
    )
    with pytest.raises(Unauthenticated):
        credentials.verify_token(token)


def test_refresh_keeps_ceiling(credentials):
    claims = credentials.verify_token(credentials.issue_token({"user_id": 3, "username": "carol"}))
    refreshed = credentials.verify_token(credentials.refresh(claims))
    assert refreshed.user_id == 3
    assert refreshed.ceiling == claims.ceiling
    assert refreshed.expires_at <= claims.ceiling


def test_refresh_refused_after_ceiling(credentials):
    claims = credentials.verify_token(credentials.issue_token({"user_id": 3, "username": "carol"}))
    expired = claims.model_copy(update={"ceiling": claims.issued_at - 1})
    with pytest.raises(Unauthenticated):
        credentials.refresh(expired)


def test_empty_secret_refused():
    with pytest.raises(ValueError):
        CredentialService("")
