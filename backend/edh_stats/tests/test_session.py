"""
Tests for the connection manager.
"""
import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, ProgrammingError

from edh_stats.core.errors import StorageUnavailable
from edh_stats.db.session import Database, get_database


def test_initialize_is_idempotent(db):
    engine = db.engine
    assert db.initialize() is db
    assert db.engine is engine


def test_health_check(db):
    assert db.health_check() is True


def test_health_check_before_initialize():
    assert Database("sqlite://").health_check() is False


def test_query_helpers_bind_parameters(db):
    db.execute(
        "INSERT INTO users (username, password_hash) VALUES (:username, :password_hash)",
        {"username": "alice", "password_hash": "x" * 60},
    )
    row = db.get("SELECT username FROM users WHERE username = :username", {"username": "alice"})
    assert row.username == "alice"
    assert db.get("SELECT id FROM users WHERE username = :username", {"username": "nobody"}) is None
    assert len(db.all("SELECT id FROM users")) == 1
    assert db.query(text("SELECT COUNT(*) AS n FROM users"))[0].n == 1


def test_execute_returns_rowcount(db):
    db.execute(
        "INSERT INTO users (username, password_hash) VALUES ('alice', :h), ('bobby', :h)",
        {"h": "x" * 60},
    )
    assert db.execute("DELETE FROM users WHERE username = :u", {"u": "alice"}) == 1
    assert db.execute("DELETE FROM users WHERE username = :u", {"u": "alice"}) == 0


def test_transaction_rolls_back_on_error(db):
    def insert_then_fail(session):
        session.execute(
            text("INSERT INTO users (username, password_hash) VALUES ('alice', :h)"),
            {"h": "x" * 60},
        )
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        db.transaction(insert_then_fail)
    assert db.get("SELECT id FROM users WHERE username = 'alice'") is None


def test_transaction_returns_value(db):
    assert db.transaction(lambda session: session.execute(text("SELECT 41 + 1")).scalar()) == 42


def test_foreign_keys_enforced(db):
    assert db.get("PRAGMA foreign_keys")[0] == 1


def test_close_is_idempotent(tmp_path):
    database = Database(f"sqlite:///{tmp_path / 'close.db'}").initialize()
    database.close()
    database.close()
    assert not database.is_initialized
    with pytest.raises(StorageUnavailable):
        database.get("SELECT 1")


def test_unreachable_store_raises_storage_unavailable(tmp_path):
    database = Database(
        f"sqlite:///{tmp_path / 'missing' / 'nested' / 'store.db'}",
        connect_retries=2,
        retry_delay=0,
    )
    with pytest.raises(StorageUnavailable):
        database.initialize()
    assert not database.is_initialized


def test_file_sqlite_pool_uses_configured_limits(tmp_path):
    database = Database(
        f"sqlite:///{tmp_path / 'pool.db'}",
        pool_size=1,
        max_overflow=0,
        pool_timeout=0.2,
    ).initialize()
    try:
        assert database.engine.pool.size() == 1
        assert database.engine.pool.timeout() == 0.2
    finally:
        database.close()


def test_pool_exhaustion_raises_storage_unavailable(tmp_path):
    database = Database(
        f"sqlite:///{tmp_path / 'pool.db'}",
        pool_size=1,
        max_overflow=0,
        pool_timeout=0.2,
    ).initialize()
    held = database.engine.connect()
    try:
        with pytest.raises(StorageUnavailable):
            database.get("SELECT 1")
        assert database.health_check() is False
    finally:
        held.close()
    assert database.health_check() is True
    database.close()


def test_programming_errors_are_not_storage_faults(db):
    with pytest.raises(ProgrammingError):
        with db.session_scope():
            raise ProgrammingError("SELECT broken", {}, Exception("syntax error"))


def test_operational_errors_are_storage_faults(db):
    with pytest.raises(StorageUnavailable):
        with db.session_scope():
            raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))


def test_default_database_is_shared():
    database = get_database()
    assert get_database() is database
    assert not database.is_initialized
