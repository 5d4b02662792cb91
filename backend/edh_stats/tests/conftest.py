"""
Shared fixtures: a file-backed SQLite database per test plus ready-made
repositories, services and factories.
"""
from datetime import date, timedelta

import pytest

from edh_stats.core.config import Settings
from edh_stats.core.security import CredentialService
from edh_stats.db.session import Database, init_db
from edh_stats.repositories import CommanderRepository, GameRepository, UserRepository
from edh_stats.services.auth_service import AuthService
from edh_stats.services.stats_service import StatsService

PASSWORD = "Sup3rSecret"


@pytest.fixture()
def config():
    return Settings(SECRET_KEY="test-secret", BCRYPT_ROUNDS=4, DB_CONNECT_RETRIES=1, DB_CONNECT_RETRY_DELAY=0)


@pytest.fixture()
def db(tmp_path):
    """Initialized database with tables and views, disposed after the test."""
    database = Database(f"sqlite:///{tmp_path / 'edh_stats.db'}", connect_retries=1, retry_delay=0)
    database.initialize()
    init_db(database)
    yield database
    database.close()


@pytest.fixture()
def credentials(config):
    return CredentialService.from_settings(config)


@pytest.fixture()
def users(db, config):
    return UserRepository(db, config)


@pytest.fixture()
def commanders(db, config):
    return CommanderRepository(db, config)


@pytest.fixture()
def games(db, config):
    return GameRepository(db, config)


@pytest.fixture()
def stats(db, config):
    return StatsService(db, config)


@pytest.fixture()
def auth(db, credentials, users, config):
    return AuthService(db, credentials, users, config)


@pytest.fixture()
def make_user(users, credentials):
    """Create a user and return its response model."""
    password_hash = credentials.hash(PASSWORD)

    def _make(username="alice", email=None):
        return users.create(username, password_hash, email).unwrap()

    return _make


@pytest.fixture()
def make_commander(commanders):
    def _make(owner, name="Urza, Lord High Artificer", colors=("U",)):
        return commanders.create(owner.id, {"name": name, "colors": list(colors)}).unwrap()

    return _make


@pytest.fixture()
def make_game(games):
    def _make(owner, commander, days_ago=1, **fields):
        data = {
            "date": date.today() - timedelta(days=days_ago),
            "player_count": 4,
            "commander_id": commander.id,
        }
        data.update(fields)
        return games.create(owner.id, data).unwrap()

    return _make
