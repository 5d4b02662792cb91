"""
Database session management.

``Database`` owns the engine and its connection pool. Repositories and
services receive an instance in their constructor; the composition root is
responsible for ``initialize()`` and ``close()``.
"""
import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Iterator, List, Mapping, Optional, TypeVar, Union

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, Row, make_url
from sqlalchemy.exc import (
    IntegrityError,
    InterfaceError,
    OperationalError,
    SQLAlchemyError,
    TimeoutError as PoolTimeoutError,
)
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool
from sqlalchemy.sql import Executable

from edh_stats.core.config import Settings, settings
from edh_stats.core.errors import StorageUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")
Statement = Union[str, Executable]


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _is_memory_sqlite(url: str) -> bool:
    database = make_url(url).database
    return not database or database == ":memory:" or "mode=memory" in url


def _as_statement(sql: Statement) -> Executable:
    if isinstance(sql, str):
        return text(sql)
    return sql


class Database:
    """Pooled access to the relational store."""

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: float = 30,
        pool_recycle: int = 3600,
        connect_retries: int = 5,
        retry_delay: float = 2.0,
    ):
        self.url = url or settings.DATABASE_URL
        self.echo = echo
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.pool_timeout = pool_timeout
        self.pool_recycle = pool_recycle
        self.connect_retries = max(1, connect_retries)
        self.retry_delay = retry_delay
        self.engine: Optional[Engine] = None
        self.SessionLocal: Optional[sessionmaker] = None

    @classmethod
    def from_settings(cls, config: Settings = settings) -> "Database":
        return cls(
            config.DATABASE_URL,
            echo=config.DB_ECHO,
            pool_size=config.DB_POOL_SIZE,
            max_overflow=config.DB_MAX_OVERFLOW,
            pool_timeout=config.DB_POOL_TIMEOUT,
            pool_recycle=config.DB_POOL_RECYCLE,
            connect_retries=config.DB_CONNECT_RETRIES,
            retry_delay=config.DB_CONNECT_RETRY_DELAY,
        )

    @property
    def is_initialized(self) -> bool:
        return self.engine is not None

    def _create_engine(self) -> Engine:
        if self.url.startswith("sqlite"):
            options = {}
            if not _is_memory_sqlite(self.url):
                # File databases share a real pool, bounded like any other store
                options = {
                    "poolclass": QueuePool,
                    "pool_size": self.pool_size,
                    "max_overflow": self.max_overflow,
                    "pool_timeout": self.pool_timeout,
                }
            engine = create_engine(
                self.url,
                echo=self.echo,
                connect_args={"check_same_thread": False},
                **options,
            )
            event.listen(engine, "connect", _enable_sqlite_foreign_keys)
            return engine
        return create_engine(
            self.url,
            echo=self.echo,
            pool_size=self.pool_size,
            max_overflow=self.max_overflow,
            pool_timeout=self.pool_timeout,
            pool_recycle=self.pool_recycle,
            pool_pre_ping=True,
        )

    def initialize(self) -> "Database":
        """Create the pool and check the store is reachable. Safe to call more than once."""
        if self.is_initialized:
            return self

        engine = self._create_engine()
        last_error: Optional[Exception] = None
        for attempt in range(1, self.connect_retries + 1):
            try:
                with engine.connect() as conn:
                    conn.execute(text("SELECT 1"))
                break
            except SQLAlchemyError as e:
                last_error = e
                logger.warning(f"Database connection check failed (attempt {attempt}/{self.connect_retries}): {e}")
                if attempt < self.connect_retries:
                    time.sleep(self.retry_delay)
        else:
            engine.dispose()
            logger.error("Database unreachable, giving up")
            raise StorageUnavailable("Database is unreachable") from last_error

        self.engine = engine
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
        logger.info("Database connected successfully")
        return self

    def _require_engine(self) -> Engine:
        if self.engine is None:
            raise StorageUnavailable("Database not initialized. Call initialize() first.")
        return self.engine

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Yield a session inside one transaction: commit on success, rollback on error.

        Integrity errors are re-raised untouched so repositories can classify
        them. Connectivity failures and pool exhaustion become
        StorageUnavailable; programming and data errors propagate as they are.
        """
        self._require_engine()
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except IntegrityError:
            session.rollback()
            raise
        except (PoolTimeoutError, OperationalError, InterfaceError) as e:
            session.rollback()
            logger.error(f"Storage error: {e}", exc_info=True)
            raise StorageUnavailable() from e
        except BaseException:
            session.rollback()
            raise
        finally:
            session.close()

    def transaction(self, fn: Callable[[Session], T]) -> T:
        """Run ``fn(session)`` in one transaction; any error rolls back and propagates."""
        with self.session_scope() as session:
            return fn(session)

    def query(self, sql: Statement, params: Optional[Mapping[str, Any]] = None) -> List[Row]:
        """Execute a parameterized statement and return all rows."""
        with self.session_scope() as session:
            return list(session.execute(_as_statement(sql), params or {}).all())

    def all(self, sql: Statement, params: Optional[Mapping[str, Any]] = None) -> List[Row]:
        return self.query(sql, params)

    def get(self, sql: Statement, params: Optional[Mapping[str, Any]] = None) -> Optional[Row]:
        """Execute a parameterized statement and return the first row, or None."""
        with self.session_scope() as session:
            return session.execute(_as_statement(sql), params or {}).first()

    def execute(self, sql: Statement, params: Optional[Mapping[str, Any]] = None) -> int:
        """Execute a data-changing statement and return the affected row count."""
        with self.session_scope() as session:
            return session.execute(_as_statement(sql), params or {}).rowcount

    def health_check(self) -> bool:
        """Round-trip a trivial query. Never raises."""
        if self.engine is None:
            return False
        try:
            row = self.get("SELECT 1 AS test")
            return row is not None and row.test == 1
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return False

    def close(self) -> None:
        """Drain and release the pool. Safe to call more than once."""
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
            self.SessionLocal = None
            logger.info("Database connection closed")


_default_database: Optional[Database] = None


def get_database() -> Database:
    """Process-wide default, built from settings on first use."""
    global _default_database
    if _default_database is None:
        _default_database = Database.from_settings()
    return _default_database


def init_db(database: Database) -> None:
    """Create tables, constraints and views on an initialized database."""
    from edh_stats.db.base import Base
    import edh_stats.models  # noqa: F401
    import edh_stats.db.views  # noqa: F401

    Base.metadata.create_all(bind=database._require_engine())
