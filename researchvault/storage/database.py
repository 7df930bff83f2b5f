"""Database connection and configuration management."""

import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from researchvault.config import get_settings
from researchvault.models.base import Base

logger = logging.getLogger(__name__)


class Database:
    """Database connection manager with connection pooling and transaction handling.

    The connection can be closed and reopened, which the backup archiver
    relies on to get exclusive access to the store during a restore.
    """

    def __init__(self, database_url: str | None = None, pool_size: int | None = None, max_overflow: int | None = None):
        """
        Initialize database connection.

        Args:
            database_url: Database connection URL. If None, reads from settings.
                         Supports PostgreSQL and SQLite.
            pool_size: Number of connections to maintain in the pool. If None, uses settings.
            max_overflow: Maximum number of connections to allow beyond pool_size. If None, uses settings.
        """
        settings = get_settings()

        if database_url is None:
            database_url = settings.get_database_url()

        if pool_size is None:
            pool_size = settings.db_pool_size

        if max_overflow is None:
            max_overflow = settings.db_max_overflow

        self.database_url = database_url
        self._pool_size = pool_size
        self._max_overflow = max_overflow
        self._pool_timeout = settings.db_pool_timeout
        self._echo = settings.sql_echo

        self.engine: Engine | None = None
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False)
        self.open()

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    def _build_engine(self) -> Engine:
        kwargs = {"pool_pre_ping": True, "echo": self._echo}
        if self.is_sqlite:
            kwargs["connect_args"] = {"check_same_thread": False}
        else:
            kwargs.update(
                pool_size=self._pool_size,
                max_overflow=self._max_overflow,
                pool_timeout=self._pool_timeout,
            )

        engine = create_engine(self.database_url, **kwargs)

        if self.is_sqlite:
            # pysqlite defers BEGIN on its own, which breaks SAVEPOINT handling.
            # Let SQLAlchemy emit BEGIN and enable foreign keys per connection.
            @event.listens_for(engine, "connect")
            def set_sqlite_pragma(dbapi_conn, connection_record):
                dbapi_conn.isolation_level = None
                cursor = dbapi_conn.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

            @event.listens_for(engine, "begin")
            def do_begin(conn):
                conn.exec_driver_sql("BEGIN")

        return engine

    def open(self) -> None:
        """Open the connection pool if it is closed."""
        if self.engine is None:
            self.engine = self._build_engine()
            self.SessionLocal.configure(bind=self.engine)
            logger.debug("Opened database connection to %s", self.engine.url.render_as_string(hide_password=True))

    def close(self) -> None:
        """Close all pooled connections. Sessions cannot be created until reopened."""
        if self.engine is not None:
            self.engine.dispose()
            self.engine = None
            self.SessionLocal.configure(bind=None)
            logger.debug("Closed database connection")

    @property
    def is_open(self) -> bool:
        return self.engine is not None

    def create_tables(self) -> None:
        """Create all database tables."""
        Base.metadata.create_all(bind=self.engine)

    def drop_tables(self) -> None:
        """Drop all database tables."""
        Base.metadata.drop_all(bind=self.engine)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        """
        Context manager for database sessions with automatic transaction handling.

        Usage:
            with db.session() as session:
                # Use session here
                session.commit()
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def execute_raw_sql(self, sql: str, params: dict | None = None) -> list:
        """
        Execute raw SQL and return fetched rows, or an empty list for statements without rows.

        Writes made here bypass the document service, so they also bypass
        fingerprinting.
        """
        with self.session() as session:
            result = session.execute(text(sql), params or {})
            return result.fetchall() if result.returns_rows else []
