"""
Database connection management for RetainerKit.

Provides the explicitly constructed persistence handle (engine, session
factory and lifecycle), the request-scoped session dependency, and the
dialect-aware insert helper used for upsert-or-ignore writes.
"""
import os
from typing import Generator, Optional

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

# Database configuration
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./retainerkit.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"
SQLITE_BUSY_TIMEOUT = float(os.getenv("SQLITE_BUSY_TIMEOUT", "30"))


def _set_sqlite_pragma(dbapi_connection, connection_record):
    """Enable foreign key constraints for SQLite connections."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def is_sqlite_memory_url(url: str) -> bool:
    """True for SQLite URLs that name no database file (`sqlite://`, `:memory:`)."""
    parsed = make_url(url)
    return parsed.get_backend_name() == "sqlite" and parsed.database in (None, "", ":memory:")


class Database:
    """
    Persistence handle with a defined lifecycle.

    Built once at process start, passed to the application, and disposed
    at shutdown. Nothing reads it from module-level state.
    """

    def __init__(self, url: str, echo: bool = False):
        self.url = url
        is_sqlite = url.startswith("sqlite")
        engine_options = {"echo": echo}
        if is_sqlite_memory_url(url):
            # one shared connection, or each session would see its own empty database
            engine_options["poolclass"] = StaticPool
            engine_options["connect_args"] = {"check_same_thread": False}
        elif is_sqlite:
            # connection per session; writers wait on the file lock instead of failing
            engine_options["connect_args"] = {"check_same_thread": False, "timeout": SQLITE_BUSY_TIMEOUT}
        self.engine = create_engine(url, **engine_options)
        if is_sqlite:
            event.listen(self.engine, "connect", _set_sqlite_pragma)
        self.session_factory = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    @classmethod
    def from_env(cls) -> "Database":
        """Build a handle from DATABASE_URL and SQL_ECHO."""
        return cls(DATABASE_URL, echo=SQL_ECHO)

    def create_tables(self):
        """Create all database tables."""
        Base.metadata.create_all(bind=self.engine)

    def drop_tables(self):
        """Drop all database tables."""
        Base.metadata.drop_all(bind=self.engine)

    def session(self) -> Session:
        """Open a new session bound to this handle."""
        return self.session_factory()

    def dispose(self):
        """Release pooled connections."""
        self.engine.dispose()


# PUBLIC_INTERFACE
def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency to get database session.

    Args:
        request: Incoming request; its application carries the Database handle

    Yields:
        Session: SQLAlchemy database session
    """
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    finally:
        db.close()


def insert_for(db: Session, model):
    """
    Return the dialect-specific INSERT construct for ``model``.

    PostgreSQL and SQLite both expose ``on_conflict_do_nothing`` and
    ``on_conflict_do_update`` on their own insert constructs.
    """
    dialect_name: Optional[str] = db.get_bind().dialect.name
    if dialect_name == "postgresql":
        return postgresql.insert(model)
    if dialect_name == "sqlite":
        return sqlite.insert(model)
    raise ValueError(f"Upserts are not supported on dialect {dialect_name}")
