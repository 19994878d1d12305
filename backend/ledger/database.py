"""
ledger/database.py - SQLAlchemy engine, session factory and request-scoped sessions.

The engine owns the process-lifetime connection pool. It is built by the application
factory and stored on `app.state`; request handlers get a Session through the
`get_session` dependency, which always closes it (returning the connection to the pool).
"""
from __future__ import annotations

from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ledger.config import Settings


class Base(DeclarativeBase):
    """Declarative base for the ledger tables."""


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ignores REFERENCES clauses unless asked per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def build_engine(settings: Settings, url: Optional[str] = None) -> Engine:
    """
    Creates the pooled engine for `url` (default: settings.database_url).

    - PostgreSQL: QueuePool bounded by db_pool_size + db_max_overflow.
    - SQLite (tests, local runs): foreign keys switched on; in-memory databases share
      one connection through StaticPool so every session sees the same tables.
    """
    url = url or settings.database_url
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, **kwargs)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_timeout=settings.db_pool_timeout,
        pool_pre_ping=True,
    )


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def create_tables(engine: Engine) -> None:
    """Creates `orders` and `trackings` if they do not exist yet."""
    # model import registers the tables on Base.metadata
    from ledger.model import order  # noqa: F401

    Base.metadata.create_all(engine)


def get_session(request: Request) -> Iterator[Session]:
    """FastAPI dependency: one Session per request, closed on every exit path."""
    session: Session = request.app.state.session_factory()
    try:
        yield session
    finally:
        session.close()
