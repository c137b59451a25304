"""Database engine, session factory and bootstrap"""

from __future__ import annotations

import logging
from typing import Callable, Iterator

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from trendlens.utils.retry import RetryPolicy, retry_sync

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL

    SQLite URLs get thread-agnostic connections so the ASGI worker threads can
    share them; an in-memory SQLite database is pinned to a single connection.
    """
    url = make_url(database_url)
    if url.drivername.startswith("sqlite"):
        kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if not url.database or url.database == ":memory:":
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)
    return create_engine(database_url, pool_pre_ping=True)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def bootstrap_database(
    engine: Engine,
    *,
    max_attempts: int,
    retry_delay_seconds: float,
    sleeper: Callable[[float], None] | None = None,
) -> None:
    """
    Wait for the database to accept connections, then create missing tables

    Raises:
        OperationalError: the database stayed unreachable for every attempt
    """
    # Make sure every model is registered on Base.metadata
    import trendlens.models  # noqa: F401

    def _probe() -> None:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))

    policy = RetryPolicy.fixed(
        max_attempts=max_attempts,
        delay=retry_delay_seconds,
        is_retryable=lambda exc: isinstance(exc, OperationalError),
    )
    kwargs = {"sleeper": sleeper} if sleeper is not None else {}
    retry_sync(_probe, policy, label="database connection", **kwargs)

    Base.metadata.create_all(bind=engine)
    logger.info("Database ready")


def session_scope(session_factory: Callable[[], Session]) -> Iterator[Session]:
    """Yield a session and always close it (FastAPI generator dependency body)."""
    db = session_factory()
    try:
        yield db
    finally:
        db.close()
