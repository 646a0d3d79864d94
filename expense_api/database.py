"""Connection pool provider for the expense report service."""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator

from fastapi import Request
from sqlalchemy import create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import TimeoutError as SQLAlchemyTimeoutError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import QueuePool

from .config import Settings
from .exceptions import PoolTimeout

logger = logging.getLogger(__name__)

Base = declarative_base()


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite ignores foreign keys unless each connection opts in."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection: Any, _record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_pool_engine(settings: Settings) -> Engine:
    """Build a bounded engine from the pool settings."""
    url = settings.DATABASE_URL
    kwargs: dict[str, Any] = {
        "poolclass": QueuePool,
        "pool_size": settings.DB_POOL_MIN,
        "max_overflow": settings.DB_POOL_MAX - settings.DB_POOL_MIN,
        "pool_timeout": settings.DB_ACQUIRE_TIMEOUT,
        "pool_pre_ping": True,
        "echo": settings.DB_ECHO,
        "future": True,
    }
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    engine = create_engine(url, **kwargs)
    if engine.dialect.name == "sqlite":
        enable_sqlite_foreign_keys(engine)
    return engine


class ConnectionPool:
    """Explicitly managed pool of database connections.

    The application factory constructs one instance, calls :meth:`init`
    on startup and :meth:`shutdown` after the server stops accepting
    requests. Request handlers receive it through :func:`get_pool`.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        acquire_timeout: float = 30.0,
        shutdown_grace: float = 10.0,
        increment: int = 1,
    ) -> None:
        self.engine = engine
        self.acquire_timeout = acquire_timeout
        self.shutdown_grace = shutdown_grace
        self.increment = increment
        self._sessionmaker = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)
        self._closed = False

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConnectionPool":
        return cls(
            create_pool_engine(settings),
            acquire_timeout=settings.DB_ACQUIRE_TIMEOUT,
            shutdown_grace=settings.DB_SHUTDOWN_GRACE,
            increment=settings.DB_POOL_INCREMENT,
        )

    def init(self) -> None:
        """Create missing tables and probe the connection."""
        from . import models

        Base.metadata.create_all(bind=self.engine)
        with self.session() as session:
            user_count = session.scalar(select(func.count()).select_from(models.User))
        logger.info("Connection pool ready (%s); user count: %s", self.status(), user_count)

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Check out a connection for one unit of work and always release it."""
        if self._closed:
            raise RuntimeError("Connection pool has been shut down")
        session = self._sessionmaker()
        try:
            try:
                session.connection()
            except SQLAlchemyTimeoutError as exc:
                logger.error(
                    "Timed out after %ss waiting for a database connection",
                    self.acquire_timeout,
                    extra={"pool_event": True},
                )
                raise PoolTimeout(self.acquire_timeout) from exc
            yield session
        finally:
            session.close()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Provide a transactional scope; roll back on any error before re-raising."""
        with self.session() as session:
            try:
                yield session
                session.commit()
            except Exception:
                session.rollback()
                raise

    def checked_out(self) -> int:
        checkedout = getattr(self.engine.pool, "checkedout", None)
        return int(checkedout()) if callable(checkedout) else 0

    def status(self) -> str:
        return f"{self.engine.pool.status()}, increment={self.increment}"

    def shutdown(self) -> None:
        """Wait up to the grace period for in-flight connections, then close everything."""
        if self._closed:
            return
        self._closed = True
        deadline = time.monotonic() + self.shutdown_grace
        while self.checked_out() and time.monotonic() < deadline:
            time.sleep(0.1)
        remaining = self.checked_out()
        if remaining:
            logger.warning(
                "Forcing pool closure with %d connection(s) still checked out",
                remaining,
                extra={"pool_event": True},
            )
        self.engine.dispose()
        logger.info("Connection pool closed")


def get_pool(request: Request) -> ConnectionPool:
    """FastAPI dependency returning the pool owned by the running application."""
    return request.app.state.pool
