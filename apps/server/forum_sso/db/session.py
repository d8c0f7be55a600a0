"""Database session and engine helpers."""

import logging
import time
from collections.abc import Generator
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from forum_sso.core.config import settings

logger = logging.getLogger(__name__)


def engine_options(database_url: str) -> dict[str, Any]:
    """Engine keyword arguments suited to the configured backend."""

    options: dict[str, Any] = {"future": True, "pool_pre_ping": True}
    if make_url(database_url).get_backend_name() == "sqlite":
        # SQLite connections are shared between the request threads.
        options["connect_args"] = {"check_same_thread": False}
    return options


engine = create_engine(settings.database_url, **engine_options(settings.database_url))
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    future=True,
)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session for FastAPI dependencies."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def verify_connection(
    max_attempts: int | None = None, delay_seconds: float = 1.0
) -> None:
    """Block until the database answers ``SELECT 1``.

    Retries with linear backoff, ``DB_CONNECT_ATTEMPTS`` times by default,
    and re-raises the last error once the attempts are used up.
    """

    attempts = max_attempts or settings.db_connect_attempts
    last_exc: SQLAlchemyError | None = None
    for attempt in range(1, attempts + 1):
        try:
            with engine.connect() as connection:
                connection.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            last_exc = exc
            logger.warning(
                "Database not ready (attempt %d/%d): %s",
                attempt,
                attempts,
                type(exc).__name__,
            )
            if attempt < attempts:
                time.sleep(delay_seconds * attempt)
            continue

        if attempt > 1:
            logger.info("Database connection established after %d attempt(s)", attempt)
        return

    logger.error("Database unreachable after %d attempts", attempts)
    if last_exc is not None:
        raise last_exc
    raise RuntimeError("Database connection verification failed")


__all__ = ["engine", "engine_options", "SessionLocal", "get_db", "verify_connection"]
