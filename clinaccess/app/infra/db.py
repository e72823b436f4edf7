"""Database session utilities."""
from contextlib import contextmanager
import time
from typing import Iterator, Optional

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session

from ..domain import models  # noqa: F401  registers tables on SQLModel.metadata


def make_engine(database_url: str) -> Engine:
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        # in-memory SQLite has to share one connection across threads
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            return create_engine(
                database_url, future=True, connect_args=connect_args, poolclass=StaticPool
            )
        return create_engine(database_url, future=True, connect_args=connect_args)
    return create_engine(database_url, future=True)


def init_db(engine: Engine, attempts: int = 30) -> None:
    """Create tables if they do not exist.

    Retries on startup to wait for the database service in Docker.
    """
    last_err: Optional[Exception] = None
    for attempt in range(1, attempts + 1):
        try:
            SQLModel.metadata.create_all(engine)
            return
        except Exception as exc:  # pragma: no cover
            last_err = exc
            logger.warning("waiting for database... ({}/{}) {}", attempt, attempts, exc)
            time.sleep(1)
    if last_err:
        raise last_err


@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
