# ---------------------------------------------------------------------------
# Author  : Kyle <kyle@hacking-linux.com>
# Version : 20261019v1
# ---------------------------------------------------------------------------
"""
SQLAlchemy engine, session factory and declarative base.

Two ways to get a session:
* ``get_db``        – FastAPI dependency, one session per request.
* ``session_scope`` – context manager for bin/ scripts and migrations helpers.
"""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from core.config import settings


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # sync endpoints run on the threadpool, not the creating thread
        return {"connect_args": {"check_same_thread": False}}
    # MySQL drops idle connections after wait_timeout
    return {"pool_pre_ping": True, "pool_recycle": 3600}


engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

SessionLocal = sessionmaker(bind=engine, autoflush=False)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    """Use with ``Depends(get_db)``; the session is closed after the response."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
