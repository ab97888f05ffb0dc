"""
Database engine, session factory and transaction helpers
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from campus_events.core.config import settings
from campus_events.core.deadline import Deadline

logger = logging.getLogger(__name__)


def make_engine(url: str):
    """Create an engine; sqlite gets foreign keys and a busy timeout"""
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={"check_same_thread": False, "timeout": 15},
        )

        @event.listens_for(engine, "connect")
        def _enable_sqlite_fks(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine
    return create_engine(url, pool_pre_ping=True)


engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Iterator[Session]:
    """FastAPI dependency yielding a session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session, deadline: Optional[Deadline] = None) -> Iterator[Session]:
    """Run a block as one transaction.

    Commits when the block finishes, unless the deadline has expired, and
    rolls back on any exception.
    """
    try:
        yield db
        if deadline is not None:
            deadline.check()
        db.commit()
    except Exception:
        db.rollback()
        raise
