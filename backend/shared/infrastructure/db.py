"""
Database engine and session handling (SQLAlchemy 2.0).

PostgreSQL is the production backend; row locks taken with
``with_for_update`` serialize cart additions against confirmation there.
SQLite is accepted for local runs and tests, where locking is a no-op and
the single-writer rule gives the same ordering.
"""

from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session

from shared.config.settings import settings, DATABASE_URL
from shared.utils.exceptions import PersistenceError


def _engine_options(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        return {"connect_args": {"check_same_thread": False}}

    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_timeout": 30,
        "pool_recycle": 1800,
        "connect_args": {"connect_timeout": 10},
    }


engine = create_engine(DATABASE_URL, echo=False, **_engine_options(DATABASE_URL))

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency yielding one session per request.

        @router.get("/api/cart")
        def list_cart(session_id: int, db: Session = Depends(get_db)):
            return CartService(db).list_items(session_id)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Same as get_db for code running outside a request (CLI, startup seeding)."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def safe_commit(db: Session, operation: str = "commit") -> None:
    """
    Commit, rolling back on failure.

    IntegrityError propagates as is: services catch it to settle unique
    index races (coalesced cart lines, the current split agreement).
    Anything else from the driver becomes a PersistenceError (503).
    """
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(operation, error=str(e)) from e
