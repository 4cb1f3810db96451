import logging
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from samrambhak.core.config import get_settings

logger = logging.getLogger(__name__)

_engine: Engine = None
SessionLocal: sessionmaker = None


def init_engine(url: Optional[str] = None) -> Engine:
    """
    (Re)create the engine and session factory.
    Called lazily on first use; tests call it with a SQLite URL.
    """
    global _engine, SessionLocal
    settings = get_settings()
    url = url or settings.postgres_url

    if _engine is not None:
        _engine.dispose()

    if url.startswith("sqlite"):
        # TestClient runs handlers on a worker thread
        _engine = create_engine(url, connect_args={"check_same_thread": False})
    else:
        # pool_size=5: maintain 5 connections ready
        # max_overflow=10: allow 10 extra connections under load
        _engine = create_engine(url, pool_size=5, max_overflow=10, pool_pre_ping=True)

    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)
    return _engine


def get_engine() -> Engine:
    """Get or create the engine (singleton pattern)"""
    if _engine is None:
        init_engine()
    return _engine


@contextmanager
def get_db_session():
    """
    Context manager for database sessions.
    Usage:
        with get_db_session() as db:
            db.execute(text("SELECT * FROM users"))
    """
    if SessionLocal is None:
        init_engine()
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_postgres_connection() -> bool:
    """
    Test if the database is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        with get_db_session() as db:
            row = db.execute(text("SELECT 1 AS test")).fetchone()
            return row[0] == 1
    except Exception:
        logger.exception("Database connection failed")
        return False


def fetch_one(db, sql: str, params: dict = None) -> Optional[dict]:
    """Run a query inside an open session and return the first row as a dict."""
    row = db.execute(text(sql), params or {}).mappings().first()
    return dict(row) if row else None


def fetch_all(db, sql: str, params: dict = None) -> list:
    """Run a query inside an open session and return all rows as dicts."""
    return [dict(row) for row in db.execute(text(sql), params or {}).mappings().all()]
