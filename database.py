"""
database.py — SQLAlchemy engine and session management for Thailand Tracker.

Provides:
  engine       — the shared SQLAlchemy engine
  SessionLocal — sessionmaker bound to the engine
  get_db()     — FastAPI dependency that yields a session per request
  init_db()    — create all tables (called once at startup)

All SQLAlchemy calls are synchronous. Route handlers wrap them in
starlette.concurrency.run_in_threadpool so they never block the event loop.
"""

import os
import logging
from typing import Generator

from sqlalchemy import create_engine, event, text
from sqlalchemy.orm import sessionmaker, Session

logger = logging.getLogger(__name__)

# ── Database URL ──────────────────────────────────────────────────────────────
_raw_db_url = os.getenv('DATABASE_URL', 'sqlite:///thailand_tracker.db')


def safe_db_url(url: str) -> str:
    """
    Normalise the connection string for SQLAlchemy.
    Hosted Postgres providers often hand out postgres:// which SQLAlchemy
    no longer accepts as a dialect name.
    """
    if url.startswith('postgres://'):
        url = 'postgresql://' + url[len('postgres://'):]
    return url


_db_url = safe_db_url(_raw_db_url)

# ── Engine ────────────────────────────────────────────────────────────────────
_connect_args: dict = {}
if _db_url.startswith('sqlite'):
    _connect_args = {'timeout': 15, 'check_same_thread': False}

engine = create_engine(
    _db_url,
    connect_args=_connect_args,
    pool_pre_ping=True,
)

# ── SQLite WAL mode ───────────────────────────────────────────────────────────
# Every pooled connection gets WAL so readers never block the single writer.
if _db_url.startswith('sqlite'):
    @event.listens_for(engine, 'connect')
    def _set_sqlite_wal(dbapi_conn, _connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute('PRAGMA journal_mode=WAL')
        cursor.close()

    try:
        with engine.connect() as conn:
            conn.execute(text('PRAGMA journal_mode=WAL'))
        logger.info("SQLite WAL mode enabled")
    except Exception as exc:
        logger.warning("Could not prime SQLite WAL mode: %s", exc)

# ── Session factory ───────────────────────────────────────────────────────────
SessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,   # rows are serialised after commit, outside the threadpool
)


def init_db() -> None:
    """Create any missing tables."""
    from models import db
    db.metadata.create_all(engine)
    logger.info("Database ready: %s", _db_url.split('@')[-1])


# ── FastAPI dependency ────────────────────────────────────────────────────────

def get_db() -> Generator[Session, None, None]:
    """Yield a SQLAlchemy session for the duration of a request, then close it."""
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
