"""
Telemetry Database Engine

One engine per process. The simulation worker writes telemetry while the
Flask handlers read it, so SQLite connections are shared across threads
through a single static pool.
"""

import logging
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import create_engine, event, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from .models import Base

logger = logging.getLogger(__name__)

_engine: Optional[Engine] = None
_SessionFactory = None


def _default_url() -> str:
    # Deferred: config reads the environment at import time
    from config import config
    config.ensure_directories()
    return config.DATABASE_URL


def _build_engine(database_url: str) -> Engine:
    if not database_url.startswith('sqlite'):
        return create_engine(database_url, pool_pre_ping=True)

    engine = create_engine(
        database_url,
        connect_args={'check_same_thread': False},
        poolclass=StaticPool,
    )
    in_memory = database_url in ('sqlite://', 'sqlite:///:memory:')

    @event.listens_for(engine, "connect")
    def _tune_sqlite(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if not in_memory:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA busy_timeout=2000")
        cursor.close()

    return engine


def init_db(database_url: str = None) -> None:
    """
    Open (or replace) the telemetry engine and create missing tables.

    Args:
        database_url: SQLAlchemy URL. Defaults to config.DATABASE_URL.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        close_db()

    url = database_url or _default_url()
    _engine = _build_engine(url)
    Base.metadata.create_all(_engine)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    tables = inspect(_engine).get_table_names()
    logger.info(f"Telemetry database ready at {url} ({len(tables)} tables)")


def get_session() -> Session:
    """New session on the telemetry engine, opening the default database on first use."""
    if _SessionFactory is None:
        init_db()
    return _SessionFactory()


@contextmanager
def session_scope():
    """
    Transaction around a block of work.

    Commits when the block finishes; on any error rolls back and re-raises.

        with session_scope() as session:
            session.add(event_row)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error(f"Telemetry transaction rolled back: {e}")
        raise
    finally:
        session.close()


def is_initialized() -> bool:
    return _engine is not None


def close_db():
    """Dispose of the engine. The next session re-opens the default database."""
    global _engine, _SessionFactory

    if _engine is None:
        return
    _engine.dispose()
    _engine = None
    _SessionFactory = None
    logger.info("Telemetry database closed")
