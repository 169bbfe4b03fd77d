"""Database setup and session management."""

import logging
from functools import lru_cache

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from config import settings

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


def _enable_sqlite_foreign_keys(engine: Engine) -> None:
    """Register a ``connect`` listener that turns on SQLite FK enforcement."""

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_db_engine(database_url: str, **kwargs) -> Engine:
    """Create an engine for an explicit database URL.

    The URL is the only input that decides which store is used; callers
    never pass an environment mode. SQLite connections get
    ``check_same_thread=False`` (FastAPI runs sync handlers in a thread
    pool) and foreign-key enforcement.
    """
    connect_args = kwargs.pop("connect_args", {})
    is_sqlite = database_url.startswith("sqlite")

    if is_sqlite:
        connect_args.setdefault("check_same_thread", False)

    engine = create_engine(
        database_url,
        connect_args=connect_args,
        echo=False,
        **kwargs,
    )
    if is_sqlite:
        _enable_sqlite_foreign_keys(engine)

    logger.info("Database engine created for %s", engine.url.render_as_string(hide_password=True))
    return engine


@lru_cache
def get_engine() -> Engine:
    """Get or create the database engine (cached)."""
    return create_db_engine(settings.DATABASE_URL)


def get_session_local():
    """Get a sessionmaker bound to the engine."""
    return sessionmaker(autocommit=False, autoflush=False, bind=get_engine())


def get_db():
    """Dependency that provides a database session.

    Transaction conventions:
    - Services ``flush()``, the API layer ``commit()`` once per request
    - Route handlers roll back explicitly when a service raises a
      ``LedgerError``; any other exception is rolled back here
    """
    SessionLocal = get_session_local()
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
