"""
Database setup and session management.
"""

from pathlib import Path

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from bci_backend.core.config import settings
from bci_backend.core.logging import get_logger

logger = get_logger(__name__)


def create_db_engine(database_url: str, echo: bool = False, **kwargs) -> Engine:
    """
    Create an engine for the given URL.

    SQLite gets cross-thread access and enforced foreign keys so that
    cascading deletes also happen at the database level.
    """
    if database_url.startswith("sqlite"):
        kwargs.setdefault("connect_args", {"check_same_thread": False})
        db_engine = create_engine(database_url, echo=echo, **kwargs)

        @event.listens_for(db_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return db_engine

    return create_engine(
        database_url,
        echo=echo,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        **kwargs
    )


def _ensure_sqlite_directory(database_url: str) -> None:
    prefix = "sqlite:///"
    if database_url.startswith(prefix) and ":memory:" not in database_url:
        Path(database_url[len(prefix):]).parent.mkdir(parents=True, exist_ok=True)


_ensure_sqlite_directory(settings.database_url)

# Create database engine
engine = create_db_engine(settings.database_url, echo=settings.database_echo)

# Create session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Base class for models
Base = declarative_base()


def get_db():
    """
    Dependency for FastAPI routes to get database session.

    Usage:
        @router.get("/sessions/{session_id}")
        def get_session(session_id: str, db: Session = Depends(get_db)):
            ...
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """
    Initialize database - create all tables.

    Should be called on application startup or via migration tool.
    """
    # Import models so they register on Base.metadata
    from bci_backend.data import models  # noqa: F401

    logger.info("initializing_database")
    Base.metadata.create_all(bind=bind or engine)
    logger.info("database_initialized")


def drop_db(bind: Engine | None = None) -> None:
    """
    Drop all tables.

    WARNING: This will delete all data!
    Should only be used in development/testing.
    """
    if not settings.is_development:
        raise RuntimeError("Cannot drop database in production!")

    logger.warning("dropping_all_tables")
    Base.metadata.drop_all(bind=bind or engine)
    logger.warning("all_tables_dropped")
