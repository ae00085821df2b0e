"""
Database connection management with connection pooling.

The engine points at PostgreSQL in production. Development and test runs
may set DATABASE_URL to a SQLite file; foreign keys are switched on for
those connections so the users -> activities cascade behaves the same.
"""
from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import declarative_base
from sqlalchemy.orm import sessionmaker, Session
from core.config import settings
import logging

logger = logging.getLogger(__name__)

DATABASE_URL = settings.database_url


def build_engine(url: str):
    """Create an engine for ``url`` with pooling suited to the backend."""
    if make_url(url).get_backend_name() == "sqlite":
        new_engine = create_engine(
            url,
            connect_args={"check_same_thread": False},
            echo=settings.DEBUG,
        )
    else:
        new_engine = create_engine(
            url,
            pool_size=settings.DB_POOL_SIZE,  # Number of connections to maintain
            max_overflow=settings.DB_MAX_OVERFLOW,  # Additional connections beyond pool_size
            pool_timeout=settings.DB_POOL_TIMEOUT,  # Seconds to wait for connection
            pool_recycle=settings.DB_POOL_RECYCLE,  # Recycle connections after this many seconds
            pool_pre_ping=True,  # Verify connections before using
            echo=settings.DEBUG,  # Log SQL queries in debug mode
        )

    @event.listens_for(new_engine, "connect")
    def set_sqlite_pragma(dbapi_conn, connection_record):
        """Set connection-level settings."""
        if new_engine.dialect.name == "sqlite":
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
        logger.debug("New database connection established")

    return new_engine


engine = build_engine(DATABASE_URL)

# Session factory
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False,  # Prevent lazy loading issues
)

Base = declarative_base()


def get_db() -> Session:
    """
    Dependency for FastAPI to get database session.

    Repositories commit each operation themselves; this only guarantees
    the session is rolled back on error and always closed.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception as e:
        db.rollback()
        # Only log actual database errors, not HTTP exceptions
        from fastapi import HTTPException
        if not isinstance(e, HTTPException):
            logger.error(f"Database transaction error: {e}")
        raise
    finally:
        db.close()


def create_tables(bind=None) -> None:
    """Create any missing tables for the mapped models."""
    # Registers the mapped classes on Base.metadata.
    import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database schema ensured")


def check_db_connection() -> bool:
    """
    Check if database connection is healthy.

    Returns:
        True if connection is healthy, False otherwise
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection check failed: {e}")
        return False
