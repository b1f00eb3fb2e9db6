import logging
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, Session, declarative_base

from app.config import settings

logger = logging.getLogger(__name__)

REQUIRED_TABLES = ("driver_list", "schedule", "messages")
SCHEDULE_KEY = ("driver", "date")


class ServiceError(Exception):
    """
    Base for failures reported to clients as a 500 with an error description.

    Attributes:
        operation: Name of the service operation that failed
        description: Client-facing description of the failure
    """

    def __init__(self, operation: str, description: str):
        super().__init__(description)
        self.operation = operation
        self.description = description


class StorageError(ServiceError):
    """Raised when a storage round-trip fails."""


def build_engine(database_url: str) -> Engine:
    """
    Create the SQLAlchemy engine backing the connection pool.

    SQLite needs check_same_thread=False because sessions are used from
    FastAPI's threadpool. Server databases get a bounded QueuePool.
    """
    if database_url.startswith("sqlite"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            echo=False,
        )
    return create_engine(
        database_url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,
        echo=False,
    )


engine = build_engine(settings.DATABASE_URL)

# Create SessionLocal class for creating database sessions
# Loaded rows stay readable after commit; routes serialize them afterwards.
SessionLocal = sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)

# Base class for SQLAlchemy models
Base = declarative_base()


def init_db() -> None:
    """
    Initialize the database by creating all tables.
    Called during application startup.
    """
    logger.debug(f"Initializing database with URL: {engine.url!r}")
    try:
        # Import models to register them with Base.metadata
        from app import models  # noqa: F401

        Base.metadata.create_all(bind=engine)
        # create_all leaves pre-existing tables untouched
        if not has_unique_key(inspect(engine), "schedule", SCHEDULE_KEY):
            logger.warning(
                "schedule table has no unique key on (driver, date); "
                "add it before serving schedule upserts"
            )
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize database: {e}")
        raise


def dispose_db() -> None:
    """Release every pooled connection. Called at shutdown."""
    engine.dispose()
    logger.info("Database connection pool disposed")


def get_db() -> Generator[Session, None, None]:
    """
    Dependency to get database session.
    Yields a session and ensures it's closed after use.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def has_unique_key(inspector, table: str, columns: tuple) -> bool:
    """True if table has a unique constraint or unique index over exactly columns."""
    wanted = set(columns)
    for constraint in inspector.get_unique_constraints(table):
        if set(constraint["column_names"]) == wanted:
            return True
    for index in inspector.get_indexes(table):
        if index.get("unique") and set(index["column_names"]) == wanted:
            return True
    return False


def check_db_health() -> bool:
    """
    Check if the database is reachable and schema is applied.

    Returns:
        True if DB is healthy, every table exists and schedule carries its
        (driver, date) unique key, False otherwise.
    """
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
            inspector = inspect(conn)
            missing = [t for t in REQUIRED_TABLES if not inspector.has_table(t)]
            if missing:
                logger.error(f"Database schema not applied, missing tables: {missing}")
                return False
            if not has_unique_key(inspector, "schedule", SCHEDULE_KEY):
                logger.error("schedule table lacks a unique key on (driver, date); upserts will fail")
                return False
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False


@contextmanager
def storage_operation(db: Session, operation: str, description: str):
    """
    Run one logical operation against the store.

    Commits when the block finishes. Any SQLAlchemy error rolls the session
    back and is re-raised as StorageError, so no partial write is visible.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Storage failure in {operation}: {e}")
        raise StorageError(operation, description) from e
