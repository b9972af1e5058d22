import logging
import os
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from kanflow.config import settings

logger = logging.getLogger(__name__)

# Default to a local SQLite database if no DATABASE_URL is provided or usable
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_ROOT = os.path.abspath(os.path.join(BASE_DIR, ".."))
DEFAULT_DB_PATH = os.path.join(PROJECT_ROOT, "kanflow.db")


@event.listens_for(Engine, "connect")
def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):  # pragma: no cover - driver callback
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
    if dbapi_connection.__class__.__module__.startswith("sqlite3"):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def _build_engine():
    """Create the SQLAlchemy engine, preferring the configured DATABASE_URL."""
    database_url = settings.DATABASE_URL if getattr(settings, "DATABASE_URL", None) else None

    if database_url:
        try:
            engine = create_engine(database_url)
            # Ensure the target database is reachable; otherwise fall back to SQLite
            with engine.connect() as connection:  # noqa: F841
                pass
            return engine
        except ModuleNotFoundError:
            logger.warning("Driver for %s is not installed, falling back to SQLite", engine_name(database_url))
        except SQLAlchemyError:
            logger.warning("Database %s is unreachable, falling back to SQLite", engine_name(database_url))

    sqlite_url = f"sqlite:///{DEFAULT_DB_PATH}"
    return create_engine(sqlite_url, connect_args={"check_same_thread": False})


def engine_name(database_url: str) -> str:
    """Return the dialect part of a URL so credentials never reach the logs."""
    return database_url.split("://", 1)[0]


engine = _build_engine()

# Session factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Base class for the models
Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session):
    """Run a unit of work: commit when the block succeeds, roll back on any error.

    Multi-step mutations (cascade delete followed by compaction, column diffs,
    bulk reindexing) must never be observable half-applied.
    """
    try:
        yield db
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Transaction aborted by a persistence error")
        raise
    except Exception:
        db.rollback()
        raise
