"""
Database connection and session management for DoseRound

The database backs the local reminder store (REMINDER_SOURCE=local).
When reminders come from the hospital API it is not touched.
"""

import logging
from sqlalchemy import create_engine, event, func, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from contextlib import contextmanager
from typing import Dict, Generator, Optional

from config import settings


logger = logging.getLogger(__name__)


def create_db_engine(url: str, echo: bool = False) -> Engine:
    """Build an engine for the reminder store"""
    if not url.startswith("sqlite"):
        return create_engine(url, echo=echo, pool_size=5, max_overflow=10, pool_pre_ping=True)

    # A single shared connection keeps in-memory databases alive across sessions
    sqlite_engine = create_engine(
        url,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=echo
    )

    @event.listens_for(sqlite_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return sqlite_engine


engine = create_db_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Base class for ORM models
Base = declarative_base()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """
    Session scope for the reminder store: commits on success,
    rolls back on error.

    Usage:
        with get_db_context() as db:
            db.query(MedicineReminder).filter(...).all()
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind: Optional[Engine] = None) -> None:
    """Create the reminder tables if they do not exist"""
    # Import models to register them with Base
    import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info(f"Database initialized at: {settings.DATABASE_URL}")


class DatabaseHealthCheck:
    """Database health check utilities"""

    @staticmethod
    def is_connected() -> bool:
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("Database health check failed")
            return False

    @staticmethod
    def reminder_status_counts() -> Dict[str, int]:
        """Number of stored reminders per dose status label"""
        from models import DoseStatus, MedicineReminder

        with get_db_context() as db:
            rows = db.query(
                MedicineReminder.dose_status,
                func.count(MedicineReminder.id)
            ).group_by(MedicineReminder.dose_status).all()

        counts = {status.label: 0 for status in DoseStatus}
        for value, count in rows:
            try:
                counts[DoseStatus(value).label] += count
            except ValueError:
                logger.warning(f"Unknown dose status {value!r} in {count} stored reminders")
        return counts


__all__ = [
    "engine",
    "SessionLocal",
    "Base",
    "create_db_engine",
    "get_db_context",
    "init_db",
    "DatabaseHealthCheck"
]
