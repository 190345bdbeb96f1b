"""Database engine, session factory and declarative base."""
import sqlite3
from datetime import UTC, datetime
from typing import Generator, Optional

from sqlalchemy import Column, DateTime, create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from lexicycle.config import settings


@event.listens_for(Engine, "connect")
def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """Make SQLite enforce the foreign keys of cycle words and progress."""
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_engine(settings.database.url, echo=settings.database.echo)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def utc_timestamp() -> datetime:
    return datetime.now(UTC)


class TimestampMixin:
    """Creation and last-update timestamps, stored in UTC."""
    created_at = Column(DateTime(timezone=True), default=utc_timestamp)
    updated_at = Column(DateTime(timezone=True), default=utc_timestamp, onupdate=utc_timestamp)


def get_db() -> Generator[Session, None, None]:
    """Yield a session bound to the configured database, closing it afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Optional[Engine] = None) -> None:
    """Create the engine's tables on the given or configured database."""
    # Registers the tables on the metadata
    from lexicycle.models import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
