"""Database engine and session factory for SQLAlchemy."""

from datetime import datetime, timezone
from typing import Callable, Optional

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.orm import DeclarativeBase, sessionmaker, Session

from ..config import settings


class Base(DeclarativeBase):
    pass


engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False},  # SQLite needs this for multi-thread
    echo=False,
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

# Every pass accepts one of these so tests can hand in an in-memory database.
SessionFactory = Callable[[], Session]


def get_db() -> Session:
    """Dependency for FastAPI endpoints."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands datetimes back naive; treat them as the UTC they were stored as."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def init_database(bind: Optional[Engine] = None) -> None:
    """Create all tables.

    Models must be imported before create_all() so they register with Base.metadata.
    """
    from . import climate_reading  # noqa: F401
    from . import habitat_weather  # noqa: F401
    from . import alert  # noqa: F401
    from . import collection  # noqa: F401
    from . import pass_lease  # noqa: F401

    target = bind or engine
    Base.metadata.create_all(bind=target)

    # Enable WAL mode so the API and scheduled passes can access the DB concurrently
    if target.url.database not in (None, "", ":memory:"):
        with target.connect() as conn:
            conn.execute(text("PRAGMA journal_mode=WAL"))
            conn.commit()
