"""Shared SQLAlchemy Base, engine and session helpers."""
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from nursery.config import get_settings

Base = declarative_base()


def build_engine(database_url: str, pool_size: int = 5, echo: bool = False) -> Engine:
    """Create the process-wide engine. SQLite URLs get a single shared connection."""
    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        @event.listens_for(engine, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(
        database_url,
        echo=echo,
        pool_size=pool_size,
        pool_pre_ping=True,
    )


settings = get_settings()
engine = build_engine(settings.database_url, settings.db_pool_size, settings.db_echo)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def get_db() -> Iterator[Session]:
    """FastAPI dependency yielding one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit the session on success, roll it back on any error."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
