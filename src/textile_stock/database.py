"""Database utilities."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from .config import get_settings


class Base(DeclarativeBase):
    """Base model for SQLAlchemy mappings."""


def enable_foreign_keys(engine: Engine) -> Engine:
    """Make SQLite enforce the ``owner_id`` references on every connection."""

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record) -> None:  # pragma: no cover - driver hook
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    return engine


def create_sqlite_engine(url: str) -> Engine:
    return enable_foreign_keys(create_engine(url, connect_args={"check_same_thread": False}, future=True))


def get_engine() -> Engine:
    """Return a lazily created engine instance."""

    global engine
    try:
        return engine
    except NameError:  # pragma: no cover - executed once at runtime
        engine = create_sqlite_engine(f"sqlite:///{get_settings().database_path}")
        return engine


SessionLocal = sessionmaker(bind=get_engine(), autoflush=False, autocommit=False, expire_on_commit=False)


@contextmanager
def session_scope() -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session: Session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_database(bind: Engine | None = None) -> None:
    """Ensure that the ledger schema exists on *bind* (the default engine when omitted)."""

    from . import models  # noqa: F401 - ensure models are imported

    Base.metadata.create_all(bind=bind or get_engine())
