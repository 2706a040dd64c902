"""SQLAlchemy session helpers."""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .engine import get_engine


def get_sessionmaker(engine: Engine | None = None) -> sessionmaker:
    """Return a ``sessionmaker`` bound to ``engine`` (the shared engine by default)."""

    return sessionmaker(bind=engine or get_engine(), autoflush=False, expire_on_commit=False)


@contextmanager
def session_scope(engine: Engine | None = None) -> Iterator[Session]:
    """Provide a transactional scope for imperative scripts."""

    session = get_sessionmaker(engine)()
    try:
        yield session
        session.commit()
    except Exception:  # pragma: no cover - re-raise for callers
        session.rollback()
        raise
    finally:
        session.close()
