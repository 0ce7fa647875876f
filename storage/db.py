# storage/db.py
from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Iterator

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import SQLModel, create_engine, Session

from core.errors import PersistenceError
from core.settings import DB_PATH

# Ensure SQLModel metadata is populated
import models  # noqa: F401


_engine = create_engine(f"sqlite:///{DB_PATH.as_posix()}", echo=False)


def init_db(engine=None):
    if engine is None:
        DB_PATH.parent.mkdir(parents=True, exist_ok=True)
    SQLModel.metadata.create_all(engine or _engine)


def get_session() -> Session:
    return Session(_engine)


@contextmanager
def session_scope(session_factory: Callable[[], Session] = get_session) -> Iterator[Session]:
    """Open a session and report database failures as :class:`PersistenceError`."""

    try:
        with session_factory() as session:
            yield session
    except SQLAlchemyError as exc:
        raise PersistenceError(str(exc)) from exc


__all__ = ["init_db", "get_session", "session_scope"]
