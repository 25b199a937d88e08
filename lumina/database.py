"""SQLite engine, Session factory, and Base for the state table."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from lumina.config import get_config

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


class Base(DeclarativeBase):
    pass


_engines: Dict[str, Engine] = {}
_session_factories: Dict[str, sessionmaker[Session]] = {}


def database_url(path: str) -> str:
    if path == MEMORY_DB:
        return "sqlite://"
    db_path = Path(path).expanduser()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return f"sqlite:///{db_path}"


def _resolve(path: str | Path | None) -> str:
    """Explicit path, else the configured one."""
    return str(path) if path is not None else get_config().database.path


def get_engine(path: str | Path | None = None) -> Engine:
    """Engine for ``path`` (default: ``database.path`` from config), cached per path."""
    path = _resolve(path)
    engine = _engines.get(path)
    if engine is None:
        url = database_url(path)
        if path == MEMORY_DB:
            # One shared connection, otherwise every session sees an empty database
            engine = create_engine(
                url, connect_args={"check_same_thread": False}, poolclass=StaticPool,
            )
        else:
            engine = create_engine(url, echo=False)

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
            cursor.close()

        _engines[path] = engine
        logger.debug("Opened state database at %s", url)
    return engine


def get_session_factory(path: str | Path | None = None) -> sessionmaker[Session]:
    path = _resolve(path)
    factory = _session_factories.get(path)
    if factory is None:
        factory = sessionmaker(bind=get_engine(path), expire_on_commit=False)
        _session_factories[path] = factory
    return factory


def get_session(path: str | Path | None = None) -> Session:
    return get_session_factory(path)()


@contextmanager
def session_scope(path: str | Path | None = None) -> Iterator[Session]:
    """Session that commits on success and rolls back on error."""
    session = get_session(path)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(path: str | Path | None = None) -> None:
    """Create the state table if it does not exist yet."""
    import lumina.models  # noqa: F401  registers models on Base
    Base.metadata.create_all(get_engine(path))


def reset_db() -> None:
    """Dispose every cached engine and session factory (for testing)."""
    for engine in _engines.values():
        engine.dispose()
    _engines.clear()
    _session_factories.clear()
