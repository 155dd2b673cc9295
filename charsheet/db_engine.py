"""
Engine and session handling for the local character database.

The engine is created lazily from DB_NAME on first use. Tests swap in their
own engine with set_engine() and restore the default with reset_engine().
"""

from contextlib import contextmanager
from typing import Generator, Optional

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from util.constants import DB_NAME
from util.logging_util import setup_logger

logger = setup_logger(__name__)

_engine: Optional[Engine] = None
_session_factory: Optional[sessionmaker] = None


def sqlite_url(path: str) -> str:
    if path == ":memory:":
        return "sqlite://"
    return f"sqlite:///{path}"


def _enable_foreign_keys(dbapi_connection, connection_record):
    # SQLite leaves foreign key enforcement off per connection
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


def _bind(engine: Engine) -> None:
    global _engine, _session_factory
    _engine = engine
    # Records are converted to dataclasses after commit, so keep loaded state
    _session_factory = sessionmaker(bind=engine, expire_on_commit=False)


def get_engine() -> Engine:
    """Get the engine, creating it from DB_NAME on first use."""
    if _engine is None:
        engine = create_engine(sqlite_url(DB_NAME))
        event.listen(engine, "connect", _enable_foreign_keys)
        logger.info(f"Opened character database {DB_NAME}")
        _bind(engine)
    return _engine


def set_engine(engine: Engine) -> None:
    """Use a caller-provided engine, e.g. an in-memory database in tests."""
    _bind(engine)


def reset_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


@contextmanager
def get_session() -> Generator[Session, None, None]:
    """Yield a session that commits on success and rolls back on error."""
    if _session_factory is None:
        get_engine()

    session = _session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
