"""
Module: fulfillment_kernel.db.engine
Responsibility: One process-wide SQLAlchemy engine for the SQL order store,
    its session factory, and the per-call transaction scope the store runs
    every request in.
Architecture position: Kernel > DB.  Imports models/ only to register
    tables in create_tables/drop_tables.

Invariants enforced:
    - PostgreSQL gets a pre-pinged QueuePool at READ COMMITTED; stale writes
      are caught by the store's version column, not by isolation level.
    - SQLite gets a StaticPool so ``sqlite:///:memory:`` is one shared
      database across sessions (tests, single-user batch runs).
    - ``session_scope`` commits on success and rolls back on any exception,
      which it re-raises.

Failure modes:
    - RuntimeError from get_engine/get_session_factory before
      init_engine_from_url().
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from fulfillment_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None

_POSTGRES_POOL = {
    "poolclass": QueuePool,
    "pool_size": 5,
    "max_overflow": 5,
    "pool_pre_ping": True,
    "pool_recycle": 1800,
    "isolation_level": "READ COMMITTED",
}


def init_engine_from_url(database_url: str, echo: bool = False) -> Engine:
    """
    (Re)create the engine for ``database_url``.

    A previous engine is disposed first, so calling this again switches
    databases cleanly.
    """
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()

    if database_url.startswith("sqlite"):
        _engine = create_engine(
            database_url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    else:
        _engine = create_engine(database_url, echo=echo, **_POSTGRES_POOL)

    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)
    logger.info("engine_initialized", extra={"dialect": _engine.dialect.name, "echo": echo})
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    if _session_factory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _session_factory


@contextmanager
def session_scope(
    factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    One transaction: commit on normal exit, roll back and re-raise otherwise.

    The SQL store opens one scope per adapter call; nothing spans calls.
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.debug("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    from fulfillment_kernel.db.base import Base
    import fulfillment_kernel.models  # noqa: F401  (registers tables)

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """Drop every fulfillment table.  Tests only."""
    from fulfillment_kernel.db.base import Base
    import fulfillment_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None


atexit.register(reset_engine)
