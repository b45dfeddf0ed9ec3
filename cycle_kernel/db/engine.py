"""
Module: cycle_kernel.db.engine
Responsibility: SQLAlchemy engine construction, table setup and the
    transactional scope used by the SQL ledger store.
Architecture position: Kernel > DB.  May import from db/base.py and, for
    create_tables/drop_tables, from models/.

Invariants enforced:
    - session_scope() commits on normal exit and rolls back on any
      exception, so a whole-state save is all-or-nothing.
    - In-memory SQLite shares one connection (StaticPool) so every session
      sees the same database.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from cycle_kernel.logging_config import get_logger

logger = get_logger("db.engine")


def build_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create an engine for ``database_url``.

    SQLite URLs get ``check_same_thread=False`` (the store gate serializes
    access); in-memory SQLite additionally gets a StaticPool.
    """
    kwargs: dict = {"echo": echo}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True
    return create_engine(database_url, **kwargs)


@contextmanager
def session_scope(
    session_factory: sessionmaker[Session],
) -> Generator[Session, None, None]:
    """
    Provide a transactional scope around a series of operations.

    Postconditions: On normal exit, session is committed and closed.
        On exception, session is rolled back and closed, and the exception
        is re-raised to the caller.

    Usage:
        with session_scope(factory) as session:
            session.add(row)
    """
    session = session_factory()
    logger.debug("transaction_started")
    try:
        yield session
        session.commit()
        logger.debug("transaction_committed")
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(engine: Engine) -> None:
    """Create the ledger tables if they do not exist."""
    from cycle_kernel.db.base import Base
    import cycle_kernel.models  # noqa: F401  -- registers the tables

    Base.metadata.create_all(engine)


def drop_tables(engine: Engine) -> None:
    """Drop the ledger tables.  Use with caution - primarily for testing."""
    from cycle_kernel.db.base import Base
    import cycle_kernel.models  # noqa: F401

    Base.metadata.drop_all(engine)
