"""
Module: asset_kernel.db.engine
Responsibility: Process-wide SQLAlchemy engine and session factory, and the
    transactional scope the CLI runs depreciation in.
Architecture position: Kernel > DB.  create_tables() imports the
    asset_depreciation ORM so Base.metadata is complete.

Invariants enforced:
    - PostgreSQL runs at READ COMMITTED on a QueuePool.  The ledger's unique
      constraint, not the isolation level, stops duplicate periods.
    - SQLite gets a single shared connection and explicit BEGIN handling so
      the SAVEPOINT around each ledger write nests correctly.

Failure modes:
    - RuntimeError from get_engine/get_session/session_scope before
      init_engine_from_url().
"""

import atexit
from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from asset_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _sqlite_engine(database_url: str, echo: bool) -> Engine:
    engine = create_engine(
        database_url,
        echo=echo,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite's own transaction handling breaks SAVEPOINT; let SQLAlchemy emit BEGIN
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def _postgres_engine(database_url: str, echo: bool, pool_size: int, max_overflow: int) -> Engine:
    return create_engine(
        database_url,
        echo=echo,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        pool_recycle=1800,
        isolation_level="READ COMMITTED",
    )


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 5,
    max_overflow: int = 5,
) -> Engine:
    """
    Create the engine and session factory for ``database_url``.

    A second call replaces the first; the old engine is left to its owner.
    Depreciation runs are sequential, so the PostgreSQL pool is small.
    """
    global _engine, _SessionFactory

    if database_url.startswith("sqlite"):
        _engine = _sqlite_engine(database_url, echo)
    else:
        _engine = _postgres_engine(database_url, echo, pool_size, max_overflow)
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": _engine.dialect.name, "echo": echo},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _engine


def get_session() -> Session:
    if _SessionFactory is None:
        raise RuntimeError("Engine not initialized. Call init_engine_from_url() first.")
    return _SessionFactory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Session that commits on normal exit and rolls back on error.

    Services called inside may commit on their own; the final commit here
    then only covers whatever the caller added directly.
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create the depreciation tables that do not exist yet."""
    from asset_kernel.db.base import Base
    from asset_depreciation import orm  # noqa: F401  (registers tables)

    Base.metadata.create_all(get_engine())
    logger.info("tables_created", extra={"tables": sorted(Base.metadata.tables)})


def drop_tables() -> None:
    """Drop every table.  Tests only."""
    from asset_kernel.db.base import Base

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


@atexit.register
def _dispose_on_exit() -> None:
    if _engine is not None:
        _engine.dispose()
