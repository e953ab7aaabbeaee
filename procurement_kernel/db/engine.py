"""
Module: procurement_kernel.db.engine
Responsibility: Owns the process-wide engine and session factory for the
    request store, and the schema lifecycle (create/drop with triggers).
Architecture position: Kernel > DB.  May import from db/base.py and
    db/triggers.py.  MUST NOT import from services/, selectors/, domain/, or
    outer layers (schema helpers import the models package lazily so
    Base.metadata is complete).

Invariants enforced:
    - PostgreSQL is the production backend at READ COMMITTED.  Competing
      stage changes are settled by the request row's version column, not by
      explicit row locks.
    - SQLite is supported for development and tests: foreign keys are
      switched on for every connection and the connection may move between
      threads (pool hand-off).
    - Pool checkout waits at most ``pool_timeout`` seconds; SQLite uses the
      same bound as its busy timeout.

Failure modes:
    - RuntimeError from get_engine/get_session_factory before
      init_engine_from_url().
    - sqlalchemy.exc.TimeoutError when no pooled connection frees up in time.
"""

from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine, event, inspect, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.engine.url import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool

from procurement_kernel.logging_config import get_logger

logger = get_logger("db.engine")

_NOT_INITIALIZED = "Request store engine is not initialized; call init_engine_from_url() first."

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None


def _sqlite_on_connect(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _dialect_options(url: URL, pool_timeout: int) -> dict[str, Any]:
    if url.get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False, "timeout": pool_timeout}}
    return {"isolation_level": "READ COMMITTED"}


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 10,
    max_overflow: int = 10,
    pool_pre_ping: bool = True,
    pool_timeout: int = 30,
    pool_recycle: int = 1800,
) -> Engine:
    """
    Create the engine and session factory used by every unit of work.

    Calling it again disposes the previous engine and replaces it, so tests
    and scripts can point the kernel at another database.

    Args:
        database_url: ``postgresql://...`` or ``sqlite:///...``.
        echo: Echo emitted SQL.
        pool_size: Connections kept open in the pool.
        max_overflow: Extra connections allowed under load.
        pool_pre_ping: Check each connection before handing it out.
        pool_timeout: Seconds to wait for a free connection.
        pool_recycle: Age in seconds after which connections are replaced.
    """
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()

    url = make_url(database_url)
    engine = create_engine(
        url,
        echo=echo,
        poolclass=QueuePool,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=pool_pre_ping,
        pool_timeout=pool_timeout,
        pool_recycle=pool_recycle,
        **_dialect_options(url, pool_timeout),
    )
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _sqlite_on_connect)

    _engine = engine
    # expire_on_commit=False: DTOs are built from models after the commit.
    _SessionFactory = sessionmaker(bind=engine, expire_on_commit=False)

    logger.info(
        "engine_initialized",
        extra={
            "dialect": engine.dialect.name,
            "pool_size": pool_size,
            "max_overflow": max_overflow,
            "pool_timeout": pool_timeout,
        },
    )
    return engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Session factory shared by all threads; each caller opens its own session."""
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


@contextmanager
def session_scope(
    factory: sessionmaker[Session] | None = None,
) -> Generator[Session, None, None]:
    """
    Commit on clean exit, roll back and re-raise otherwise.

    For scripts and maintenance tasks.  Workflow operations use
    ``services.unit_of_work.UnitOfWork`` instead, which also translates
    storage errors.

    Usage:
        with session_scope() as session:
            session.add(Area(code="OPS", name="Operations"))
    """
    session = (factory or get_session_factory())()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables(install_triggers: bool = True) -> None:
    """Create every table, then the immutability triggers unless disabled."""
    from procurement_kernel.db.base import Base
    import procurement_kernel.models  # noqa: F401  (populates Base.metadata)

    engine = get_engine()
    Base.metadata.create_all(engine)

    if install_triggers:
        from procurement_kernel.db.triggers import install_immutability_triggers

        install_immutability_triggers(engine)

    logger.info(
        "tables_created",
        extra={"tables": sorted(Base.metadata.tables), "triggers": install_triggers},
    )


def drop_tables() -> None:
    """Remove triggers and tables.  Destroys all data."""
    from procurement_kernel.db.base import Base
    from procurement_kernel.db.triggers import uninstall_immutability_triggers
    import procurement_kernel.models  # noqa: F401

    engine = get_engine()
    if inspect(engine).has_table("approval_events"):
        uninstall_immutability_triggers(engine)
    Base.metadata.drop_all(engine)
    logger.info("tables_dropped")


def ping() -> bool:
    """Health check: True if a connection can run ``SELECT 1``."""
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning("database_unreachable", exc_info=True)
        return False
    return True


def reset_engine() -> None:
    """Dispose of the engine and forget the session factory."""
    global _engine, _SessionFactory

    engine, _engine, _SessionFactory = _engine, None, None
    if engine is not None:
        engine.dispose()


def is_postgres() -> bool:
    return _engine is not None and _engine.dialect.name == "postgresql"
