"""
Module: checkin_kernel.db.engine
Responsibility: Process-wide engine and session factory for the reference
    storage adapter, plus a commit-or-rollback session scope.
Architecture position: Kernel > DB.  Models are imported lazily by
    ``create_tables``.

Failure modes:
    - RuntimeError from get_engine/get_session before init_engine_from_url().
"""

from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from checkin_kernel.db.immutability import register_immutability_listeners
from checkin_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Engine not initialized. Call init_engine_from_url() first."


def _is_memory_sqlite(database_url: str) -> bool:
    url = make_url(database_url)
    return url.get_backend_name() == "sqlite" and url.database in (None, "", ":memory:")


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    lock_approved_bookings: bool = True,
    **engine_kwargs: Any,
) -> Engine:
    """
    Create the engine and session factory for ``database_url``.

    In-memory SQLite shares one connection (StaticPool) so every session
    sees the same database.  With ``lock_approved_bookings`` the ORM
    listeners that freeze approved bookings are registered.
    """
    global _engine, _session_factory

    if _is_memory_sqlite(database_url):
        engine_kwargs.setdefault("poolclass", StaticPool)
        engine_kwargs.setdefault("connect_args", {"check_same_thread": False})
    else:
        engine_kwargs.setdefault("pool_pre_ping", True)

    _engine = create_engine(database_url, echo=echo, **engine_kwargs)
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)
    if lock_approved_bookings:
        register_immutability_listeners()

    configure_logging()
    logger.info("engine_initialized", extra={
        "dialect": _engine.dialect.name,
        "lock_approved_bookings": lock_approved_bookings,
    })
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session() -> Session:
    """A new session from the process-wide factory."""
    if _session_factory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _session_factory()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Session that commits on normal exit and rolls back on error.

    Usage:
        with session_scope() as session:
            SqlCheckInStore(session, auto_commit=False).save_inputs(booking)
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
    """Create the check-in tables on the current engine."""
    from checkin_kernel.db.base import Base
    import checkin_kernel.models  # noqa: F401  registers tables on Base.metadata

    Base.metadata.create_all(get_engine())


def reset_engine() -> None:
    """Dispose of the engine and forget the session factory."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
