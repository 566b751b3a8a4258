"""
Engine and session management for the reservation store.

One process-wide engine, created by ``init_engine_from_url`` (or from config
via ``rental_config.bridges.init_engine_from_config``). Services never open
sessions themselves: the caller owns the unit of work through
``session_scope`` and hands the session to ``SqlReservationRepository``.

PostgreSQL runs pooled at READ COMMITTED. SQLite is accepted for tests and
single-process embedding; ``sqlite:///:memory:`` shares one connection so
every session sees the same schema. Version compare-and-swap is a single
conditional UPDATE, so neither backend needs a stricter isolation level.
"""

import atexit
from contextlib import contextmanager
from typing import Any, Generator

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import QueuePool, StaticPool

from rental_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_SessionFactory: sessionmaker[Session] | None = None

_NOT_INITIALIZED = "Reservation store not initialized. Call init_engine_from_url() first."


def _engine_kwargs(url: URL, pool_size: int, max_overflow: int) -> dict[str, Any]:
    if url.get_backend_name() == "sqlite":
        kwargs: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            kwargs["poolclass"] = StaticPool
        return kwargs
    return {
        "poolclass": QueuePool,
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        "isolation_level": "READ COMMITTED",
    }


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
) -> Engine:
    """
    Create the engine and session factory, replacing any previous pair.

    ``pool_size`` and ``max_overflow`` only apply to pooled backends.
    """
    global _engine, _SessionFactory

    url = make_url(database_url)
    if _engine is not None:
        _engine.dispose()

    _engine = create_engine(url, echo=echo, **_engine_kwargs(url, pool_size, max_overflow))
    _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info(
        "engine_initialized",
        extra={"dialect": url.get_backend_name(), "database": url.database, "echo": echo},
    )
    return _engine


def get_engine() -> Engine:
    if _engine is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _engine


def get_session_factory() -> sessionmaker[Session]:
    """Session factory, for callers that need one session per worker thread."""
    if _SessionFactory is None:
        raise RuntimeError(_NOT_INITIALIZED)
    return _SessionFactory


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    Unit of work: commit on success, roll back and re-raise on error.

    Usage::

        with session_scope() as session:
            service = ReconciliationService(SqlReservationRepository(session), clock)
            service.apply_payment(reservation_id, payment)
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
    from rental_kernel.db.base import Base
    import rental_kernel.models  # noqa: F401  (registers tables on Base.metadata)

    Base.metadata.create_all(get_engine())


def drop_tables() -> None:
    """Drop the reservation and transaction tables. Tests only."""
    from rental_kernel.db.base import Base
    import rental_kernel.models  # noqa: F401

    Base.metadata.drop_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the session factory."""
    global _engine, _SessionFactory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _SessionFactory = None


atexit.register(reset_engine)
