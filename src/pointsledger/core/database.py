"""Database engine, session and metadata configuration."""

from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from .config import get_settings

settings = get_settings()

Base = declarative_base()

# Execution option set by run_atomic on the connection of a write unit.
WRITE_UNIT_OPTION = "pointsledger_write_unit"


def build_engine(database_url: str, *, lock_timeout_seconds: float, echo: bool = False) -> Engine:
    """Create an engine whose transactions wait a bounded time for locks.

    PostgreSQL units get ``SET LOCAL lock_timeout``. On SQLite, write units
    (connections carrying ``WRITE_UNIT_OPTION``) start with ``BEGIN IMMEDIATE``
    under a busy timeout so writers queue instead of failing on lock upgrade.
    Plain reads use a deferred ``BEGIN`` and, with the WAL journal, never hold
    the write lock.
    """

    if database_url.startswith("sqlite"):
        engine = create_engine(
            database_url,
            echo=echo,
            future=True,
            connect_args={"timeout": lock_timeout_seconds, "check_same_thread": False},
        )

        @event.listens_for(engine, "connect")
        def _configure_connection(dbapi_connection, connection_record) -> None:
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _begin(conn) -> None:
            if conn.get_execution_options().get(WRITE_UNIT_OPTION):
                conn.exec_driver_sql("BEGIN IMMEDIATE")
            else:
                conn.exec_driver_sql("BEGIN")

        return engine

    engine = create_engine(database_url, echo=echo, future=True, pool_pre_ping=True)

    if engine.dialect.name == "postgresql":
        timeout_ms = int(lock_timeout_seconds * 1000)

        @event.listens_for(engine, "begin")
        def _bound_lock_wait(conn) -> None:
            conn.exec_driver_sql(f"SET LOCAL lock_timeout = '{timeout_ms}ms'")

    return engine


engine = build_engine(
    settings.database_url,
    lock_timeout_seconds=settings.lock_timeout_seconds,
    echo=settings.sql_echo,
)
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def init_db(bind: Engine | None = None) -> None:
    """Create all tables defined by ORM models."""

    from .. import models  # noqa: F401  registers mappers on Base

    Base.metadata.create_all(bind=bind or engine)


def get_db() -> Generator:
    """Yield a database session for request lifetime."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
