"""
Module: ledger_kernel.db.engine
Responsibility: build the SQLAlchemy Engine the ledger services run on.
    Callers own their sessions: ``Session(bind=engine)`` per unit of work.
Architecture position: Kernel > DB.  MUST NOT import from ledger_modules or
    ledger_config.

Invariants enforced:
    - PostgreSQL runs at READ COMMITTED; allocations rely on explicit
      SELECT ... FOR UPDATE on the rows they touch.
    - SQLite (tests, local use) has pysqlite's implicit transactions turned
      off so BEGIN is emitted by SQLAlchemy, and foreign keys are enforced.
    - In-memory SQLite shares one connection, so every session sees the
      same database.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from ledger_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_POSTGRES_POOL = {
    "pool_size": 20,
    "max_overflow": 10,
    "pool_pre_ping": True,
    "pool_timeout": 30,
    "pool_recycle": 1800,
}


def _sqlite_engine(url, echo: bool) -> Engine:
    options: dict = {"connect_args": {"check_same_thread": False}}
    if url.database in (None, "", ":memory:"):
        options["poolclass"] = StaticPool
    engine = create_engine(url, echo=echo, **options)

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        dbapi_connection.execute("PRAGMA foreign_keys=ON")

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def create_ledger_engine(database_url: str, echo: bool = False, **pool_options) -> Engine:
    """
    Engine for any SQLAlchemy URL.

    ``pool_options`` override the PostgreSQL pool defaults and are ignored
    for SQLite.
    """
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite":
        return _sqlite_engine(url, echo)
    return create_engine(
        url,
        echo=echo,
        isolation_level="READ COMMITTED",
        **{**_POSTGRES_POOL, **pool_options},
    )


def init_engine_from_url(database_url: str, echo: bool = False, **pool_options) -> Engine:
    """Application entry point: logging set up, then the engine."""
    configure_logging()
    engine = create_ledger_engine(database_url, echo=echo, **pool_options)
    logger.info("engine_initialized", extra={
        "dialect": engine.dialect.name,
        "database": engine.url.database,
        "echo": echo,
    })
    return engine
