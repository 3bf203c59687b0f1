"""
Database engine management.

Builds the SQLAlchemy engine for the SQLite store that backs the records
table, either in memory or in a file.
"""

import logging
from typing import Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.pool import StaticPool

from jsonlite.config.settings import Settings, get_settings

logger = logging.getLogger(__name__)


def _is_memory_database(database: Optional[str]) -> bool:
    return database in (None, "", ":memory:") or (database or "").startswith("file::memory:")


def create_storage_engine(settings: Optional[Settings] = None) -> Engine:
    """
    Create the engine for the records store.

    In-memory databases use a StaticPool so every checkout sees the same
    single connection (and therefore the same data).

    Args:
        settings: Settings to use (defaults to the cached application settings)

    Returns:
        Configured SQLAlchemy engine
    """
    settings = settings or get_settings()
    url = make_url(settings.database_url)

    engine_kwargs = {
        "echo": settings.debug,
        "future": True,
    }
    is_sqlite = url.get_backend_name() == "sqlite"
    if is_sqlite:
        # The load stage and callers may run on different threads
        engine_kwargs["connect_args"] = {"check_same_thread": False}
        if _is_memory_database(url.database):
            engine_kwargs["poolclass"] = StaticPool

    engine = create_engine(url, **engine_kwargs)

    if is_sqlite:
        enable_transactional_ddl(
            engine,
            synchronous_off=settings.sqlite_synchronous_off and not _is_memory_database(url.database),
        )

    logger.debug(f"Created storage engine for {url.render_as_string(hide_password=True)}")
    return engine


def enable_transactional_ddl(engine: Engine, synchronous_off: bool = False) -> None:
    """
    Make CREATE/ALTER TABLE part of the surrounding transaction.

    pysqlite only opens a transaction implicitly before DML, so DDL issued
    first would run in autocommit mode. The driver's own transaction
    handling is switched off and SQLAlchemy emits BEGIN itself.

    Args:
        engine: SQLite engine to configure
        synchronous_off: Issue PRAGMA synchronous=OFF on each new connection
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        if synchronous_off:
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA synchronous=OFF")
            cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")
