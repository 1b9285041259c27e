from __future__ import annotations

import logging

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url

log = logging.getLogger("metadatastore.engine")

# Execution option marking a connection that only reads
READ_ONLY_OPTION = "metadata_read_only"


def create_store_engine(url: str, *, busy_timeout: float = 30.0, echo: bool = False) -> Engine:
    """Build an engine suitable for SqlMetadataStore.

    SQLite has no row locks, so write transactions are opened with BEGIN
    IMMEDIATE and hold the database write lock until commit/rollback.
    Connections tagged with READ_ONLY_OPTION get a deferred BEGIN and, with the
    WAL journal, read the last committed state without waiting on that lock.
    Concurrent writers wait up to busy_timeout seconds instead of failing.
    """
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return create_engine(url, echo=echo, pool_pre_ping=True)

    engine = create_engine(
        url,
        echo=echo,
        connect_args={"timeout": busy_timeout, "check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _configure_connection(dbapi_connection, connection_record):
        # pysqlite would otherwise emit its own deferred BEGIN
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        try:
            cursor.execute("PRAGMA journal_mode=WAL")
        finally:
            cursor.close()

    @event.listens_for(engine, "begin")
    def _begin(conn):
        if conn.get_execution_options().get(READ_ONLY_OPTION):
            conn.exec_driver_sql("BEGIN")
        else:
            conn.exec_driver_sql("BEGIN IMMEDIATE")

    log.info("engine.sqlite url=%s busy_timeout=%s", parsed.render_as_string(hide_password=True), busy_timeout)
    return engine
