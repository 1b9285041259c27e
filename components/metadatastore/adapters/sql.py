from __future__ import annotations

import logging
from contextlib import contextmanager
from types import MappingProxyType
from typing import Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..engine import READ_ONLY_OPTION
from ..errors import BackendError, ConfigurationError, NotFound
from ..ports import ConcurrentMetadataStorePort, require_str
from ..queries import (
    DEFAULT_REGION,
    DEFAULT_TABLE_PREFIX,
    Query,
    build_statements,
    table_name,
    validate_prefix,
)

log = logging.getLogger("metadatastore.sql")

_DUPLICATE_SQLSTATE = "23505"
_MYSQL_DUP_ENTRY = 1062
_DUPLICATE_MARKERS = ("unique constraint failed", "duplicate key", "duplicate entry", "ora-00001")


def _is_duplicate_key(exc: IntegrityError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == _DUPLICATE_SQLSTATE:
        return True
    args = getattr(orig, "args", ())
    if args and args[0] == _MYSQL_DUP_ENTRY:
        return True
    message = str(orig).lower()
    return any(marker in message for marker in _DUPLICATE_MARKERS)


class SqlMetadataStore(ConcurrentMetadataStorePort):
    """Concurrent metadata store on a single relational table.

    Atomicity comes from two primitives: a conditional insert (guarded by the
    primary key) and a locking read. put_if_absent and put loop until they
    observe a consistent state, always restarting from the conditional insert.
    Every call acquires its own connection, so each operation runs in a fresh
    transaction and never joins a caller's.
    """

    def __init__(
        self,
        engine: Engine,
        *,
        table_prefix: str = DEFAULT_TABLE_PREFIX,
        region: str = DEFAULT_REGION,
        lock_hint: Optional[str] = None,
    ):
        if engine is None:
            raise ConfigurationError("'engine' must not be None")
        if not region:
            raise ConfigurationError("'region' must not be empty")
        self._engine = engine
        self._table_prefix = validate_prefix(table_prefix)
        self._region = region
        sql = build_statements(table_prefix, engine.dialect.name, lock_hint)
        self._sql = sql
        self._statements = MappingProxyType({q: text(s) for q, s in sql.items()})

    @property
    def table_prefix(self) -> str:
        return self._table_prefix

    @property
    def table_name(self) -> str:
        return table_name(self._table_prefix)

    @property
    def region(self) -> str:
        return self._region

    def sql_for(self, query: Query) -> str:
        return self._sql[query]

    def __repr__(self) -> str:
        return f"SqlMetadataStore(table={self.table_name!r}, region={self._region!r}, dialect={self._engine.dialect.name!r})"

    # ---------- Public API ----------

    def put_if_absent(self, key: str, value: str) -> Optional[str]:
        require_str("key", key)
        require_str("value", value)
        with self._backend("put_if_absent", key):
            attempt = 0
            while True:
                attempt += 1
                if self._insert_if_absent(key, value):
                    return None
                try:
                    return self._read(key)
                except NotFound:
                    # deleted between the insert attempt and the read
                    log.debug("put_if_absent.retry key=%s attempt=%d", key, attempt)

    def put(self, key: str, value: str) -> None:
        require_str("key", key)
        require_str("value", value)
        with self._backend("put", key):
            attempt = 0
            while True:
                attempt += 1
                if self._insert_if_absent(key, value):
                    return
                with self._engine.begin() as conn:
                    try:
                        self._query_for_value(conn, Query.GET_VALUE_FOR_UPDATE, key)
                    except NotFound:
                        log.debug("put.retry key=%s attempt=%d", key, attempt)
                        continue
                    conn.execute(
                        self._statements[Query.REPLACE_VALUE_BY_KEY],
                        {"value": value, "key": key, "region": self._region},
                    )
                    return

    def get(self, key: str) -> Optional[str]:
        require_str("key", key)
        with self._backend("get", key):
            try:
                return self._read(key)
            except NotFound:
                return None

    def replace(self, key: str, old_value: str, new_value: str) -> bool:
        require_str("key", key)
        require_str("old_value", old_value)
        require_str("new_value", new_value)
        with self._backend("replace", key):
            with self._engine.begin() as conn:
                result = conn.execute(
                    self._statements[Query.REPLACE_VALUE],
                    {"new_value": new_value, "key": key, "old_value": old_value, "region": self._region},
                )
                return result.rowcount == 1

    def remove(self, key: str) -> Optional[str]:
        require_str("key", key)
        with self._backend("remove", key):
            with self._engine.begin() as conn:
                try:
                    old_value = self._query_for_value(conn, Query.GET_VALUE_FOR_UPDATE, key)
                except NotFound:
                    return None
                deleted = conn.execute(
                    self._statements[Query.REMOVE_VALUE], {"key": key, "region": self._region}
                ).rowcount
            return old_value if deleted else None

    def check_database(self) -> int:
        """Verify the table is reachable. Returns the number of rows in this region."""
        try:
            with self._engine.connect().execution_options(**{READ_ONLY_OPTION: True}) as conn:
                count = conn.execute(self._statements[Query.COUNT_ROWS], {"region": self._region}).scalar()
        except SQLAlchemyError as e:
            raise ConfigurationError(f"metadata table {self.table_name} is not accessible: {e}") from e
        log.info("check_database ok table=%s region=%s rows=%s", self.table_name, self._region, count)
        return int(count or 0)

    # ---------- Primitives ----------

    def _insert_if_absent(self, key: str, value: str) -> bool:
        try:
            with self._engine.begin() as conn:
                result = conn.execute(
                    self._statements[Query.PUT_IF_ABSENT_VALUE],
                    {"key": key, "value": value, "region": self._region},
                )
                return result.rowcount > 0
        except IntegrityError as e:
            # a concurrent insert of the same key won the primary key race
            if _is_duplicate_key(e):
                log.debug("insert_if_absent.duplicate key=%s", key)
                return False
            raise

    def _query_for_value(self, conn: Connection, query: Query, key: str) -> str:
        row = conn.execute(self._statements[query], {"key": key, "region": self._region}).first()
        if row is None:
            raise NotFound(key)
        return row[0]

    def _read(self, key: str) -> str:
        with self._engine.connect().execution_options(**{READ_ONLY_OPTION: True}) as conn:
            return self._query_for_value(conn, Query.GET_VALUE, key)

    @contextmanager
    def _backend(self, op: str, key: str):
        try:
            yield
        except SQLAlchemyError as e:
            log.warning("%s err key=%s table=%s region=%s: %s", op, key, self.table_name, self._region, e)
            raise BackendError(f"{op} failed for key {key!r}: {e}") from e
