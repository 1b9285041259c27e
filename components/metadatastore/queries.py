"""
Parameterized statements used by the SQL metadata store.

Templates carry a %PREFIX% placeholder for the table prefix and a %LOCK%
placeholder for the locking-read suffix. They are resolved once per
(prefix, dialect, lock hint) and handed out as a read-only mapping.
"""

from __future__ import annotations

import enum
import functools
import re
from types import MappingProxyType
from typing import Mapping, Optional

from .errors import ConfigurationError

DEFAULT_TABLE_PREFIX = "INT_"
DEFAULT_REGION = "DEFAULT"
TABLE_SUFFIX = "METADATA_STORE"

_PREFIX_RE = re.compile(r"^(?:[A-Za-z_][A-Za-z0-9_]*\.)?[A-Za-z0-9_]*$")

# Dialects without a native row lock clause. The SQLite engine factory opens
# every transaction with BEGIN IMMEDIATE instead.
_NO_LOCK_CLAUSE = {"sqlite"}

# Dialects where SELECT ... WHERE needs a FROM clause.
_NEEDS_DUAL = {"oracle", "mysql", "mariadb"}


class Query(enum.Enum):
    GET_VALUE = (
        "SELECT METADATA_VALUE FROM %PREFIX%METADATA_STORE "
        "WHERE METADATA_KEY=:key AND REGION=:region"
    )
    GET_VALUE_FOR_UPDATE = (
        "SELECT METADATA_VALUE FROM %PREFIX%METADATA_STORE "
        "WHERE METADATA_KEY=:key AND REGION=:region%LOCK%"
    )
    REPLACE_VALUE = (
        "UPDATE %PREFIX%METADATA_STORE SET METADATA_VALUE=:new_value "
        "WHERE METADATA_KEY=:key AND METADATA_VALUE=:old_value AND REGION=:region"
    )
    REPLACE_VALUE_BY_KEY = (
        "UPDATE %PREFIX%METADATA_STORE SET METADATA_VALUE=:value "
        "WHERE METADATA_KEY=:key AND REGION=:region"
    )
    REMOVE_VALUE = (
        "DELETE FROM %PREFIX%METADATA_STORE WHERE METADATA_KEY=:key AND REGION=:region"
    )
    PUT_IF_ABSENT_VALUE = (
        "INSERT INTO %PREFIX%METADATA_STORE(METADATA_KEY, METADATA_VALUE, REGION) "
        "SELECT :key, :value, :region%DUAL% WHERE NOT EXISTS "
        "(SELECT 1 FROM %PREFIX%METADATA_STORE WHERE METADATA_KEY=:key AND REGION=:region)"
    )
    COUNT_ROWS = (
        "SELECT COUNT(METADATA_KEY) FROM %PREFIX%METADATA_STORE WHERE REGION=:region"
    )


def validate_prefix(table_prefix: Optional[str]) -> str:
    if table_prefix is None:
        raise ConfigurationError("'table_prefix' cannot be None")
    if not _PREFIX_RE.match(table_prefix):
        raise ConfigurationError(f"invalid table prefix: {table_prefix!r}")
    return table_prefix


def default_lock_hint(dialect_name: str) -> str:
    return "" if dialect_name in _NO_LOCK_CLAUSE else "FOR UPDATE"


def table_name(table_prefix: str) -> str:
    return f"{table_prefix}{TABLE_SUFFIX}"


@functools.lru_cache(maxsize=None)
def build_statements(
    table_prefix: str = DEFAULT_TABLE_PREFIX,
    dialect_name: str = "default",
    lock_hint: Optional[str] = None,
) -> Mapping[Query, str]:
    """Resolve every template for one table prefix. Memoised; the result is immutable."""
    validate_prefix(table_prefix)
    hint = default_lock_hint(dialect_name) if lock_hint is None else lock_hint.strip()
    lock = f" {hint}" if hint else ""
    dual = " FROM DUAL" if dialect_name in _NEEDS_DUAL else ""
    resolved = {
        q: q.value.replace("%PREFIX%", table_prefix).replace("%LOCK%", lock).replace("%DUAL%", dual)
        for q in Query
    }
    return MappingProxyType(resolved)
