from __future__ import annotations

from typing import Optional

from sqlalchemy import Column, MetaData, String, Table
from sqlalchemy.engine import Engine

from .queries import DEFAULT_REGION, DEFAULT_TABLE_PREFIX, table_name, validate_prefix


def metadata_table(table_prefix: str = DEFAULT_TABLE_PREFIX, metadata: Optional[MetaData] = None) -> Table:
    """Table definition matching the statements in queries.py.

    Names are lower-cased so unquoted identifiers in the raw statements resolve
    to the same table on case-folding backends (PostgreSQL).
    """
    validate_prefix(table_prefix)
    schema = None
    name = table_name(table_prefix)
    if "." in name:
        schema, name = name.split(".", 1)
    return Table(
        name.lower(),
        metadata if metadata is not None else MetaData(),
        Column("metadata_key", String(255), primary_key=True),
        Column("metadata_value", String(4000), nullable=False),
        Column("region", String(100), primary_key=True, server_default=DEFAULT_REGION),
        schema=schema.lower() if schema else None,
    )


def create_schema(engine: Engine, table_prefix: str = DEFAULT_TABLE_PREFIX) -> Table:
    table = metadata_table(table_prefix)
    table.create(engine, checkfirst=True)
    return table


def drop_schema(engine: Engine, table_prefix: str = DEFAULT_TABLE_PREFIX) -> None:
    metadata_table(table_prefix).drop(engine, checkfirst=True)
