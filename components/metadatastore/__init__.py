"""
MetadataStore component package.

Concurrent string key/value store backed by a relational table, plus an
in-memory adapter, a UWF service façade and a FastAPI router.
"""
from __future__ import annotations
import logging
from typing import Optional, Tuple

from .contracts import *
from .errors import *
from .ports import MetadataStorePort, ConcurrentMetadataStorePort
from .adapters.inmemory import InMemoryMetadataStore
from .adapters.sql import SqlMetadataStore
from .config import MetadataStoreSettings
from .engine import create_store_engine
from .queries import DEFAULT_REGION, DEFAULT_TABLE_PREFIX, Query
from .schema import create_schema, drop_schema, metadata_table
from .service import MetadataStoreService
from .routes import get_router

log = logging.getLogger("metadatastore")


def make_store_from_env(cfg: Optional[MetadataStoreSettings] = None) -> Tuple[ConcurrentMetadataStorePort, str]:
    cfg = cfg or MetadataStoreSettings()
    adapter = cfg.METADATA_STORE_ADAPTER.lower()
    if adapter == "inmemory":
        return InMemoryMetadataStore(), "inmemory"
    elif adapter == "sql":
        engine = create_store_engine(
            cfg.METADATA_DB_URL,
            busy_timeout=cfg.METADATA_SQLITE_BUSY_TIMEOUT,
            echo=cfg.METADATA_DB_ECHO,
        )
        if cfg.METADATA_CREATE_SCHEMA:
            create_schema(engine, cfg.METADATA_TABLE_PREFIX)
        store = SqlMetadataStore(
            engine,
            table_prefix=cfg.METADATA_TABLE_PREFIX,
            region=cfg.METADATA_REGION,
            lock_hint=cfg.METADATA_LOCK_HINT,
        )
        if cfg.METADATA_CHECK_DATABASE_ON_START:
            store.check_database()
        log.info("metadatastore ready adapter=sql %r", store)
        return store, "sql"
    else:
        raise ConfigurationError(f"Unknown METADATA_STORE_ADAPTER: {cfg.METADATA_STORE_ADAPTER}")


__all__ = [
    "MetadataStorePort",
    "ConcurrentMetadataStorePort",
    "InMemoryMetadataStore",
    "SqlMetadataStore",
    "MetadataStoreSettings",
    "MetadataStoreService",
    "create_store_engine",
    "create_schema",
    "drop_schema",
    "metadata_table",
    "get_router",
    "make_store_from_env",
    "Query",
    "DEFAULT_REGION",
    "DEFAULT_TABLE_PREFIX",
    "MetadataStoreError",
    "InvalidArgument",
    "ConfigurationError",
    "BackendError",
    "NotFound",
    "UWFResponse",
    "ErrorPayload",
    "MetaPayload",
    "MetadataEntry",
    "PutRequest",
    "PutIfAbsentResult",
    "ReplaceRequest",
    "ReplaceResult",
    "RemoveResult",
]
