from .inmemory import InMemoryMetadataStore
from .sql import SqlMetadataStore

__all__ = ["InMemoryMetadataStore", "SqlMetadataStore"]
