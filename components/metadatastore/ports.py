
from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Optional

from .errors import InvalidArgument


class MetadataStorePort(ABC):
    """String key -> string value store shared between processes."""

    @abstractmethod
    def put(self, key: str, value: str) -> None: ...

    @abstractmethod
    def get(self, key: str) -> Optional[str]: ...

    @abstractmethod
    def remove(self, key: str) -> Optional[str]:
        """Delete the entry and return its previous value, or None if there was none."""


class ConcurrentMetadataStorePort(MetadataStorePort):
    """Adds the atomic operations callers use to coordinate on a key."""

    @abstractmethod
    def put_if_absent(self, key: str, value: str) -> Optional[str]:
        """Store value only if key is missing. Returns None if this call created the entry,
        otherwise the value already stored."""

    @abstractmethod
    def replace(self, key: str, old_value: str, new_value: str) -> bool:
        """Compare-and-swap. True iff the stored value was old_value and is now new_value."""


def require_str(name: str, value) -> str:
    if value is None:
        raise InvalidArgument(f"'{name}' cannot be None")
    if not isinstance(value, str):
        raise InvalidArgument(f"'{name}' must be a string, got {type(value).__name__}")
    return value
