from __future__ import annotations

import threading
from typing import Dict, Optional

from ..ports import ConcurrentMetadataStorePort, require_str


class InMemoryMetadataStore(ConcurrentMetadataStorePort):
    """Thread-safe in-memory store with a coarse-grained lock.

    For single-process dev/testing. Entries are lost on restart and are not
    visible to other processes; use SqlMetadataStore for that.
    """

    def __init__(self) -> None:
        self._data: Dict[str, str] = {}
        self._lock = threading.RLock()

    def put_if_absent(self, key: str, value: str) -> Optional[str]:
        require_str("key", key)
        require_str("value", value)
        with self._lock:
            existing = self._data.get(key)
            if existing is None:
                self._data[key] = value
            return existing

    def put(self, key: str, value: str) -> None:
        require_str("key", key)
        require_str("value", value)
        with self._lock:
            self._data[key] = value

    def get(self, key: str) -> Optional[str]:
        require_str("key", key)
        with self._lock:
            return self._data.get(key)

    def replace(self, key: str, old_value: str, new_value: str) -> bool:
        require_str("key", key)
        require_str("old_value", old_value)
        require_str("new_value", new_value)
        with self._lock:
            if self._data.get(key) != old_value:
                return False
            self._data[key] = new_value
            return True

    def remove(self, key: str) -> Optional[str]:
        require_str("key", key)
        with self._lock:
            return self._data.pop(key, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._data)
