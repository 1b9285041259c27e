from __future__ import annotations


class MetadataStoreError(RuntimeError):
    """Base typed error for all metadata store failures."""


class InvalidArgument(MetadataStoreError, ValueError):
    """Missing or non-string key/value; raised before the backend is touched."""


class ConfigurationError(MetadataStoreError):
    """Store misconfigured (no engine, bad table prefix, unreachable table)."""


class BackendError(MetadataStoreError):
    """Backend failure not attributable to a missing row. The driver error is chained as __cause__."""


class NotFound(MetadataStoreError):
    """Internal signal: the read primitive found no row."""
