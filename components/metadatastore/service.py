
from __future__ import annotations
import logging
import time
from contextlib import contextmanager
from typing import Optional

from opentelemetry import trace

from .contracts import (
    UWFResponse, ErrorPayload, MetaPayload, MetadataEntry, PutIfAbsentResult,
    ReplaceResult, RemoveResult
)
from .errors import BackendError, InvalidArgument
from .ports import ConcurrentMetadataStorePort

log = logging.getLogger("metadatastore.service")
tracer = trace.get_tracer("metadatastore")

@contextmanager
def _span(name: str, **attrs):
    with tracer.start_as_current_span(name) as span:
        for k, v in attrs.items():
            if v is not None:
                span.set_attribute(f"metadata.{k}", v)
        yield span

def _uwf_ok(result, meta: MetaPayload) -> UWFResponse:
    return UWFResponse(ok=True, result=result, meta=meta)

def _uwf_err(e: Exception, meta: MetaPayload) -> UWFResponse:
    if isinstance(e, InvalidArgument):
        t, code = "VALIDATION", "METADATA_INVALID_ARGUMENT"
    elif isinstance(e, BackendError):
        t, code = "UPSTREAM", "METADATA_BACKEND"
    else:
        t, code = "INTERNAL", "METADATA_INTERNAL"

    err = ErrorPayload(type=t, code=code, message=str(e) or type(e).__name__)
    return UWFResponse(ok=False, error=err, meta=meta)

def _elapsed_ms(t0: float) -> int:
    return int((time.perf_counter() - t0) * 1000)

class MetadataStoreService:
    """Façade over a store adapter: UWF envelopes, logging and spans."""

    def __init__(self, store: ConcurrentMetadataStorePort, adapter_name: str, region: Optional[str] = None):
        self.store = store
        self.adapter_name = adapter_name
        self.region = region if region is not None else getattr(store, "region", None)

    def _meta(self, request_id: Optional[str]) -> MetaPayload:
        return MetaPayload(request_id=request_id, region=self.region, adapter=self.adapter_name)

    def _fail(self, op: str, key, e: Exception, meta: MetaPayload) -> UWFResponse:
        if isinstance(e, InvalidArgument):
            log.warning("metadata.%s rejected key=%s: %s", op, key, e)
        else:
            log.exception("metadata.%s err key=%s adapter=%s dur_ms=%s", op, key, self.adapter_name, meta.duration_ms)
        return _uwf_err(e, meta)

    def get(self, key: str, request_id: Optional[str] = None) -> UWFResponse:
        t0 = time.perf_counter()
        meta = self._meta(request_id)
        with _span("metadata.get", key=key, adapter=self.adapter_name):
            try:
                value = self.store.get(key)
                meta.duration_ms = _elapsed_ms(t0)
                log.info("metadata.get ok key=%s found=%s dur_ms=%s", key, value is not None, meta.duration_ms)
                return _uwf_ok(MetadataEntry(key=key, value=value).model_dump(), meta)
            except Exception as e:
                meta.duration_ms = _elapsed_ms(t0)
                return self._fail("get", key, e, meta)

    def put(self, key: str, value: str, request_id: Optional[str] = None) -> UWFResponse:
        t0 = time.perf_counter()
        meta = self._meta(request_id)
        with _span("metadata.put", key=key, adapter=self.adapter_name):
            try:
                self.store.put(key, value)
                meta.duration_ms = _elapsed_ms(t0)
                log.info("metadata.put ok key=%s dur_ms=%s", key, meta.duration_ms)
                return _uwf_ok(MetadataEntry(key=key, value=value).model_dump(), meta)
            except Exception as e:
                meta.duration_ms = _elapsed_ms(t0)
                return self._fail("put", key, e, meta)

    def put_if_absent(self, key: str, value: str, request_id: Optional[str] = None) -> UWFResponse:
        t0 = time.perf_counter()
        meta = self._meta(request_id)
        with _span("metadata.put_if_absent", key=key, adapter=self.adapter_name) as span:
            try:
                previous = self.store.put_if_absent(key, value)
                meta.duration_ms = _elapsed_ms(t0)
                created = previous is None
                span.set_attribute("metadata.created", created)
                log.info("metadata.put_if_absent ok key=%s created=%s dur_ms=%s", key, created, meta.duration_ms)
                return _uwf_ok(PutIfAbsentResult(key=key, previous=previous, created=created).model_dump(), meta)
            except Exception as e:
                meta.duration_ms = _elapsed_ms(t0)
                return self._fail("put_if_absent", key, e, meta)

    def replace(self, key: str, old_value: str, new_value: str, request_id: Optional[str] = None) -> UWFResponse:
        t0 = time.perf_counter()
        meta = self._meta(request_id)
        with _span("metadata.replace", key=key, adapter=self.adapter_name) as span:
            try:
                replaced = self.store.replace(key, old_value, new_value)
                meta.duration_ms = _elapsed_ms(t0)
                span.set_attribute("metadata.replaced", replaced)
                log.info("metadata.replace ok key=%s replaced=%s dur_ms=%s", key, replaced, meta.duration_ms)
                return _uwf_ok(ReplaceResult(key=key, replaced=replaced).model_dump(), meta)
            except Exception as e:
                meta.duration_ms = _elapsed_ms(t0)
                return self._fail("replace", key, e, meta)

    def remove(self, key: str, request_id: Optional[str] = None) -> UWFResponse:
        t0 = time.perf_counter()
        meta = self._meta(request_id)
        with _span("metadata.remove", key=key, adapter=self.adapter_name):
            try:
                previous = self.store.remove(key)
                meta.duration_ms = _elapsed_ms(t0)
                log.info("metadata.remove ok key=%s removed=%s dur_ms=%s", key, previous is not None, meta.duration_ms)
                return _uwf_ok(RemoveResult(key=key, previous=previous, removed=previous is not None).model_dump(), meta)
            except Exception as e:
                meta.duration_ms = _elapsed_ms(t0)
                return self._fail("remove", key, e, meta)
