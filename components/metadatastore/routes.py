
from __future__ import annotations
from typing import Callable, Optional
import logging

from fastapi import APIRouter, Depends, Header
from fastapi.responses import JSONResponse

from .contracts import ErrorPayload, PutRequest, ReplaceRequest, UWFResponse
from .service import MetadataStoreService

log = logging.getLogger("metadatastore.routes")

_STATUS_BY_ERROR = {
    "VALIDATION": 400,
    "NOT_FOUND": 404,
    "UPSTREAM": 502,
    "INTERNAL": 500,
}


def _default_service() -> MetadataStoreService:
    # package __init__ imports this module
    from . import make_store_from_env
    store, adapter_name = make_store_from_env()
    return MetadataStoreService(store, adapter_name)


def _respond(res: UWFResponse, ok_status: int = 200) -> JSONResponse:
    if res.ok:
        return JSONResponse(status_code=ok_status, content=res.model_dump(mode="json"))
    status = _STATUS_BY_ERROR.get(res.error.type, 500)
    return JSONResponse(status_code=status, content=res.model_dump(mode="json"))


def get_router(service_factory: Callable[[], MetadataStoreService] = _default_service) -> APIRouter:
    """Build the /metadata-store router.

    Without a factory the store comes from MetadataStoreSettings, so every
    router built from the same environment shares one backing table.
    """
    r = APIRouter(prefix="/metadata-store", tags=["metadata-store"])
    service = service_factory()

    def svc() -> MetadataStoreService:
        return service

    @r.get("/entries/{key}")
    def get_entry(key: str, s: MetadataStoreService = Depends(svc),
                  x_request_id: Optional[str] = Header(default=None)):
        res = s.get(key, request_id=x_request_id)
        if res.ok and res.result["value"] is None:
            res = UWFResponse(
                ok=False,
                error=ErrorPayload(type="NOT_FOUND", code="METADATA_NOT_FOUND", message=f"no entry for key {key!r}"),
                meta=res.meta,
            )
        return _respond(res)

    @r.put("/entries/{key}")
    def put_entry(key: str, payload: PutRequest, s: MetadataStoreService = Depends(svc),
                  x_request_id: Optional[str] = Header(default=None)):
        return _respond(s.put(key, payload.value, request_id=x_request_id))

    @r.post("/entries/{key}/put-if-absent")
    def put_if_absent(key: str, payload: PutRequest, s: MetadataStoreService = Depends(svc),
                      x_request_id: Optional[str] = Header(default=None)):
        res = s.put_if_absent(key, payload.value, request_id=x_request_id)
        created = res.ok and res.result["created"]
        return _respond(res, ok_status=201 if created else 200)

    @r.post("/entries/{key}/replace")
    def replace_entry(key: str, payload: ReplaceRequest, s: MetadataStoreService = Depends(svc),
                      x_request_id: Optional[str] = Header(default=None)):
        return _respond(s.replace(key, payload.old_value, payload.new_value, request_id=x_request_id))

    @r.delete("/entries/{key}")
    def remove_entry(key: str, s: MetadataStoreService = Depends(svc),
                     x_request_id: Optional[str] = Header(default=None)):
        return _respond(s.remove(key, request_id=x_request_id))

    @r.get("/health")
    def health():
        return {"ok": True, "adapter": service.adapter_name}

    return r
