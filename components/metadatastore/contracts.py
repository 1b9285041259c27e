
from __future__ import annotations
from typing import Any, Dict, Literal, Optional
from pydantic import BaseModel, Field, constr

# ---------- Unified Wire Format (UWF) ----------

class ErrorPayload(BaseModel):
    type: Literal["VALIDATION", "NOT_FOUND", "UPSTREAM", "INTERNAL"]
    code: constr(strip_whitespace=True, min_length=1)
    message: constr(strip_whitespace=True, min_length=1)
    details: Optional[Dict[str, Any]] = None

class MetaPayload(BaseModel):
    request_id: Optional[str] = None
    region: Optional[str] = None
    duration_ms: Optional[int] = None
    adapter: Optional[str] = None

class UWFResponse(BaseModel):
    ok: bool
    result: Optional[Any] = None
    error: Optional[ErrorPayload] = None
    meta: MetaPayload = Field(default_factory=MetaPayload)

# ---------- Store Models ----------

class MetadataEntry(BaseModel):
    key: str
    value: Optional[str] = None  # None means absent

class PutRequest(BaseModel):
    value: str

class PutIfAbsentResult(BaseModel):
    key: str
    previous: Optional[str] = None
    created: bool

class ReplaceRequest(BaseModel):
    old_value: str
    new_value: str

class ReplaceResult(BaseModel):
    key: str
    replaced: bool

class RemoveResult(BaseModel):
    key: str
    previous: Optional[str] = None
    removed: bool
