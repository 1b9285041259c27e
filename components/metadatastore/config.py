
from __future__ import annotations
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Optional

class MetadataStoreSettings(BaseSettings):
    METADATA_STORE_ADAPTER: str = Field(default="sql")  # "sql" | "inmemory"
    # SQL backend
    METADATA_DB_URL: str = Field(default="sqlite:///./var/metadata.db")
    METADATA_DB_ECHO: bool = False
    METADATA_TABLE_PREFIX: str = Field(default="INT_")
    METADATA_REGION: str = Field(default="DEFAULT")
    METADATA_LOCK_HINT: Optional[str] = None  # None -> dialect default ("FOR UPDATE", empty on SQLite)
    METADATA_SQLITE_BUSY_TIMEOUT: float = 30.0
    # Start-up
    METADATA_CREATE_SCHEMA: bool = False
    METADATA_CHECK_DATABASE_ON_START: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"
