from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from src.core.entities import Slot


# --- Assets ---
class AssetRecordResponse(BaseModel):
    id: str
    remote_ref: str
    url: str
    preview_url: str
    size_bytes: int
    content_type: str
    uploaded_at: datetime
    is_active: bool
    file_id: str | None = None
    name: str = ""
    metadata: dict[str, Any] = {}

    class Config:
        from_attributes = True


class HistoryResponse(BaseModel):
    owner_id: str
    slot: Slot
    items: list[AssetRecordResponse]


class ActivateRequest(BaseModel):
    asset_id: str = Field(min_length=1)


class ActivateResponse(BaseModel):
    url: str
    record: AssetRecordResponse


class CurrentAssetResponse(BaseModel):
    owner_id: str
    slot: Slot
    url: str | None


class DerivedUrlsResponse(BaseModel):
    original: str
    optimized: str
    thumbnail: str | None = None
    small: str | None = None
    medium: str | None = None
    large: str | None = None


# --- Status ---
class ConfigStatusResponse(BaseModel):
    configured: bool
    has_public_key: bool
    has_url_endpoint: bool
    has_private_key: bool
    max_file_size_bytes: int
    allowed_content_types: list[str]
    credentials: dict[str, str]

    class Config:
        from_attributes = True


# --- Errors ---
class ErrorDetail(BaseModel):
    code: str
    message: str
    field: str | None = None
