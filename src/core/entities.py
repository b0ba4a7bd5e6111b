"""
Domain entities for the asset version history service.

- AssetRecord: one stored version of an owner's profile/banner image
- RemoteAssetInfo: what the object store reports after a transfer
- UploadCredential: short-lived signed upload authorization
- IncomingFile: an upload as received from the caller

Invariants:
- AssetRecord fields never change after insertion, except is_active
- At most one record per (owner, slot) ledger is active
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "SLOTS",
    "AssetRecord",
    "IncomingFile",
    "RemoteAssetInfo",
    "Slot",
    "UploadCredential",
]

Slot = Literal["profile", "banner"]
SLOTS: tuple[str, ...] = ("profile", "banner")


# --- AssetRecord ---


class AssetRecord(BaseModel):
    """
    Stored version of an asset within an (owner, slot) ledger.

    Records are frozen; activation produces a copy via with_active().
    """

    model_config = ConfigDict(frozen=True)

    id: str  # Assigned by the history store at insertion
    remote_ref: str  # Object-store path of the file
    url: str
    preview_url: str
    size_bytes: int
    content_type: str
    uploaded_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    is_active: bool = False
    sequence: int = 0  # Insertion order within the ledger; breaks uploaded_at ties
    file_id: str | None = None  # Remote file id, used for cleanup
    name: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)

    def with_active(self, active: bool) -> AssetRecord:
        return self.model_copy(update={"is_active": active})

    def to_document(self) -> dict[str, Any]:
        """Serialize for the document store (id is the document key)."""
        return self.model_dump(mode="json", exclude={"id"})

    @classmethod
    def from_document(cls, record_id: str, value: dict[str, Any]) -> AssetRecord:
        return cls.model_validate({**value, "id": record_id})


# --- RemoteAssetInfo ---


class RemoteAssetInfo(BaseModel):
    """Result of a successful transfer to the object store."""

    model_config = ConfigDict(frozen=True)

    remote_ref: str
    url: str
    preview_url: str
    size_bytes: int
    content_type: str
    file_id: str | None = None
    name: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


# --- UploadCredential ---


@dataclass(frozen=True)
class UploadCredential:
    """Signed, single-use upload authorization. Never persisted."""

    signature: str = field(repr=False)
    token: str = field(repr=False)
    expires_at: int  # Epoch seconds


# --- IncomingFile ---


@dataclass(frozen=True)
class IncomingFile:
    """An upload as handed to the service."""

    name: str
    content_type: str
    data: bytes = field(repr=False)

    @property
    def size_bytes(self) -> int:
        return len(self.data)
