"""
Transfer component input/output models.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from src.core.config import ServiceConfig
from src.core.entities import RemoteAssetInfo
from src.core.errors import AssetError

ProgressCallback = Callable[[int], None]


@dataclass(frozen=True)
class TransferSettings:
    """Remote endpoint and transfer limits."""

    upload_url: str
    public_key: str
    timeout_seconds: float = 120.0
    chunk_size_bytes: int = 64 * 1024
    system_tag: str = "profile_system"

    @classmethod
    def from_config(cls, config: ServiceConfig) -> TransferSettings:
        return cls(
            upload_url=config.upload_url,
            public_key=config.public_key or "",
            timeout_seconds=config.timeout_seconds,
            chunk_size_bytes=config.chunk_size_bytes,
            system_tag=config.system_tag,
        )


@dataclass(frozen=True)
class TransferInput:
    """Bytes plus the hints used to place them in the remote store."""

    data: bytes = field(repr=False)
    filename: str
    content_type: str
    slot: str
    owner_id: str | None = None


@dataclass(frozen=True)
class TransferOutput:
    """Terminal outcome of one transfer; produced exactly once per upload call."""

    asset: RemoteAssetInfo | None = None
    errors: list[AssetError] = field(default_factory=list)
    success: bool = True


class CancelToken:
    """
    Cooperative cancellation flag.

    The orchestrator observes it at every I/O checkpoint; bytes already
    sent are not retracted.
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()


class UploadResponsePayload(BaseModel):
    """Shape of the remote store's upload response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    file_id: str | None = Field(default=None, alias="fileId")
    name: str = ""
    url: str = Field(min_length=1)
    thumbnail_url: str | None = Field(default=None, alias="thumbnailUrl")
    file_path: str = Field(alias="filePath", min_length=1)
    size: int | None = None
    file_type: str | None = Field(default=None, alias="fileType")
    tags: list[str] | None = None
    metadata: dict[str, Any] | None = None
