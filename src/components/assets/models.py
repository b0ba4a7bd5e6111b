"""
Assets component models - upload lifecycle states, events and outputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from src.core.entities import AssetRecord
from src.core.errors import AssetError


class UploadState(str, Enum):
    IDLE = "idle"
    VALIDATING = "validating"
    CREDENTIAL_ISSUED = "credential_issued"
    TRANSFERRING = "transferring"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATES = frozenset({UploadState.SUCCEEDED, UploadState.FAILED, UploadState.CANCELLED})

_TRANSITIONS: dict[UploadState, frozenset[UploadState]] = {
    UploadState.IDLE: frozenset({UploadState.VALIDATING, UploadState.CANCELLED}),
    UploadState.VALIDATING: frozenset(
        {UploadState.CREDENTIAL_ISSUED, UploadState.FAILED, UploadState.CANCELLED}
    ),
    UploadState.CREDENTIAL_ISSUED: frozenset(
        {UploadState.TRANSFERRING, UploadState.FAILED, UploadState.CANCELLED}
    ),
    UploadState.TRANSFERRING: frozenset(
        {UploadState.SUCCEEDED, UploadState.FAILED, UploadState.CANCELLED}
    ),
}


def can_transition(current: UploadState, new: UploadState) -> bool:
    return new in _TRANSITIONS.get(current, frozenset())


# --- Events ---


@dataclass(frozen=True)
class UploadProgress:
    percent: int


@dataclass(frozen=True)
class UploadDone:
    record: AssetRecord


@dataclass(frozen=True)
class UploadFailed:
    error: AssetError


UploadEvent = UploadProgress | UploadDone | UploadFailed


# --- Outputs ---


@dataclass(frozen=True)
class UploadOutput:
    """Terminal outcome of one upload."""

    state: UploadState
    record: AssetRecord | None = None
    errors: list[AssetError] = field(default_factory=list)
    success: bool = True


@dataclass(frozen=True)
class ConfigStatus:
    """Which credentials are set, with masked previews instead of secrets."""

    configured: bool
    has_public_key: bool
    has_url_endpoint: bool
    has_private_key: bool
    max_file_size_bytes: int
    allowed_content_types: list[str]
    credentials: dict[str, str]
