"""
Error taxonomy shared by every component.

Errors are returned as values inside component outputs; they are never
raised across the public service boundary.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Literal

ErrorCategory = Literal["validation", "config", "transfer", "store"]


class ErrorKind(str, Enum):
    """Machine-readable error kinds."""

    # Validation
    NO_FILE = "no_file"
    UNSUPPORTED_TYPE = "unsupported_type"
    TOO_LARGE = "too_large"
    UNSUPPORTED_SLOT = "unsupported_slot"
    INVALID_OWNER = "invalid_owner"

    # Configuration
    SIGNING_UNAVAILABLE = "signing_unavailable"
    MISSING_CREDENTIALS = "missing_credentials"

    # Transfer
    CANCELLED = "cancelled"
    TIMED_OUT = "timed_out"
    TRANSFER_FAILED = "transfer_failed"
    BAD_RESPONSE = "bad_response"

    # Store
    NOT_FOUND = "not_found"
    STORE_UNAVAILABLE = "store_unavailable"
    CONFLICT = "conflict"


_CATEGORIES: dict[ErrorKind, ErrorCategory] = {
    ErrorKind.NO_FILE: "validation",
    ErrorKind.UNSUPPORTED_TYPE: "validation",
    ErrorKind.TOO_LARGE: "validation",
    ErrorKind.UNSUPPORTED_SLOT: "validation",
    ErrorKind.INVALID_OWNER: "validation",
    ErrorKind.SIGNING_UNAVAILABLE: "config",
    ErrorKind.MISSING_CREDENTIALS: "config",
    ErrorKind.CANCELLED: "transfer",
    ErrorKind.TIMED_OUT: "transfer",
    ErrorKind.TRANSFER_FAILED: "transfer",
    ErrorKind.BAD_RESPONSE: "transfer",
    ErrorKind.NOT_FOUND: "store",
    ErrorKind.STORE_UNAVAILABLE: "store",
    ErrorKind.CONFLICT: "store",
}


@dataclass(frozen=True)
class AssetError:
    """Error with an actionable, user-facing message."""

    kind: ErrorKind
    message: str
    field: str | None = None
    status_code: int | None = None  # Remote HTTP status, when one was received

    @property
    def category(self) -> ErrorCategory:
        return _CATEGORIES[self.kind]

    @property
    def code(self) -> str:
        return self.kind.value
