"""
Validation component - upload type/size policy.

Pure functions of file metadata and policy; no side effects. Runs before
any credential is issued so single-use credentials are never spent on
invalid input.

Check order (first failure wins):
1. A file was provided
2. The slot is known
3. Content type is in the allow-list
4. Size does not exceed the limit
"""

from __future__ import annotations

import re

from src.core.entities import SLOTS, IncomingFile
from src.core.errors import AssetError, ErrorKind

from .models import UploadPolicy


def format_megabytes(size_bytes: int) -> str:
    """Render a byte count in MB with one decimal place."""
    return f"{size_bytes / 1024 / 1024:.1f}MB"


def validate_presence(file: IncomingFile | None) -> list[AssetError]:
    if file is None:
        return [AssetError(kind=ErrorKind.NO_FILE, message="No file was selected", field="file")]
    return []


_OWNER_ID = re.compile(r"^[^/.#$\[\]\s]{1,128}$")


def validate_owner(owner_id: str | None) -> list[AssetError]:
    """Owner ids become store path segments, so separators are not allowed."""
    if not owner_id or not _OWNER_ID.match(owner_id):
        return [
            AssetError(
                kind=ErrorKind.INVALID_OWNER,
                message="An owner id is required and may not contain . # $ [ ] / or spaces",
                field="owner_id",
            )
        ]
    return []


def validate_slot(slot: str) -> list[AssetError]:
    if slot not in SLOTS:
        return [
            AssetError(
                kind=ErrorKind.UNSUPPORTED_SLOT,
                message=f"Unknown asset slot '{slot}'. Accepted slots: {', '.join(SLOTS)}",
                field="slot",
            )
        ]
    return []


def validate_content_type(content_type: str, policy: UploadPolicy) -> list[AssetError]:
    """Reject content types outside the allow-list; message lists accepted types."""
    if content_type not in policy.allowed_content_types:
        return [
            AssetError(
                kind=ErrorKind.UNSUPPORTED_TYPE,
                message=(
                    "File type not allowed. Accepted formats: "
                    f"{', '.join(policy.allowed_content_types)}"
                ),
                field="content_type",
            )
        ]
    return []


def validate_size(size_bytes: int, policy: UploadPolicy) -> list[AssetError]:
    """Reject files larger than the limit; message gives the limit in MB."""
    if size_bytes > policy.max_file_size_bytes:
        return [
            AssetError(
                kind=ErrorKind.TOO_LARGE,
                message=(
                    "File is too large. Maximum size: "
                    f"{format_megabytes(policy.max_file_size_bytes)}"
                ),
                field="file",
            )
        ]
    return []


def validate_file(
    file: IncomingFile | None,
    slot: str,
    policy: UploadPolicy,
) -> list[AssetError]:
    """Run every check in order and return the first failure (or nothing)."""
    errors = validate_presence(file)
    if errors:
        return errors

    assert file is not None
    for errors in (
        validate_slot(slot),
        validate_content_type(file.content_type, policy),
        validate_size(file.size_bytes, policy),
    ):
        if errors:
            return errors
    return []
