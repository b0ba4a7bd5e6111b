"""
Validation component models.
"""

from __future__ import annotations

from dataclasses import dataclass

from src.core.config import DEFAULT_ALLOWED_TYPES, ServiceConfig


@dataclass(frozen=True)
class UploadPolicy:
    """Type and size policy applied before any network activity."""

    allowed_content_types: tuple[str, ...] = DEFAULT_ALLOWED_TYPES
    max_file_size_bytes: int = 10_485_760

    @classmethod
    def from_config(cls, config: ServiceConfig) -> UploadPolicy:
        return cls(
            allowed_content_types=config.allowed_content_types,
            max_file_size_bytes=config.max_file_size_bytes,
        )

