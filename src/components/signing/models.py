"""
Signing component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from src.core.entities import UploadCredential
from src.core.errors import AssetError


@dataclass(frozen=True)
class SigningOutput:
    """Output from credential issuance."""

    credential: UploadCredential | None = None
    errors: list[AssetError] = field(default_factory=list)
    success: bool = True
