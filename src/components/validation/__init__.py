"""
Validation component - upload type and size policy.
"""

from .component import (
    format_megabytes,
    validate_content_type,
    validate_file,
    validate_owner,
    validate_presence,
    validate_size,
    validate_slot,
)
from .models import UploadPolicy

__all__ = [
    "format_megabytes",
    "validate_content_type",
    "validate_file",
    "validate_owner",
    "validate_presence",
    "validate_size",
    "validate_slot",
    "UploadPolicy",
]
