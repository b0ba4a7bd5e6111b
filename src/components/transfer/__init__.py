"""
Transfer component - signed multipart upload with progress, cancellation and timeout.
"""

from .component import (
    TransferCancelled,
    TransferOrchestrator,
    build_destination,
    build_file_name,
    build_form_fields,
    build_tags,
    parse_upload_response,
    safe_file_name,
)
from .models import (
    CancelToken,
    ProgressCallback,
    TransferInput,
    TransferOutput,
    TransferSettings,
    UploadResponsePayload,
)

__all__ = [
    "TransferOrchestrator",
    "TransferCancelled",
    "build_destination",
    "build_file_name",
    "build_form_fields",
    "build_tags",
    "parse_upload_response",
    "safe_file_name",
    "CancelToken",
    "ProgressCallback",
    "TransferInput",
    "TransferOutput",
    "TransferSettings",
    "UploadResponsePayload",
]
