"""
Assets component - upload, version history and derived URLs for owner images.
"""

from .component import (
    AssetHistoryService,
    UploadHandle,
    create_asset_history_service,
    mask_secret,
)
from .models import (
    TERMINAL_STATES,
    ConfigStatus,
    UploadDone,
    UploadEvent,
    UploadFailed,
    UploadOutput,
    UploadProgress,
    UploadState,
    can_transition,
)

__all__ = [
    # Service
    "AssetHistoryService",
    "UploadHandle",
    "create_asset_history_service",
    "mask_secret",
    # Lifecycle
    "TERMINAL_STATES",
    "UploadState",
    "can_transition",
    # Events
    "UploadDone",
    "UploadEvent",
    "UploadFailed",
    "UploadProgress",
    # Outputs
    "ConfigStatus",
    "UploadOutput",
]
