# Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.clock import ClockPort
from src.core.ports.remote import RemoteDeleteError, RemoteFileDeleterPort
from src.core.ports.store import (
    ChangeCallback,
    DocumentStorePort,
    InvalidPathError,
    StoreConflictError,
    StoreError,
    Unsubscribe,
)

__all__ = [
    "ClockPort",
    # Document store
    "ChangeCallback",
    "DocumentStorePort",
    "InvalidPathError",
    "StoreConflictError",
    "StoreError",
    "Unsubscribe",
    # Remote files
    "RemoteDeleteError",
    "RemoteFileDeleterPort",
]
