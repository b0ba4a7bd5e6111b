"""
History component port definitions.
"""

from __future__ import annotations

from src.core.ports.clock import ClockPort
from src.core.ports.remote import RemoteFileDeleterPort
from src.core.ports.store import DocumentStorePort

__all__ = [
    "ClockPort",
    "DocumentStorePort",
    "RemoteFileDeleterPort",
]
