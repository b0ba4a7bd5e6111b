"""
Remote object store file management port.

Used for advisory cleanup of files evicted from a version ledger.
"""

from __future__ import annotations

from typing import Protocol


class RemoteFileDeleterPort(Protocol):
    """Deletes files from the remote object store."""

    async def delete(self, file_id: str) -> None:
        """
        Delete a remote file by id.

        Raises:
            RemoteDeleteError: If the remote store rejected or failed the request
        """
        ...


class RemoteDeleteError(Exception):
    """Raised when a remote file could not be deleted."""

    def __init__(self, file_id: str, reason: str, status_code: int | None = None) -> None:
        self.file_id = file_id
        self.reason = reason
        self.status_code = status_code
        super().__init__(f"Could not delete remote file {file_id}: {reason}")
