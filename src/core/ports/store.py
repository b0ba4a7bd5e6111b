"""
Document Store Port.

Protocol-based interface for the realtime key-value/document store that
holds the version ledgers. Implementations: in-memory (tests/dev) and
SQLite (single-node deployments).

Paths are slash-separated ("users/u1/profileHistory"). Values are JSON
compatible; dicts form the tree, everything else is a leaf.

Key requirements:
- update() applies every path in one atomic write
- transaction() reads and writes under one lock, so a read-modify-write
  cannot interleave with another writer (in this or another process)
- A None value in update() deletes that path
- Subscribers are notified after the write is committed
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import Any, Protocol

ChangeCallback = Callable[[Any], None]
TransactionFn = Callable[[Any], Mapping[str, Any] | None]
Unsubscribe = Callable[[], None]


class DocumentStorePort(Protocol):
    """Realtime document store interface."""

    def get(self, path: str) -> Any | None:
        """Return the value at path (dicts for subtrees), or None."""
        ...

    def set(self, path: str, value: Any) -> None:
        """Replace the value at path."""
        ...

    def update(self, path: str, fields: Mapping[str, Any]) -> None:
        """
        Atomically write several child paths relative to path.

        Keys may contain slashes ("rec1/is_active"). None deletes.
        """
        ...

    def transaction(self, path: str, fn: TransactionFn) -> bool:
        """
        Read-modify-write of the subtree at path.

        fn receives the current value and returns update() fields relative to
        path, or None to leave the store untouched. No other writer commits
        between the read and the write. Returns True if fields were written.
        Raises StoreConflictError when the write lock cannot be obtained.
        """
        ...

    def remove(self, path: str) -> None:
        """Delete the value (and subtree) at path."""
        ...

    def push(self, path: str, value: Any) -> str:
        """Store value under a newly generated child key and return the key."""
        ...

    def generate_key(self) -> str:
        """Return a fresh child key that sorts after previously generated keys."""
        ...

    def query(
        self,
        path: str,
        *,
        order_by: str,
        limit_to_last: int | None = None,
    ) -> list[tuple[str, Any]]:
        """
        Children of path ordered ascending by the order_by child field.

        Ties keep key order. limit_to_last keeps only the last N entries.
        """
        ...

    def on_change(self, path: str, callback: ChangeCallback) -> Unsubscribe:
        """Call callback(value_at_path) after every write touching path."""
        ...


class StoreError(Exception):
    """Base class for document store failures."""


class StoreConflictError(StoreError):
    """Raised when a write could not be applied because of a concurrent writer."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Concurrent write conflict at: {path}")


class InvalidPathError(StoreError, ValueError):
    """Raised for empty or malformed paths."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Invalid store path: {path!r}")
