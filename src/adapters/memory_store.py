"""
In-memory Document Store Adapter.

Implements DocumentStorePort with a nested dict tree. Used for tests and
local development; state is lost on process exit.

Invariants:
- Multi-path updates are applied to a copy and swapped in (all or nothing)
- Callers never receive references into the live tree
- transaction() holds the lock from read to swap
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Mapping
from typing import Any

from src.adapters.doc_tree import (
    PathParts,
    PushIdGenerator,
    SubscriptionHub,
    normalize,
    order_children,
    split_path,
)
from src.core.ports.store import ChangeCallback, TransactionFn, Unsubscribe


def _get_node(root: dict[str, Any], parts: PathParts) -> Any:
    node: Any = root
    for key in parts:
        if not isinstance(node, dict) or key not in node:
            return None
        node = node[key]
    return node


def _write_node(root: dict[str, Any], parts: PathParts, value: Any) -> None:
    """Write (or delete, when value is None) and prune emptied parents."""
    if value is None:
        trail: list[tuple[dict[str, Any], str]] = []
        node: Any = root
        for key in parts:
            if not isinstance(node, dict) or key not in node:
                return
            trail.append((node, key))
            node = node[key]
        parent, key = trail.pop()
        del parent[key]
        while trail and not parent:
            parent, key = trail.pop()
            del parent[key]
        return

    node = root
    for key in parts[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[parts[-1]] = value


class InMemoryDocumentStore:
    """Thread-safe in-memory DocumentStorePort implementation."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._lock = threading.RLock()
        self._root: dict[str, Any] = normalize(copy.deepcopy(dict(initial or {}))) or {}
        self._hub = SubscriptionHub()
        self._ids = PushIdGenerator()

    def _read(self, parts: PathParts) -> Any:
        with self._lock:
            return copy.deepcopy(_get_node(self._root, parts))

    def get(self, path: str) -> Any | None:
        return self._read(split_path(path))

    def set(self, path: str, value: Any) -> None:
        parts = split_path(path)
        with self._lock:
            _write_node(self._root, parts, normalize(copy.deepcopy(value)))
        self._hub.dispatch([parts], self._read)

    def _stage(self, writes: list[tuple[PathParts, Any]]) -> None:
        staged = copy.deepcopy(self._root)
        for parts, value in writes:
            _write_node(staged, parts, value)
        self._root = staged

    def update(self, path: str, fields: Mapping[str, Any]) -> None:
        base = split_path(path)
        writes = [(base + split_path(rel), normalize(copy.deepcopy(v))) for rel, v in fields.items()]
        if not writes:
            return
        with self._lock:
            self._stage(writes)
        self._hub.dispatch([parts for parts, _ in writes], self._read)

    def transaction(self, path: str, fn: TransactionFn) -> bool:
        base = split_path(path)
        with self._lock:
            fields = fn(copy.deepcopy(_get_node(self._root, base)))
            if not fields:
                return False
            writes = [
                (base + split_path(rel), normalize(copy.deepcopy(v))) for rel, v in fields.items()
            ]
            self._stage(writes)
        self._hub.dispatch([parts for parts, _ in writes], self._read)
        return True

    def remove(self, path: str) -> None:
        self.set(path, None)

    def push(self, path: str, value: Any) -> str:
        key = self.generate_key()
        self.set(f"{path.strip('/')}/{key}", value)
        return key

    def generate_key(self) -> str:
        return self._ids()

    def query(
        self,
        path: str,
        *,
        order_by: str,
        limit_to_last: int | None = None,
    ) -> list[tuple[str, Any]]:
        return order_children(self.get(path), order_by, limit_to_last)

    def on_change(self, path: str, callback: ChangeCallback) -> Unsubscribe:
        return self._hub.subscribe(split_path(path), callback)

    def snapshot(self) -> dict[str, Any]:
        """Deep copy of the whole tree (debugging and tests)."""
        with self._lock:
            return copy.deepcopy(self._root)
