"""
Helpers shared by the document store adapters.

Path parsing, tree flattening, child ordering, key generation and
change-subscription bookkeeping.
"""

from __future__ import annotations

import json
import logging
import secrets
import threading
import time
from collections.abc import Callable, Iterable
from typing import Any

from src.core.ports.store import ChangeCallback, InvalidPathError, Unsubscribe

logger = logging.getLogger(__name__)

FORBIDDEN_CHARS = frozenset(".#$[]")

PathParts = tuple[str, ...]


def split_path(path: str) -> PathParts:
    """Split a slash path into segments, rejecting empty or illegal segments."""
    stripped = path.strip("/")
    if not stripped:
        raise InvalidPathError(path)
    parts = tuple(stripped.split("/"))
    for part in parts:
        if not part or any(c in FORBIDDEN_CHARS for c in part):
            raise InvalidPathError(path)
    return parts


def join_path(parts: Iterable[str]) -> str:
    return "/".join(parts)


def normalize(value: Any) -> Any:
    """
    Drop None entries and empty dicts, the way the store never holds them.

    Returns None when nothing is left.
    """
    if isinstance(value, dict):
        cleaned = {}
        for key, child in value.items():
            child = normalize(child)
            if child is not None:
                cleaned[str(key)] = child
        return cleaned or None
    return value


def flatten(parts: PathParts, value: Any) -> list[tuple[PathParts, Any]]:
    """Flatten a (normalized) value into (path, leaf) pairs."""
    if isinstance(value, dict):
        leaves: list[tuple[PathParts, Any]] = []
        for key, child in value.items():
            leaves.extend(flatten(parts + (key,), child))
        return leaves
    if value is None:
        return []
    return [(parts, value)]


def unflatten(base: PathParts, leaves: Iterable[tuple[PathParts, Any]]) -> Any:
    """Rebuild the value at base from leaf rows at or below it."""
    root: dict[str, Any] = {}
    for parts, leaf in leaves:
        rel = parts[len(base) :]
        if not rel:
            return leaf
        node = root
        for key in rel[:-1]:
            node = node.setdefault(key, {})
        node[rel[-1]] = leaf
    return root or None


def paths_overlap(a: PathParts, b: PathParts) -> bool:
    """True when one path is equal to, or an ancestor of, the other."""
    shortest = min(len(a), len(b))
    return a[:shortest] == b[:shortest]


def _sort_rank(value: Any) -> tuple[int, Any]:
    if value is None:
        return (0, 0)
    if isinstance(value, bool):
        return (1, int(value))
    if isinstance(value, int | float):
        return (2, value)
    if isinstance(value, str):
        return (3, value)
    return (4, json.dumps(value, sort_keys=True))


def order_children(
    children: Any,
    order_by: str,
    limit_to_last: int | None,
) -> list[tuple[str, Any]]:
    """Order child entries ascending by a child field; ties by key."""
    if not isinstance(children, dict):
        return []

    def sort_key(item: tuple[str, Any]) -> tuple[tuple[int, Any], str]:
        key, child = item
        field_value = child.get(order_by) if isinstance(child, dict) else None
        return _sort_rank(field_value), key

    ordered = sorted(children.items(), key=sort_key)
    if limit_to_last is not None:
        ordered = ordered[-limit_to_last:] if limit_to_last > 0 else []
    return ordered


class PushIdGenerator:
    """
    Generates child keys that sort lexicographically in creation order.

    Format: 16 hex digits of nanosecond time (bumped to stay strictly
    increasing) followed by 6 random hex digits.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._last = 0

    def __call__(self) -> str:
        with self._lock:
            stamp = max(time.time_ns(), self._last + 1)
            self._last = stamp
        return f"{stamp:016x}{secrets.token_hex(3)}"


class SubscriptionHub:
    """Tracks change callbacks and dispatches them after commits."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[int, tuple[PathParts, ChangeCallback]] = {}
        self._next_id = 0

    def subscribe(self, parts: PathParts, callback: ChangeCallback) -> Unsubscribe:
        with self._lock:
            sub_id = self._next_id
            self._next_id += 1
            self._subscribers[sub_id] = (parts, callback)

        def unsubscribe() -> None:
            with self._lock:
                self._subscribers.pop(sub_id, None)

        return unsubscribe

    def dispatch(
        self,
        changed: Iterable[PathParts],
        read: Callable[[PathParts], Any],
    ) -> None:
        """Invoke callbacks whose path overlaps any changed path."""
        changed = list(changed)
        with self._lock:
            targets = [
                (parts, callback)
                for parts, callback in self._subscribers.values()
                if any(paths_overlap(parts, c) for c in changed)
            ]
        for parts, callback in targets:
            try:
                callback(read(parts))
            except Exception:
                logger.exception("Change callback for %s raised", join_path(parts))
