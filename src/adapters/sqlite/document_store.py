"""
SQLite Document Store Adapter.

Implements DocumentStorePort on a single SQLite table holding one row per
leaf value ("users/u1/profileHistory/abc/url" -> JSON). Subtrees are
rebuilt on read from a key range scan.

Invariants:
- Every write runs inside one IMMEDIATE transaction (multi-path updates are atomic)
- transaction() reads inside that same IMMEDIATE transaction, which holds
  the database write lock across processes until COMMIT
- No row is both a leaf and an ancestor of another row
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Callable, Mapping
from typing import Any

from src.adapters.doc_tree import (
    PathParts,
    PushIdGenerator,
    SubscriptionHub,
    flatten,
    join_path,
    normalize,
    order_children,
    split_path,
    unflatten,
)
from src.core.ports.store import (
    ChangeCallback,
    StoreConflictError,
    StoreError,
    TransactionFn,
    Unsubscribe,
)

Writes = list[tuple[PathParts, Any]]


class SQLiteDocumentStore:
    def __init__(self, db_path: str, *, busy_timeout: float = 5.0):
        self.db_path = db_path
        self.busy_timeout = busy_timeout
        self._hub = SubscriptionHub()
        self._ids = PushIdGenerator()

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.db_path, timeout=self.busy_timeout, isolation_level=None)
        conn.row_factory = sqlite3.Row
        return conn

    # --- Reads ---

    def _open(self) -> sqlite3.Connection:
        try:
            return self._get_conn()
        except sqlite3.Error as e:
            raise StoreError(f"Cannot open document store: {e}") from e

    def _read(self, parts: PathParts) -> Any:
        conn = self._open()
        try:
            return self._read_in(conn, parts)
        finally:
            conn.close()

    def _read_in(self, conn: sqlite3.Connection, parts: PathParts) -> Any:
        path = join_path(parts)
        try:
            rows = conn.execute(
                "SELECT path, value FROM documents "
                "WHERE path = ? OR (path >= ? AND path < ?) ORDER BY path",
                (path, path + "/", path + "0"),
            ).fetchall()
        except sqlite3.Error as e:
            raise StoreError(f"Read failed at {path}: {e}") from e

        leaves = [(tuple(row["path"].split("/")), json.loads(row["value"])) for row in rows]
        return unflatten(parts, leaves)

    def get(self, path: str) -> Any | None:
        return self._read(split_path(path))

    # --- Writes ---

    def _commit(self, target: PathParts, plan: Callable[[sqlite3.Connection], Writes]) -> Writes:
        """Run plan and its writes inside one IMMEDIATE transaction, then notify."""
        conn = self._open()
        try:
            conn.execute("BEGIN IMMEDIATE")
            try:
                writes = plan(conn)
                for parts, value in writes:
                    self._write_in_tx(conn, parts, value)
                conn.execute("COMMIT")
            except BaseException:
                conn.execute("ROLLBACK")
                raise
        except sqlite3.OperationalError as e:
            if "locked" in str(e) or "busy" in str(e):
                raise StoreConflictError(join_path(target)) from e
            raise StoreError(f"Write failed: {e}") from e
        except sqlite3.Error as e:
            raise StoreError(f"Write failed: {e}") from e
        finally:
            conn.close()

        if writes:
            self._hub.dispatch([parts for parts, _ in writes], self._read)
        return writes

    def _apply(self, writes: Writes) -> None:
        self._commit(writes[0][0], lambda conn: writes)

    def _write_in_tx(self, conn: sqlite3.Connection, parts: PathParts, value: Any) -> None:
        path = join_path(parts)
        # Clear the subtree and any leaf sitting on an ancestor path.
        conn.execute(
            "DELETE FROM documents WHERE path = ? OR (path >= ? AND path < ?)",
            (path, path + "/", path + "0"),
        )
        for i in range(1, len(parts)):
            conn.execute("DELETE FROM documents WHERE path = ?", (join_path(parts[:i]),))

        conn.executemany(
            "INSERT INTO documents (path, value) VALUES (?, ?)",
            [(join_path(p), json.dumps(leaf)) for p, leaf in flatten(parts, value)],
        )

    def set(self, path: str, value: Any) -> None:
        self._apply([(split_path(path), normalize(value))])

    def update(self, path: str, fields: Mapping[str, Any]) -> None:
        base = split_path(path)
        writes = [(base + split_path(rel), normalize(v)) for rel, v in fields.items()]
        if writes:
            self._apply(writes)

    def transaction(self, path: str, fn: TransactionFn) -> bool:
        base = split_path(path)

        def plan(conn: sqlite3.Connection) -> Writes:
            fields = fn(self._read_in(conn, base))
            if not fields:
                return []
            return [(base + split_path(rel), normalize(v)) for rel, v in fields.items()]

        return bool(self._commit(base, plan))

    def remove(self, path: str) -> None:
        self._apply([(split_path(path), None)])

    def push(self, path: str, value: Any) -> str:
        key = self.generate_key()
        self._apply([(split_path(path) + (key,), normalize(value))])
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
