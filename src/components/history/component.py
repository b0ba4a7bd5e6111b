"""
History component - bounded, single-active version ledger per (owner, slot).

Invariants:
- At most max_retained records per ledger after every mutation
- Exactly one record is active whenever the ledger is non-empty
- Records are only ever modified through their is_active flag
- Pruning removes oldest first by uploaded_at, ties by insertion sequence
- A newly appended record is never older than the records it joins, and
  is never a pruning candidate of its own append

Consistency model:
- Every mutation is one store transaction: the ledger is read and the flag
  changes, insert, evictions and owner's current-asset field are written
  under the store's write lock, so writers in other processes serialize too
- A per-ledger asyncio.Lock keeps writers in this process in order
- Store calls run in worker threads, off the event loop
- Store failures are reported, never retried here
"""

from __future__ import annotations

import asyncio
import builtins
import logging
from collections.abc import Callable, Iterable
from typing import Any

from pydantic import ValidationError

from src.core.entities import AssetRecord, RemoteAssetInfo
from src.core.errors import AssetError, ErrorKind
from src.core.ports.store import StoreConflictError, StoreError, Unsubscribe

from .models import (
    ActivateOutput,
    AppendOutput,
    CurrentAssetOutput,
    HistoryCallback,
    HistoryListOutput,
    LedgerKey,
    PruneOutput,
)
from .ports import ClockPort, DocumentStorePort, RemoteFileDeleterPort

logger = logging.getLogger(__name__)

DEFAULT_MAX_RETAINED = 3

LedgerPlan = Callable[[list[AssetRecord]], dict[str, Any] | None]


# --- Ordering helpers ---


def storage_order(records: list[AssetRecord]) -> list[AssetRecord]:
    """Oldest first: uploaded_at ascending, insertion sequence breaking ties."""
    return sorted(records, key=lambda r: (r.uploaded_at, r.sequence))


def most_recent_first(records: list[AssetRecord]) -> list[AssetRecord]:
    return list(reversed(storage_order(records)))


def plan_prune(records: list[AssetRecord], max_retained: int) -> list[AssetRecord]:
    """Records to delete so that at most max_retained remain (oldest first)."""
    ordered = storage_order(records)
    excess = len(ordered) - max_retained
    return ordered[:excess] if excess > 0 else []


def parse_entries(entries: Iterable[tuple[str, Any]]) -> list[AssetRecord]:
    """Decode (record_id, document) pairs, skipping entries that do not parse."""
    records: list[AssetRecord] = []
    for record_id, value in entries:
        if not isinstance(value, dict):
            logger.warning("Skipping malformed ledger entry %s", record_id)
            continue
        try:
            records.append(AssetRecord.from_document(record_id, value))
        except ValidationError as e:
            logger.warning("Skipping malformed ledger entry %s: %s", record_id, e)
    return storage_order(records)


def parse_ledger(raw: Any) -> list[AssetRecord]:
    """Decode a ledger subtree."""
    if not isinstance(raw, dict):
        return []
    return parse_entries(raw.items())


def _store_error(e: StoreError, action: str) -> AssetError:
    if isinstance(e, StoreConflictError):
        return AssetError(
            kind=ErrorKind.CONFLICT,
            message=f"Could not {action}: a concurrent update is in progress",
            field="asset_id",
        )
    return AssetError(
        kind=ErrorKind.STORE_UNAVAILABLE,
        message=f"Could not {action}: history store unavailable ({e})",
    )


# --- History store ---


class HistoryStore:
    """Version ledgers backed by a DocumentStorePort."""

    def __init__(
        self,
        store: DocumentStorePort,
        *,
        clock: ClockPort,
        max_retained: int = DEFAULT_MAX_RETAINED,
        remote_deleter: RemoteFileDeleterPort | None = None,
    ) -> None:
        if max_retained < 1:
            raise ValueError("max_retained must be at least 1")
        self._store = store
        self._clock = clock
        self.max_retained = max_retained
        self._remote_deleter = remote_deleter
        self._locks: dict[LedgerKey, asyncio.Lock] = {}
        self._cleanup_tasks: set[asyncio.Task[None]] = set()

    def _lock_for(self, key: LedgerKey) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def _mutate(self, key: LedgerKey, plan: LedgerPlan) -> bool:
        """Run plan against the current ledger and commit its fields in one transaction."""

        def apply(owner_doc: Any) -> dict[str, Any] | None:
            raw = owner_doc.get(key.history_field) if isinstance(owner_doc, dict) else None
            return plan(parse_ledger(raw))

        async with self._lock_for(key):
            return await asyncio.to_thread(self._store.transaction, key.owner_path, apply)

    def _pointer_fields(self, key: LedgerKey, url: str | None) -> dict[str, Any]:
        return {
            key.current_field: url,
            "updated_at": self._clock.now_utc().isoformat(),
        }

    def _new_record(
        self,
        record_id: str,
        asset: RemoteAssetInfo,
        existing: builtins.list[AssetRecord],
    ) -> AssetRecord:
        # A clock that stepped back must not make the new version look older.
        uploaded_at = self._clock.now_utc()
        if existing:
            uploaded_at = max(uploaded_at, existing[-1].uploaded_at)
        return AssetRecord(
            id=record_id,
            remote_ref=asset.remote_ref,
            url=asset.url,
            preview_url=asset.preview_url,
            size_bytes=asset.size_bytes,
            content_type=asset.content_type,
            uploaded_at=uploaded_at,
            is_active=True,
            sequence=max((r.sequence for r in existing), default=0) + 1,
            file_id=asset.file_id,
            name=asset.name,
            metadata=asset.metadata,
        )

    # --- Mutations ---

    async def append(
        self,
        owner_id: str,
        slot: str,
        asset: RemoteAssetInfo,
    ) -> AppendOutput:
        """
        Insert a new active record, deactivate the rest, enforce retention,
        and point the owner's current asset at the new url.
        """
        key = LedgerKey(owner_id, slot)
        record_id = self._store.generate_key()
        record: AssetRecord | None = None
        evicted: builtins.list[AssetRecord] = []

        def plan(existing: builtins.list[AssetRecord]) -> dict[str, Any]:
            nonlocal record, evicted
            record = self._new_record(record_id, asset, existing)
            evicted = plan_prune(existing, self.max_retained - 1)
            evicted_ids = {r.id for r in evicted}

            fields: dict[str, Any] = {}
            for r in existing:
                if r.id in evicted_ids:
                    fields[f"{key.history_field}/{r.id}"] = None
                elif r.is_active:
                    fields[f"{key.history_field}/{r.id}/is_active"] = False
            fields[f"{key.history_field}/{record.id}"] = record.to_document()
            fields.update(self._pointer_fields(key, record.url))
            return fields

        try:
            await self._mutate(key, plan)
        except StoreError as e:
            return AppendOutput(errors=[_store_error(e, "save the new version")], success=False)

        assert record is not None
        self._schedule_cleanup(evicted)
        return AppendOutput(record=record, evicted=evicted)

    async def activate(self, owner_id: str, slot: str, asset_id: str) -> ActivateOutput:
        """Make asset_id the single active record and return its url."""
        key = LedgerKey(owner_id, slot)
        target: AssetRecord | None = None

        def plan(records: builtins.list[AssetRecord]) -> dict[str, Any] | None:
            nonlocal target
            target = next((r for r in records if r.id == asset_id), None)
            if target is None:
                return None
            fields: dict[str, Any] = {
                f"{key.history_field}/{r.id}/is_active": r.id == asset_id for r in records
            }
            fields.update(self._pointer_fields(key, target.url))
            return fields

        try:
            await self._mutate(key, plan)
        except StoreError as e:
            return ActivateOutput(errors=[_store_error(e, "activate the version")], success=False)

        if target is None:
            return ActivateOutput(
                errors=[
                    AssetError(
                        kind=ErrorKind.NOT_FOUND,
                        message=f"Version {asset_id} not found in {slot} history",
                        field="asset_id",
                    )
                ],
                success=False,
            )
        return ActivateOutput(url=target.url, record=target.with_active(True))

    async def prune_to_limit(
        self,
        owner_id: str,
        slot: str,
        max_retained: int | None = None,
    ) -> PruneOutput:
        """
        Delete oldest records beyond the limit. Idempotent.

        If the active record is pruned, the most recent survivor becomes active.
        """
        limit = self.max_retained if max_retained is None else max_retained
        if limit < 1:
            raise ValueError("max_retained must be at least 1")

        key = LedgerKey(owner_id, slot)
        removed: builtins.list[AssetRecord] = []

        def plan(records: builtins.list[AssetRecord]) -> dict[str, Any] | None:
            nonlocal removed
            removed = plan_prune(records, limit)
            if not removed:
                return None

            removed_ids = {r.id for r in removed}
            fields: dict[str, Any] = {f"{key.history_field}/{r.id}": None for r in removed}
            survivors = [r for r in records if r.id not in removed_ids]
            if not any(r.is_active for r in survivors):
                newest = survivors[-1]
                fields[f"{key.history_field}/{newest.id}/is_active"] = True
                fields.update(self._pointer_fields(key, newest.url))
            return fields

        try:
            await self._mutate(key, plan)
        except StoreError as e:
            return PruneOutput(errors=[_store_error(e, "prune history")], success=False)

        self._schedule_cleanup(removed)
        return PruneOutput(removed=removed)

    # --- Reads ---

    async def list(self, owner_id: str, slot: str, limit: int) -> HistoryListOutput:
        """Most-recent-first records, at most min(limit, max_retained)."""
        count = min(limit, self.max_retained)
        if count <= 0:
            return HistoryListOutput()
        key = LedgerKey(owner_id, slot)
        try:
            entries = await asyncio.to_thread(
                self._store.query, key.history_path, order_by="sequence", limit_to_last=count
            )
        except StoreError as e:
            return HistoryListOutput(errors=[_store_error(e, "read history")], success=False)
        return HistoryListOutput(items=most_recent_first(parse_entries(entries)))

    async def current_url(self, owner_id: str, slot: str) -> CurrentAssetOutput:
        key = LedgerKey(owner_id, slot)
        try:
            value = await asyncio.to_thread(
                self._store.get, f"{key.owner_path}/{key.current_field}"
            )
        except StoreError as e:
            return CurrentAssetOutput(errors=[_store_error(e, "read the current asset")], success=False)
        return CurrentAssetOutput(url=value if isinstance(value, str) else None)

    def watch(self, owner_id: str, slot: str, callback: HistoryCallback) -> Unsubscribe:
        """
        Deliver the most-recent-first ledger after every change to it.

        callback runs on the thread that committed the write.
        """
        key = LedgerKey(owner_id, slot)

        def on_change(raw: Any) -> None:
            records = most_recent_first(parse_ledger(raw))
            callback(records[: self.max_retained])

        return self._store.on_change(key.history_path, on_change)

    # --- Remote cleanup ---

    def _schedule_cleanup(self, records: builtins.list[AssetRecord]) -> None:
        if self._remote_deleter is None:
            return
        for record in records:
            if not record.file_id:
                continue
            task = asyncio.get_running_loop().create_task(self._delete_remote(record))
            self._cleanup_tasks.add(task)
            task.add_done_callback(self._cleanup_tasks.discard)

    async def _delete_remote(self, record: AssetRecord) -> None:
        assert self._remote_deleter is not None
        assert record.file_id is not None
        try:
            await self._remote_deleter.delete(record.file_id)
        except Exception as e:
            logger.warning(
                "Could not delete pruned remote file %s (%s): %s",
                record.file_id,
                record.remote_ref,
                e,
            )
        else:
            logger.debug("Deleted pruned remote file %s", record.file_id)

    async def wait_for_cleanups(self) -> None:
        """Wait for scheduled remote deletions (shutdown and tests)."""
        while self._cleanup_tasks:
            await asyncio.gather(*builtins.list(self._cleanup_tasks), return_exceptions=True)
