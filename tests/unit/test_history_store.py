"""
Unit tests for the history component (version ledgers).
"""

import asyncio
import logging

import pytest

from src.adapters.memory_store import InMemoryDocumentStore
from src.components.history import HistoryStore, LedgerKey, parse_ledger, plan_prune
from src.core.entities import AssetRecord
from src.core.errors import ErrorKind
from src.core.ports.store import StoreConflictError, StoreError


class UnavailableStore(InMemoryDocumentStore):
    """Store whose writes fail."""

    def __init__(self, error: StoreError):
        super().__init__()
        self.error = error

    def update(self, path, fields):
        raise self.error

    def transaction(self, path, fn):
        raise self.error


@pytest.fixture
def history(store, clock, deleter):
    return HistoryStore(store, clock=clock, max_retained=3, remote_deleter=deleter)


async def _append_many(history, clock, make_asset, count, owner="u1", slot="profile"):
    records = []
    for n in range(1, count + 1):
        result = await history.append(owner, slot, make_asset(n, slot))
        assert result.success is True
        records.append(result.record)
        clock.advance(seconds=1)
    return records


def _active(items):
    return [r for r in items if r.is_active]


# --- append ---


@pytest.mark.asyncio
async def test_first_append_is_active(history, store, make_asset):
    result = await history.append("u1", "profile", make_asset(1))

    assert result.record.is_active is True
    assert result.evicted == []
    assert store.get("users/u1/profile_image") == make_asset(1).url
    assert store.get("users/u1/updated_at") is not None


@pytest.mark.asyncio
async def test_scenario_retention_and_activation(history, clock, make_asset, store):
    a, b, c, d = await _append_many(history, clock, make_asset, 4)
    await history.wait_for_cleanups()

    listed = (await history.list("u1", "profile", 10)).items
    assert [r.id for r in listed] == [d.id, c.id, b.id]
    assert listed[0].is_active is True
    assert _active(listed) == [listed[0]]
    assert store.get(f"users/u1/profileHistory/{a.id}") is None

    activated = await history.activate("u1", "profile", b.id)
    assert activated.success is True
    assert activated.url == b.url

    listed = (await history.list("u1", "profile", 10)).items
    flags = {r.id: r.is_active for r in listed}
    assert flags == {d.id: False, c.id: False, b.id: True}
    assert store.get("users/u1/profile_image") == b.url


@pytest.mark.asyncio
async def test_evicted_files_are_deleted_remotely(history, clock, make_asset, deleter):
    await _append_many(history, clock, make_asset, 5)
    await history.wait_for_cleanups()

    assert sorted(deleter.deleted) == ["file_1", "file_2"]


@pytest.mark.asyncio
async def test_remote_delete_failure_is_a_warning(history, clock, make_asset, deleter, caplog):
    deleter.fail_ids = {"file_1"}
    with caplog.at_level(logging.WARNING):
        records = await _append_many(history, clock, make_asset, 4)
        await history.wait_for_cleanups()

    assert records[-1].is_active is True
    assert "Could not delete pruned remote file file_1" in caplog.text
    assert len((await history.list("u1", "profile", 10)).items) == 3


@pytest.mark.asyncio
async def test_same_timestamp_prunes_by_insertion_order(store, clock, make_asset):
    history = HistoryStore(store, clock=clock, max_retained=2)
    for n in range(1, 5):
        await history.append("u1", "profile", make_asset(n))

    items = (await history.list("u1", "profile", 10)).items
    assert [r.file_id for r in items] == ["file_4", "file_3"]
    assert items[0].is_active is True


@pytest.mark.asyncio
async def test_clock_stepping_back_keeps_the_new_version(history, clock, make_asset, deleter, store):
    for n in range(1, 4):
        await history.append("u1", "profile", make_asset(n))
        clock.advance(seconds=10)
    clock.advance(seconds=-60)

    result = await history.append("u1", "profile", make_asset(4))
    await history.wait_for_cleanups()

    assert [r.file_id for r in result.evicted] == ["file_1"]
    assert deleter.deleted == ["file_1"]
    assert len(store.get("users/u1/profileHistory")) == 3

    items = (await history.list("u1", "profile", 10)).items
    assert [r.file_id for r in items] == ["file_4", "file_3", "file_2"]
    assert [r.file_id for r in _active(items)] == ["file_4"]
    assert result.record.uploaded_at == items[1].uploaded_at


@pytest.mark.asyncio
async def test_slots_and_owners_are_independent(history, make_asset):
    await history.append("u1", "profile", make_asset(1))
    await history.append("u1", "banner", make_asset(2, "banner"))
    await history.append("u2", "profile", make_asset(3))

    assert len((await history.list("u1", "profile", 10)).items) == 1
    assert len((await history.list("u1", "banner", 10)).items) == 1
    assert len((await history.list("u2", "profile", 10)).items) == 1
    assert _active((await history.list("u1", "profile", 10)).items)[0].file_id == "file_1"


@pytest.mark.asyncio
async def test_concurrent_appends_keep_one_active(history, make_asset):
    results = await asyncio.gather(*(history.append("u1", "profile", make_asset(n)) for n in range(1, 7)))
    await history.wait_for_cleanups()

    assert all(r.success for r in results)
    items = (await history.list("u1", "profile", 10)).items
    assert len(items) == 3
    assert len(_active(items)) == 1


# --- list ---


@pytest.mark.asyncio
async def test_list_limits(history, clock, make_asset):
    await _append_many(history, clock, make_asset, 3)

    assert len((await history.list("u1", "profile", 1)).items) == 1
    assert len((await history.list("u1", "profile", 100)).items) == 3
    assert (await history.list("u1", "profile", 0)).items == []
    assert (await history.list("nobody", "profile", 3)).items == []


@pytest.mark.asyncio
async def test_list_skips_malformed_entries(store, history, make_asset, caplog):
    await history.append("u1", "profile", make_asset(1))
    store.set("users/u1/profileHistory/broken", {"url": 5})

    with caplog.at_level(logging.WARNING):
        items = (await history.list("u1", "profile", 10)).items

    assert [r.file_id for r in items] == ["file_1"]
    assert "broken" in caplog.text


# --- activate ---


@pytest.mark.asyncio
async def test_activate_unknown_id_is_not_found_and_changes_nothing(history, store, clock, make_asset):
    await _append_many(history, clock, make_asset, 2)
    before = store.snapshot()

    result = await history.activate("u1", "profile", "missing")

    assert result.success is False
    assert result.errors[0].kind == ErrorKind.NOT_FOUND
    assert store.snapshot() == before


@pytest.mark.asyncio
async def test_activate_is_idempotent(history, clock, make_asset):
    records = await _append_many(history, clock, make_asset, 2)

    first = await history.activate("u1", "profile", records[0].id)
    second = await history.activate("u1", "profile", records[0].id)

    assert first.url == second.url == records[0].url
    items = (await history.list("u1", "profile", 10)).items
    assert [r.id for r in _active(items)] == [records[0].id]


# --- prune_to_limit ---


@pytest.mark.asyncio
async def test_prune_reactivates_newest_survivor(store, clock, make_asset):
    history = HistoryStore(store, clock=clock, max_retained=3)
    records = await _append_many(history, clock, make_asset, 3)
    await history.activate("u1", "profile", records[0].id)

    result = await history.prune_to_limit("u1", "profile", 1)

    assert [r.id for r in result.removed] == [records[0].id, records[1].id]
    items = (await history.list("u1", "profile", 10)).items
    assert [r.id for r in items] == [records[2].id]
    assert items[0].is_active is True
    assert store.get("users/u1/profile_image") == records[2].url


@pytest.mark.asyncio
async def test_prune_is_idempotent(history, clock, make_asset):
    await _append_many(history, clock, make_asset, 3)

    first = await history.prune_to_limit("u1", "profile", 2)
    second = await history.prune_to_limit("u1", "profile", 2)
    await history.wait_for_cleanups()

    assert len(first.removed) == 1
    assert second.removed == []


def test_prune_limit_must_be_positive(store, clock):
    with pytest.raises(ValueError):
        HistoryStore(store, clock=clock, max_retained=0)


# --- store failures ---


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, kind",
    [
        (StoreError("disk gone"), ErrorKind.STORE_UNAVAILABLE),
        (StoreConflictError("users/u1"), ErrorKind.CONFLICT),
    ],
)
async def test_store_failures_are_results(clock, make_asset, error, kind):
    history = HistoryStore(UnavailableStore(error), clock=clock)

    result = await history.append("u1", "profile", make_asset(1))

    assert result.success is False
    assert result.errors[0].kind == kind
    assert result.errors[0].category == "store"


# --- current_url / watch ---


@pytest.mark.asyncio
async def test_current_url(history, make_asset):
    assert (await history.current_url("u1", "banner")).url is None

    await history.append("u1", "banner", make_asset(7, "banner"))

    assert (await history.current_url("u1", "banner")).url == make_asset(7, "banner").url


@pytest.mark.asyncio
async def test_watch_delivers_ledger_until_unsubscribed(history, clock, make_asset):
    seen: list[list[AssetRecord]] = []
    unsubscribe = history.watch("u1", "profile", seen.append)

    await history.append("u1", "profile", make_asset(1))
    clock.advance(seconds=1)
    await history.append("u1", "profile", make_asset(2))
    unsubscribe()
    await history.append("u1", "profile", make_asset(3))

    assert len(seen) == 2
    assert [r.file_id for r in seen[-1]] == ["file_2", "file_1"]
    assert seen[-1][0].is_active is True


# --- helpers ---


def test_plan_prune_oldest_first(clock, make_asset):
    records = [
        AssetRecord(id=f"r{n}", sequence=n, uploaded_at=clock.now_utc(), **make_asset(n).model_dump())
        for n in (3, 1, 2)
    ]
    assert [r.id for r in plan_prune(records, 1)] == ["r1", "r2"]
    assert plan_prune(records, 5) == []


def test_parse_ledger_ignores_non_mapping():
    assert parse_ledger(None) == []
    assert parse_ledger("x") == []


def test_ledger_key_paths():
    key = LedgerKey("u1", "banner")
    assert key.history_path == "users/u1/bannerHistory"
    assert key.current_field == "banner_image"
