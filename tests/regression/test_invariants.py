"""
Regression tests for ledger invariants over longer operation sequences.
"""

import asyncio
import random
import threading

import pytest

from src.adapters.memory_store import InMemoryDocumentStore
from src.adapters.sqlite.document_store import SQLiteDocumentStore
from src.adapters.sqlite.migrator import SQLiteMigrator
from src.components.derived_urls import derive_urls
from src.components.history import HistoryStore


@pytest.fixture(params=["memory", "sqlite"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemoryDocumentStore()
    path = str(tmp_path / "inv.db")
    SQLiteMigrator(path, "migrations").run_migrations()
    return SQLiteDocumentStore(path)


@pytest.mark.asyncio
@pytest.mark.parametrize("max_retained", [1, 3, 5])
async def test_retention_keeps_most_recent(any_store, clock, make_asset, max_retained):
    history = HistoryStore(any_store, clock=clock, max_retained=max_retained)
    uploaded = []
    for n in range(1, 9):
        uploaded.append((await history.append("u1", "profile", make_asset(n))).record)
        clock.advance(seconds=1)

    items = (await history.list("u1", "profile", 100)).items

    assert len(items) == max_retained
    assert [r.id for r in items] == [r.id for r in reversed(uploaded[-max_retained:])]


@pytest.mark.asyncio
async def test_exactly_one_active_under_random_operations(any_store, clock, make_asset):
    rng = random.Random(1234)
    history = HistoryStore(any_store, clock=clock, max_retained=3)
    current_url = None

    for step in range(60):
        items = (await history.list("u1", "banner", 10)).items
        if items and rng.random() < 0.4:
            target = rng.choice(items)
            result = await history.activate("u1", "banner", target.id)
            current_url = result.url
        else:
            result = await history.append("u1", "banner", make_asset(step, "banner"))
            current_url = result.record.url
        if rng.random() < 0.5:
            clock.advance(seconds=1)

        items = (await history.list("u1", "banner", 10)).items
        active = [r for r in items if r.is_active]
        assert len(items) <= 3
        assert len(active) == 1
        assert active[0].url == current_url
        assert (await history.current_url("u1", "banner")).url == current_url


@pytest.mark.asyncio
async def test_missing_id_never_mutates(any_store, clock, make_asset):
    history = HistoryStore(any_store, clock=clock)
    await history.append("u1", "profile", make_asset(1))
    before = any_store.get("users/u1")

    for bogus in ("nope", "-", "0000"):
        await history.activate("u1", "profile", bogus)

    assert any_store.get("users/u1") == before


def test_derived_urls_are_stable():
    endpoint = "https://ik.imagekit.io/demo"
    for slot in ("profile", "banner"):
        for n in range(10):
            url = f"{endpoint}/{slot}s/u{n}/file_{n}.jpg"
            assert derive_urls(url, slot, url_endpoint=endpoint) == derive_urls(
                url, slot, url_endpoint=endpoint
            )


def test_writers_on_separate_connections_keep_retention(tmp_path, clock, make_asset):
    path = str(tmp_path / "shared.db")
    SQLiteMigrator(path, "migrations").run_migrations()
    results: list = []
    failures: list[BaseException] = []

    async def writer(offset: int) -> None:
        history = HistoryStore(SQLiteDocumentStore(path), clock=clock, max_retained=3)
        for n in range(40):
            results.append(await history.append("u1", "profile", make_asset(offset + n)))

    def run(offset: int) -> None:
        try:
            asyncio.run(writer(offset))
        except BaseException as e:
            failures.append(e)

    threads = [threading.Thread(target=run, args=(offset,)) for offset in (0, 1000)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert failures == []
    assert len(results) == 80
    assert all(r.success for r in results)

    ledger = SQLiteDocumentStore(path).get("users/u1/profileHistory")
    assert len(ledger) == 3
    assert sum(1 for doc in ledger.values() if doc["is_active"]) == 1
    sequences = sorted(doc["sequence"] for doc in ledger.values())
    assert sequences == [78, 79, 80]
