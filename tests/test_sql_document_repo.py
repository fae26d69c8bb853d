from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from core.database import create_engine_for_url
from repositories.sql_document_repo import SqlDocumentStore


async def _open_store(tmp_path: Path) -> SqlDocumentStore:
    store = SqlDocumentStore(create_engine_for_url(f"sqlite+aiosqlite:///{tmp_path / 'data' / 'tiddlers.db'}"))
    await store.initialize()
    return store


@pytest.mark.asyncio
async def test_put_starts_at_zero_and_increments_by_one(tmp_path: Path):
    store = await _open_store(tmp_path)
    try:
        assert await store.put("GettingStarted", {"text": "v0"}) == 0
        assert await store.put("GettingStarted", {"text": "v1"}) == 1
        assert await store.put("GettingStarted", {"text": "v2"}) == 2

        doc = await store.get("GettingStarted")
        assert doc is not None
        assert doc.revision == 2
        assert doc.metadata == {"text": "v2"}
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_put_replaces_metadata_without_merging(tmp_path: Path):
    store = await _open_store(tmp_path)
    try:
        await store.put("Note", {"text": "a", "tags": "x"})
        await store.put("Note", {"text": "b"})

        doc = await store.get("Note")
        assert doc is not None
        assert doc.metadata == {"text": "b"}
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_get_missing_title_returns_none(tmp_path: Path):
    store = await _open_store(tmp_path)
    try:
        assert await store.get("Nope") is None
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_delete_returns_prior_metadata_and_removes_row(tmp_path: Path):
    store = await _open_store(tmp_path)
    try:
        await store.put("cat.png", {"_file_storage": "s3", "_s3_key": "tiddlers/k.png"})
        await store.put("cat.png", {"_file_storage": "s3", "_s3_key": "tiddlers/k2.png"})

        prior = await store.delete("cat.png")

        assert prior == {"_file_storage": "s3", "_s3_key": "tiddlers/k2.png"}
        assert await store.get("cat.png") is None
        assert await store.delete("cat.png") is None
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_put_after_delete_restarts_revision(tmp_path: Path):
    store = await _open_store(tmp_path)
    try:
        await store.put("Cycle", {})
        await store.put("Cycle", {})
        await store.delete("Cycle")

        assert await store.put("Cycle", {}) == 0
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_list_is_lazy_filterable_and_restartable(tmp_path: Path):
    store = await _open_store(tmp_path)
    try:
        await store.put("$:/config/a", {})
        await store.put("$:/config/b", {})
        await store.put("$:/config/b", {})
        await store.put("Journal", {})

        everything = {(s.title, s.revision) async for s in store.list()}
        again = {(s.title, s.revision) async for s in store.list()}
        config_only = {s.title async for s in store.list(lambda s: s.title.startswith("$:/config/"))}

        assert everything == {("$:/config/a", 0), ("$:/config/b", 1), ("Journal", 0)}
        assert again == everything
        assert config_only == {"$:/config/a", "$:/config/b"}
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_concurrent_puts_on_same_title_never_share_a_revision(tmp_path: Path):
    store = await _open_store(tmp_path)
    try:
        revisions = await asyncio.gather(*(store.put("Hot", {"writer": i}) for i in range(10)))

        assert sorted(revisions) == list(range(10))
        doc = await store.get("Hot")
        assert doc is not None
        assert doc.revision == 9
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_concurrent_puts_on_distinct_titles_all_insert(tmp_path: Path):
    store = await _open_store(tmp_path)
    try:
        titles = [f"Title {i}" for i in range(8)]

        revisions = await asyncio.gather(*(store.put(title, {"n": i}) for i, title in enumerate(titles)))

        assert revisions == [0] * len(titles)
        assert {s.title async for s in store.list()} == set(titles)
    finally:
        await store.close()


@pytest.mark.asyncio
async def test_metadata_round_trips_nested_json(tmp_path: Path):
    store = await _open_store(tmp_path)
    metadata = {
        "title": "Tagged",
        "tags": ["a b", "c"],
        "fields": {"_canonical_uri": "/files/x.png", "count": 3},
        "text": "$literal-looking text",
    }
    try:
        await store.put("Tagged", metadata)

        doc = await store.get("Tagged")
        assert doc is not None
        assert doc.metadata == metadata
    finally:
        await store.close()
