"""Tests for the document store backends"""

import json
import os

import pytest

from ironlog.store import (
    ACTIVITIES,
    MAP_COLLECTION,
    MAP_DOCUMENT_ID,
    WELLNESS,
    JsonDocumentStore,
    MemoryDocumentStore,
    StoreError,
    WriteBatch,
)


@pytest.fixture(params=["memory", "json"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryDocumentStore()
    return JsonDocumentStore(tmp_path / "store.json")


class TestWriteBatch:
    def test_data_is_copied_when_staged(self):
        data = {"externalId": "1", "nested": {"a": 1}}
        batch = WriteBatch().set(ACTIVITIES, "doc", data)

        data["nested"]["a"] = 2

        assert batch.operations[0].data == {"externalId": "1", "nested": {"a": 1}}

    def test_new_ids_are_unique(self):
        assert len({WriteBatch.new_id() for _ in range(50)}) == 50


class TestDocumentStore:
    @pytest.mark.asyncio
    async def test_commit_and_list(self, store):
        batch = store.batch()
        batch.set(ACTIVITIES, "a", {"externalId": "1"})
        batch.set(WELLNESS, "wellness_2025-11-30", {"date": "2025-11-30"})
        await store.commit(batch)

        activities = await store.list_activities()
        wellness = await store.list_wellness()

        assert [(d.id, d.data) for d in activities] == [("a", {"externalId": "1"})]
        assert [d.id for d in wellness] == ["wellness_2025-11-30"]

    @pytest.mark.asyncio
    async def test_merge_keeps_unmentioned_fields(self, store):
        await store.commit(store.batch().set(ACTIVITIES, "a", {"x": 1, "y": 2}))

        await store.commit(store.batch().set(ACTIVITIES, "a", {"y": 3}, merge=True))

        [doc] = await store.list_activities()
        assert doc.data == {"x": 1, "y": 3}

    @pytest.mark.asyncio
    async def test_set_without_merge_replaces(self, store):
        await store.commit(store.batch().set(ACTIVITIES, "a", {"x": 1, "y": 2}))

        await store.commit(store.batch().set(ACTIVITIES, "a", {"y": 3}))

        [doc] = await store.list_activities()
        assert doc.data == {"y": 3}

    @pytest.mark.asyncio
    async def test_manual_entries_and_delete(self, store):
        doc_id = await store.add_activity({"activityType": "run", "distance": "5.00"})

        assert [d.id for d in await store.list_activities()] == [doc_id]

        await store.delete_activity(doc_id)
        assert await store.list_activities() == []

    @pytest.mark.asyncio
    async def test_map_document(self, store):
        assert await store.get_map_document() is None

        await store.set_map_document({"totalPaths": 1})
        await store.set_map_document({"totalPaths": 2})

        assert await store.get_map_document() == {"totalPaths": 2}

    @pytest.mark.asyncio
    async def test_delete_wellness(self, store):
        batch = store.batch()
        for day in ("2025-11-29", "2025-11-30"):
            batch.set(WELLNESS, f"wellness_{day}", {"date": day})
        batch.set(ACTIVITIES, "a", {"externalId": "1"})
        await store.commit(batch)

        assert await store.delete_wellness() == 2
        assert await store.list_wellness() == []
        assert len(await store.list_activities()) == 1
        assert await store.delete_wellness() == 0

    @pytest.mark.asyncio
    async def test_reads_are_isolated_from_store(self, store):
        await store.commit(store.batch().set(ACTIVITIES, "a", {"tags": ["x"]}))

        [doc] = await store.list_activities()
        doc.data["tags"].append("y")

        [again] = await store.list_activities()
        assert again.data == {"tags": ["x"]}


class TestMemoryDocumentStore:
    @pytest.mark.asyncio
    async def test_failed_commit_leaves_store_untouched(self, monkeypatch):
        from ironlog.store import memory

        store = MemoryDocumentStore({ACTIVITIES: {"a": {"externalId": "1"}}})

        def broken_apply(collections, operations):
            collections[ACTIVITIES]["b"] = {"externalId": "2"}
            raise RuntimeError("disk full")

        monkeypatch.setattr(memory, "apply_operations", broken_apply)

        with pytest.raises(RuntimeError):
            await store.commit(store.batch().set(ACTIVITIES, "b", {}))

        assert list(store.dump()[ACTIVITIES]) == ["a"]
        assert store.commit_count == 0


class TestJsonDocumentStore:
    @pytest.mark.asyncio
    async def test_persisted_layout(self, tmp_path):
        path = tmp_path / "store.json"
        store = JsonDocumentStore(path)

        await store.set_map_document({"totalPaths": 0})

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data == {MAP_COLLECTION: {MAP_DOCUMENT_ID: {"totalPaths": 0}}}

    @pytest.mark.asyncio
    async def test_corrupt_file_is_an_error(self, tmp_path):
        path = tmp_path / "store.json"
        path.write_text("{broken", encoding="utf-8")

        with pytest.raises(StoreError):
            await JsonDocumentStore(path).list_activities()

    @pytest.mark.asyncio
    async def test_write_failure_raises_store_error(self, tmp_path, monkeypatch):
        path = tmp_path / "store.json"
        store = JsonDocumentStore(path)
        await store.add_activity({"externalId": "1"})

        def fail_replace(src, dst):
            raise OSError("read-only file system")

        with monkeypatch.context() as patched:
            patched.setattr(os, "replace", fail_replace)
            with pytest.raises(StoreError):
                await store.add_activity({"externalId": "2"})

        assert len(await store.list_activities()) == 1

    @pytest.mark.asyncio
    async def test_empty_batch_does_not_create_file(self, tmp_path):
        path = tmp_path / "store.json"

        await JsonDocumentStore(path).commit(WriteBatch())

        assert not path.exists()
