"""
Tests for the in-memory document storage.
"""
import pytest

from arangomap.errors import StorageError
from arangomap.query.operations import (
    CompiledFilter,
    CompiledUpdate,
    FilterCondition,
    UpdateOperation,
    UpdateOperator,
)
from arangomap.storage import MemoryDocumentStorage


def where(**values):
    return CompiledFilter(conditions=[FilterCondition(path=path, value=value) for path, value in values.items()])


@pytest.fixture
def storage():
    storage = MemoryDocumentStorage("tests")
    storage.initialize()
    return storage


@pytest.mark.asyncio
async def test_insert_and_find(storage):
    meta = await storage.insert_one({"_key": "a", "n": 1})
    assert meta == {"_key": "a", "_rev": "1"}
    await storage.insert_one({"n": 2})

    found = await storage.find(CompiledFilter())
    assert [doc["n"] for doc in found] == [1, 2]
    assert len(found[1]["_key"]) == 32

    assert await storage.find_one(where(n=2)) == found[1]
    assert await storage.find_one(where(n=5)) is None
    assert len(await storage.find(CompiledFilter(), limit=1)) == 1


@pytest.mark.asyncio
async def test_results_are_copies(storage):
    await storage.insert_one({"_key": "a", "v": {"n": 1}})
    found = await storage.find_one(where(_key="a"))
    found["v"]["n"] = 99
    assert storage.documents["a"]["v"]["n"] == 1


@pytest.mark.asyncio
async def test_insert_rejects_duplicates_and_bad_keys(storage):
    await storage.insert_one({"_key": "a"})
    with pytest.raises(StorageError):
        await storage.insert_one({"_key": "a"})
    with pytest.raises(StorageError):
        await storage.insert_one({"_key": "bad key"})


@pytest.mark.asyncio
async def test_insert_many(storage):
    metas = await storage.insert_many([{"n": 1}, {"n": 2}])
    assert len(metas) == 2
    assert await storage.count(CompiledFilter()) == 2


@pytest.mark.asyncio
async def test_update_one(storage):
    await storage.insert_one({"_key": "a", "v": {"n": 1}})
    update = CompiledUpdate(operations=[UpdateOperation(path="v.n", value=2)])

    result = await storage.update_one(where(_key="a"), update)
    assert (result.matched_count, result.modified_count) == (1, 1)
    assert storage.documents["a"]["v"] == {"n": 2}
    assert storage.documents["a"]["_rev"] == "2"

    result = await storage.update_one(where(_key="a"), update)
    assert (result.matched_count, result.modified_count) == (1, 0)

    result = await storage.update_one(where(_key="missing"), update)
    assert result.matched_count == 0
    assert result.upserted_key is None


@pytest.mark.asyncio
async def test_upsert(storage):
    update = CompiledUpdate(operations=[
        UpdateOperation(operator=UpdateOperator.SET_ON_INSERT, path="_key", value="fresh"),
        UpdateOperation(operator=UpdateOperator.SET_ON_INSERT, path="m", value={"bacon": 2}),
        UpdateOperation(path="v.n", value=3),
    ])
    result = await storage.update_one(where(name="x"), update, upsert=True)
    assert result.upserted_key == "fresh"
    stored = storage.documents["fresh"]
    assert stored["name"] == "x"
    assert stored["m"] == {"bacon": 2}
    assert stored["v"] == {"n": 3}

    # A second upsert matches and skips the on-insert operations
    update.operations[1].value = {"bacon": 10}
    result = await storage.update_one(where(name="x"), update, upsert=True)
    assert result.matched_count == 1
    assert storage.documents["fresh"]["m"] == {"bacon": 2}


@pytest.mark.asyncio
async def test_delete_and_count(storage):
    await storage.insert_many([{"_key": "a", "n": 1}, {"_key": "b", "n": 1}])
    assert await storage.count(where(n=1)) == 2
    assert await storage.delete_one(where(n=1)) == 1
    assert await storage.delete_one(where(n=5)) == 0
    assert list(storage.documents) == ["b"]
