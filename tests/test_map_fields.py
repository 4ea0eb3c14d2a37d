"""
End-to-end tests for map fields against the in-memory backend.
"""
import pytest

from arangomap import CastError, DocMap, Field, Map, Number, Schema, String, ValidationError


@pytest.mark.asyncio
async def test_validation(db):
    nested_validate_calls = []
    validate_calls = []

    def check_entry(v):
        nested_validate_calls.append(v)
        return v < 4

    def check_map(v):
        validate_calls.append(v)
        return True

    schema = Schema({
        "v": Field(Map, of=Field(Number, validate=check_entry), validate=check_map),
    })
    Test = db.model("MapTest", schema)

    doc = await Test.create({"v": {"x": 1}})
    assert nested_validate_calls == [1]
    assert len(validate_calls) == 1
    assert validate_calls[0].get("x") == 1
    assert isinstance(doc.v, DocMap)

    with pytest.raises(ValidationError) as excinfo:
        await Test.create({"v": {"notA": "number"}})
    assert "v" not in excinfo.value.errors
    assert "v.notA" in excinfo.value.errors

    doc.v.set("y", 5)
    with pytest.raises(ValidationError) as excinfo:
        await doc.save()
    assert "v" not in excinfo.value.errors
    assert "v.y" in excinfo.value.errors


@pytest.mark.asyncio
async def test_query_casting(db):
    Test = db.model("MapQueryTest", Schema({"v": Field(Map, of=Number)}))

    docs = await Test.create([{"v": {"n": 1}}, {"v": {"n": 2}}])

    res = await Test.find({"v.n": 1})
    assert len(res) == 1

    res = await Test.find({"v": {"n": 2}})
    assert len(res) == 1

    await Test.update_one({"_key": docs[1].key}, {"v.n": 3})

    res = await Test.find({"v": {"n": 3}})
    assert len(res) == 1

    with pytest.raises(CastError) as excinfo:
        await Test.update_one({"_key": docs[1].key}, {"v.n": "not a number"})
    assert excinfo.value.name == "CastError"

    res = await Test.find({"v": {"n": 3}})
    assert len(res) == 1


@pytest.mark.asyncio
async def test_nested_update_keeps_other_entries(db):
    Test = db.model("MapUpdateTest", Schema({"v": Field(Map, of=Number)}))

    dotted, nested = await Test.create([{"v": {"n": 1, "k": 9}}, {"v": {"n": 1, "k": 9}}])

    await Test.update_one({"_key": dotted.key}, {"v.n": 3})
    await Test.update_one({"_key": nested.key}, {"v": {"n": "3"}})

    assert Test.storage.documents[dotted.key]["v"] == {"n": 3, "k": 9}
    assert Test.storage.documents[nested.key]["v"] == {"n": 3, "k": 9}


@pytest.mark.asyncio
async def test_defaults(db):
    schema = Schema({
        "n": Number,
        "m": Field(Map, of=Number, default={"bacon": 2, "eggs": 6}),
    })
    Test = db.model("MapDefaultsTest", schema)

    doc = Test({})
    assert isinstance(doc.m, DocMap)
    assert list(doc.to_object()["m"].keys()) == ["bacon", "eggs"]

    await Test.update_one({}, {"n": 1}, upsert=True, set_defaults_on_insert=True)

    saved = await Test.find_one({"n": 1})
    assert saved is not None
    assert list(saved.to_object()["m"].keys()) == ["bacon", "eggs"]


@pytest.mark.asyncio
async def test_single_nested_subdocs(db):
    Test = db.model("MapEmbeddedTest", Schema({"m": Field(Map, of=Schema({"n": Number}))}))

    doc = Test({"m": {"bacon": {"n": 2}}})
    await doc.save()

    assert isinstance(doc.m, DocMap)
    assert doc.to_object()["m"]["bacon"] == {"n": 2}

    doc.m.get("bacon").n = 4
    await doc.save()
    assert doc.to_object()["m"]["bacon"] == {"n": 4}

    doc = await Test.find_by_id(doc.key)
    assert doc.to_object()["m"]["bacon"] == {"n": 4}


@pytest.mark.asyncio
async def test_discriminators(db):
    Test = db.model("MapDiscrimTest", Schema({"n": Number}))
    Disc = Test.discriminator("MapDiscrimTest_0", Schema({"m": Field(Map, of=Number)}))

    doc = Disc({"m": {"test": 1}})
    assert isinstance(doc.m, DocMap)
    assert list(doc.to_object()["m"].keys()) == ["test"]
    await doc.save()

    from_db = await Disc.find_one({"m.test": 1})
    assert from_db is not None
    assert from_db.key == doc.key


@pytest.mark.asyncio
async def test_embedded_discriminators(db):
    employee = Schema({"name": String})
    department = Schema({"employees": [employee]})
    department.path("employees").discriminator("Sales", Schema({"clients": [String]}))
    department.path("employees").discriminator("Engineering", Schema({"apiKeys": Field(Map, of=String)}))
    Department = db.model("MapEmbeddedDiscrimTest", department)

    dept = Department({
        "employees": [
            {"__t": "Sales", "name": "E1", "clients": ["test1", "test2"]},
            {"__t": "Engineering", "name": "E2", "apiKeys": {"github": "test3"}},
        ]
    })

    assert dept.to_object()["employees"][0] == {"__t": "Sales", "name": "E1", "clients": ["test1", "test2"]}
    assert list(dept.to_object()["employees"][1]["apiKeys"].values()) == ["test3"]

    await dept.save()

    from_db = await Department.find_one({"employees.apiKeys.github": "test3"})
    assert from_db is not None

    dept.employees[1].apiKeys.set("github", "test4")
    await dept.save()

    from_db = await Department.find_one({"employees.apiKeys.github": "test4"})
    assert from_db is not None
    assert from_db.employees[1].apiKeys.get("github") == "test4"
