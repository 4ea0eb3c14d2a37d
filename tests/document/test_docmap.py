"""
Unit tests for DocMap, the container behind map fields.
"""
import pytest

from arangomap import CastError, DocMap, EmbeddedDocument, Field, InvalidMapKeyError, Map, Number, Schema


@pytest.fixture
def Test(db):
    schema = Schema({
        "v": Field(Map, of=Number),
        "m": Field(Map, of=Schema({"n": Number})),
    })
    return db.model("DocMapTest", schema)


def test_construction_casts_entries(Test):
    doc = Test({"v": {"x": "1", "y": 2.5}})
    assert isinstance(doc.v, DocMap)
    assert doc.v.get("x") == 1
    assert doc.v["y"] == 2.5
    assert doc.v.size == 2
    assert len(doc.v) == 2


def test_insertion_order(Test):
    doc = Test({"v": {"c": 1, "a": 2, "b": 3}})
    assert list(doc.v.keys()) == ["c", "a", "b"]
    doc.v.set("d", 4)
    doc.v.set("c", 5)
    assert list(doc.v) == ["c", "a", "b", "d"]
    assert list(doc.to_object()["v"]) == ["c", "a", "b", "d"]


def test_set_casts_and_marks_entry_modified(Test):
    doc = Test({"v": {"x": 1}})
    result = doc.v.set("y", "5")
    assert result is doc.v
    assert doc.v.get("y") == 5
    assert doc.is_modified("v.y")
    assert doc.is_modified("v")
    assert not doc.is_modified("v.x")
    assert doc.modified_paths == ["v.y"]


def test_failed_set_leaves_map_unchanged(Test):
    doc = Test({"v": {"x": 1}})
    with pytest.raises(CastError) as excinfo:
        doc.v.set("x", "not a number")
    assert excinfo.value.path == "v.x"
    assert doc.v.get("x") == 1
    assert not doc.is_modified()

    with pytest.raises(CastError) as excinfo:
        doc.v["bad"] = "nope"
    assert excinfo.value.path == "v.bad"
    assert not doc.v.has("bad")


def test_delete(Test):
    doc = Test({"v": {"x": 1, "y": 2}})
    assert doc.v.delete("x") is True
    assert doc.v.delete("missing") is False
    assert not doc.v.has("x")
    assert doc.modified_paths == ["v.x"]

    del doc.v["y"]
    assert doc.v.size == 0
    with pytest.raises(KeyError):
        del doc.v["y"]


def test_invalid_keys(Test):
    doc = Test({"v": {}})
    for key in ("a.b", "$x", 1):
        with pytest.raises(InvalidMapKeyError):
            doc.v.set(key, 1)
    with pytest.raises(InvalidMapKeyError):
        Test({"v": {"a.b": 1}})


def test_embedded_values(Test):
    doc = Test({"m": {"bacon": {"n": "2"}}})
    bacon = doc.m.get("bacon")
    assert isinstance(bacon, EmbeddedDocument)
    assert bacon.n == 2
    assert bacon.full_path == "m.bacon"

    bacon.n = 4
    assert doc.modified_paths == ["m.bacon.n"]
    assert doc.to_object()["m"] == {"bacon": {"n": 4}}


def test_embedded_value_cast_error_path(Test):
    doc = Test({"m": {}})
    with pytest.raises(CastError) as excinfo:
        doc.m.set("bacon", {"n": "lots"})
    assert excinfo.value.path == "m.bacon.n"
    assert not doc.m.has("bacon")


def test_equality_and_plain_conversion(Test):
    doc = Test({"v": {"x": 1}})
    assert doc.v == {"x": 1}
    assert doc.v == Test({"v": {"x": 1}}).v
    assert doc.v != {"x": 2}
    assert doc.v.to_object() == {"x": 1}
    assert isinstance(doc.v.to_object(), dict)
    assert repr(doc.v) == "DocMap({'x': 1})"


def test_mutable_mapping_helpers(Test):
    doc = Test({"v": {"x": 1}})
    doc.v.update({"y": "2"})
    assert doc.v.get("y") == 2
    assert doc.v.pop("x") == 1
    assert "x" not in doc.v
    assert dict(doc.v.items()) == {"y": 2}
